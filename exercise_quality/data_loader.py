"""
Data Loader Module
==================

Fetches the training and test tables, validates their schema and the
label/subject category invariants.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Fetch one CSV table from a URL or local path
    - load_datasets: Load training and test tables together
    - validate_observations: Check label and subject categories
    - print_data_summary: Console summary of a table
"""

import io
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Sequence, Tuple
from urllib.parse import urlparse

import pandas as pd
import requests
import yaml

from .errors import DataUnavailable, SchemaMismatch

logger = logging.getLogger(__name__)

DEFAULT_TRAIN_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-training.csv"
DEFAULT_TEST_URL = "https://d396qusza40orc.cloudfront.net/predmachlearn/pml-testing.csv"
DEFAULT_NA_VALUES = ["NA", "", "#DIV/0!"]
DEFAULT_LABELS = ["A", "B", "C", "D", "E"]
DEFAULT_SUBJECTS = ["adelmo", "carlitos", "charles", "eurico", "jeremy", "pedro"]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def _is_url(source: str) -> bool:
    return urlparse(str(source)).scheme in ("http", "https")


def _fetch_text(url: str, timeout: float) -> str:
    """Single GET of a remote CSV; no retry."""
    logger.info(f"Fetching {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise DataUnavailable(url, str(e)) from e
    return response.text


def load_data(
    source: str,
    na_values: Optional[Sequence[str]] = None,
    timeout: float = 60.0
) -> pd.DataFrame:
    """
    Load one CSV table from a remote URL or a local file.

    Args:
        source: http(s) URL or filesystem path
        na_values: Tokens treated as missing (default: NA, empty, #DIV/0!)
        timeout: Request timeout in seconds for remote sources

    Returns:
        DataFrame containing the loaded table

    Raises:
        DataUnavailable: If the source is unreachable, missing or malformed
    """
    na_values = list(na_values) if na_values is not None else DEFAULT_NA_VALUES

    if _is_url(source):
        buffer = io.StringIO(_fetch_text(source, timeout))
    else:
        path = Path(source)
        if not path.exists():
            raise DataUnavailable(str(source), "file not found")
        buffer = path

    try:
        df = pd.read_csv(buffer, na_values=na_values, keep_default_na=True, low_memory=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataUnavailable(str(source), f"malformed CSV ({e})") from e

    if df.empty:
        raise DataUnavailable(str(source), "table has no rows")

    logger.info(f"Loaded data from {source}: {df.shape[0]} rows × {df.shape[1]} columns")
    return df


def load_datasets(
    train_source: str,
    test_source: str,
    label_column: str = "classe",
    id_column: Optional[str] = "problem_id",
    na_values: Optional[Sequence[str]] = None
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Load the training and test tables.

    The test table is expected to carry the training feature columns
    without the label; differences are logged here and enforced later at
    prediction time.

    Returns:
        Tuple of (train_df, test_df)

    Raises:
        DataUnavailable: If either source cannot be loaded
        SchemaMismatch: If the training table has no label column
    """
    train_df = load_data(train_source, na_values=na_values)
    test_df = load_data(test_source, na_values=na_values)

    if label_column not in train_df.columns:
        raise SchemaMismatch(
            f"Training table has no label column '{label_column}'"
        )

    train_features = set(train_df.columns) - {label_column}
    test_features = set(test_df.columns) - {id_column}
    missing_in_test = sorted(train_features - test_features)
    if missing_in_test:
        logger.warning(
            f"{len(missing_in_test)} training column(s) absent from test table: "
            f"{missing_in_test[:10]}"
        )

    return train_df, test_df


def validate_observations(
    df: pd.DataFrame,
    label_column: Optional[str] = "classe",
    labels: Sequence[str] = DEFAULT_LABELS,
    subject_column: Optional[str] = "user_name",
    subjects: Sequence[str] = DEFAULT_SUBJECTS
) -> Dict[str, Any]:
    """
    Check the fixed-category invariants of an Observation Table.

    Pass ``label_column=None`` for the test table, which has no label.

    Args:
        df: Observation table
        label_column: Name of the label column, or None to skip
        labels: Allowed label categories
        subject_column: Name of the subject column, or None to skip
        subjects: Allowed subject identifiers

    Returns:
        Report with label and subject counts

    Raises:
        SchemaMismatch: If a column is missing or holds unexpected values
    """
    report: Dict[str, Any] = {"n_rows": len(df)}

    checks = [("label", label_column, labels), ("subject", subject_column, subjects)]
    for kind, column, allowed in checks:
        if column is None:
            continue
        if column not in df.columns:
            raise SchemaMismatch(f"Missing {kind} column '{column}'")

        values = df[column]
        if values.isnull().any():
            raise SchemaMismatch(
                f"{kind.capitalize()} column '{column}' has {int(values.isnull().sum())} missing values"
            )
        unexpected = sorted(set(values.astype(str)) - set(allowed))
        if unexpected:
            raise SchemaMismatch(
                f"{kind.capitalize()} column '{column}' has unexpected values {unexpected}; "
                f"allowed: {list(allowed)}"
            )
        report[f"{kind}_counts"] = values.value_counts().sort_index().to_dict()

    return report


def print_data_summary(df: pd.DataFrame, name: str = "DATASET", top_missing: int = 10) -> None:
    """
    Print a formatted summary of the table to console.

    Args:
        df: DataFrame to summarize
        name: Heading for the summary
        top_missing: Number of most-missing columns to list
    """
    print("\n" + "=" * 60)
    print(f"{name} SUMMARY")
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Memory Usage: {df.memory_usage(deep=True).sum() / 1024:.2f} KB")

    dtype_counts = df.dtypes.astype(str).value_counts()
    print("\nColumn types:")
    print("-" * 40)
    for dtype, count in dtype_counts.items():
        print(f"  {dtype}: {count}")

    null_pct = df.isnull().mean() * 100
    null_pct = null_pct[null_pct > 0].sort_values(ascending=False)
    print(f"\nColumns with missing values: {len(null_pct)} of {df.shape[1]}")
    print("-" * 40)
    for col, pct in null_pct.head(top_missing).items():
        print(f"  {col}: {pct:.1f}% missing")
    print("=" * 60 + "\n")
