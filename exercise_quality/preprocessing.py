"""
Data Preprocessing Module
=========================

Removes columns with missing values from the observation tables.

Functions:
    - compute_missingness: Missing-value percentage per column
    - FeatureFilter: Learn the zero-missingness column set and apply it
    - get_predictor_columns: Retained columns minus the label
    - filter_pipeline: Run the complete feature filter step
"""

import logging
from typing import Dict, Any, Optional, List, Sequence

import pandas as pd

from .errors import SchemaMismatch

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE_COLUMNS = [
    "X",
    "raw_timestamp_part_1",
    "raw_timestamp_part_2",
    "cvtd_timestamp",
    "new_window",
    "num_window",
]


def compute_missingness(df: pd.DataFrame) -> pd.Series:
    """
    Percentage of missing values per column, most-missing first.

    Args:
        df: Observation table

    Returns:
        Series mapping column name to missing percentage (0-100)
    """
    if len(df) == 0:
        raise ValueError("Cannot compute missingness of an empty table")

    missing = df.isnull().sum() / len(df) * 100
    return missing.sort_values(ascending=False, kind="mergesort")


class FeatureFilter:
    """
    Keeps only the columns that are fully populated in the training table.

    No imputation and no partial retention: a column with a single missing
    value is dropped. The label and subject columns are always kept.
    """

    def __init__(
        self,
        label_column: str = "classe",
        subject_column: Optional[str] = "user_name",
        exclude_columns: Optional[Sequence[str]] = None
    ):
        """
        Initialize the filter.

        Args:
            label_column: Target column, never dropped
            subject_column: Subject identifier column, never dropped
            exclude_columns: Bookkeeping columns removed after the
                missingness rule (ignored if absent)
        """
        self.label_column = label_column
        self.subject_column = subject_column
        self.exclude_columns = list(exclude_columns) if exclude_columns else []

        self.missingness: Optional[pd.Series] = None
        self.retained_columns: Optional[List[str]] = None
        self.dropped_columns: Optional[List[str]] = None
        self.excluded_columns: Optional[List[str]] = None
        self._is_fitted = False

    @property
    def protected_columns(self) -> List[str]:
        return [c for c in (self.label_column, self.subject_column) if c]

    def fit(self, df: pd.DataFrame) -> 'FeatureFilter':
        """
        Learn which columns to retain.

        Args:
            df: Training observation table

        Returns:
            Self for method chaining
        """
        for col in self.protected_columns:
            if col not in df.columns:
                raise SchemaMismatch(f"Required column '{col}' not found in training table")

        self.missingness = compute_missingness(df)
        complete = set(self.missingness[self.missingness == 0].index)
        protected = set(self.protected_columns)
        excluded = set(self.exclude_columns) - protected

        self.retained_columns = [
            c for c in df.columns
            if (c in complete or c in protected) and c not in excluded
        ]
        # dropped: failed the missingness rule; excluded: complete but bookkeeping
        self.dropped_columns = [c for c in df.columns if c not in complete and c not in protected]
        self.excluded_columns = [c for c in df.columns if c in excluded and c in complete]

        logger.info(
            f"Feature filter: {len(self.retained_columns)} retained, "
            f"{len(self.dropped_columns)} dropped for missing values, "
            f"{len(self.excluded_columns)} excluded as bookkeeping"
        )

        if set(self.retained_columns) <= protected:
            logger.warning(
                "Every candidate predictor has missing values; only the label and "
                "subject columns remain"
            )

        self._is_fitted = True
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Restrict a table to the retained columns.

        The label column is optional here so the filter applies to the
        test table as well.

        Raises:
            ValueError: If the filter has not been fitted
            SchemaMismatch: If a retained feature column is absent
        """
        if not self._is_fitted:
            raise ValueError("FeatureFilter must be fitted before transform. Call fit() first.")

        columns = [c for c in self.retained_columns if c != self.label_column or c in df.columns]
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise SchemaMismatch(f"Columns expected after filtering are absent: {missing}")

        return df[columns].copy()

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Fit and transform in one step."""
        self.fit(df)
        return self.transform(df)


def get_predictor_columns(columns: Sequence[str], label_column: str = "classe") -> List[str]:
    """All retained columns except the label."""
    return [c for c in columns if c != label_column]


def filter_pipeline(
    df: pd.DataFrame,
    label_column: str = "classe",
    subject_column: Optional[str] = "user_name",
    exclude_columns: Optional[Sequence[str]] = None
) -> Dict[str, Any]:
    """
    Complete feature filter step for the training table.

    Args:
        df: Raw training table
        label_column: Target column
        subject_column: Subject identifier column
        exclude_columns: Bookkeeping columns to drop from predictors

    Returns:
        Dictionary containing:
            - data: Filtered training table
            - feature_filter: Fitted FeatureFilter
            - missingness: Missingness report (percent per column)
            - retained_columns, predictor_columns
            - dropped_columns: Columns with at least one missing value
            - excluded_columns: Complete bookkeeping columns removed by config
    """
    logger.info("=" * 60)
    logger.info("STARTING FEATURE FILTER")
    logger.info("=" * 60)

    feature_filter = FeatureFilter(
        label_column=label_column,
        subject_column=subject_column,
        exclude_columns=exclude_columns
    )
    data = feature_filter.fit_transform(df)

    if label_column not in data.columns:
        raise SchemaMismatch(f"Label column '{label_column}' was dropped by the filter")

    result = {
        'data': data,
        'feature_filter': feature_filter,
        'missingness': feature_filter.missingness,
        'retained_columns': list(feature_filter.retained_columns),
        'dropped_columns': list(feature_filter.dropped_columns),
        'excluded_columns': list(feature_filter.excluded_columns),
        'predictor_columns': get_predictor_columns(feature_filter.retained_columns, label_column)
    }

    logger.info("=" * 60)
    logger.info("FEATURE FILTER COMPLETE")
    logger.info(f"  Rows: {len(data)}")
    logger.info(f"  Predictors: {len(result['predictor_columns'])}")
    logger.info("=" * 60)

    return result


def print_filter_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the feature filter results.

    Args:
        result: Dictionary from filter_pipeline
    """
    missingness = result['missingness']
    print("\n" + "=" * 50)
    print("FEATURE FILTER SUMMARY")
    print("=" * 50)
    print(f"Columns in: {len(missingness)}")
    print(f"Columns with no missing values: {int((missingness == 0).sum())}")
    print(f"Columns retained: {len(result['retained_columns'])}")
    print(f"Columns dropped (missing values): {len(result['dropped_columns'])}")
    print(f"Columns excluded (bookkeeping): {len(result['excluded_columns'])}")
    print(f"Predictors: {len(result['predictor_columns'])}")
    incomplete = missingness[missingness > 0]
    if len(incomplete):
        print(f"\nMissing fraction among dropped sparse columns: "
              f"{incomplete.min():.1f}% - {incomplete.max():.1f}%")
    print("=" * 50 + "\n")
