"""
Prediction Module
=================

Retrains the selected algorithm on the full training table and labels the
test table.

Features:
    - Final fit on 100% of the filtered training rows
    - One predicted label per test row, in input order
    - Export of predictions to CSV
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Sequence

import numpy as np
import pandas as pd

from .errors import SchemaMismatch
from .model import ClassifierBackend, create_backend, DISPLAY_NAMES

logger = logging.getLogger(__name__)


def train_final_model(
    df: pd.DataFrame,
    algorithm: str,
    feature_columns: Sequence[str],
    label_column: str = "classe",
    params: Optional[Dict[str, Any]] = None
) -> ClassifierBackend:
    """
    Fit the selected algorithm on every row of the training table.

    Raises:
        FitFailure: If the final fit fails
    """
    logger.info(f"Retraining '{algorithm}' on all {len(df)} training rows...")
    model = create_backend(algorithm, params)
    model.fit(df, label_column, feature_columns)
    logger.info(f"Final model trained in {model.training_info['training_duration_seconds']:.2f}s")
    return model


def predict_test_set(
    model: ClassifierBackend,
    test_df: pd.DataFrame,
    labels: Optional[Sequence[str]] = None
) -> np.ndarray:
    """
    Predict a label for every test row.

    Args:
        model: Fitted backend
        test_df: Test table (no label column)
        labels: Allowed label categories, checked if given

    Returns:
        Array of predicted labels, one per row, in row order

    Raises:
        PredictionSchemaMismatch: If the test table lacks a feature column
        SchemaMismatch: If a feature column has missing values or a
            prediction falls outside ``labels``
    """
    present = [c for c in model.feature_columns if c in test_df.columns]
    incomplete = [c for c in present if test_df[c].isnull().any()]
    if incomplete:
        raise SchemaMismatch(f"Test rows have missing values in feature columns: {incomplete}")

    predictions = model.predict(test_df)

    if labels is not None:
        invalid = sorted(set(predictions) - set(labels))
        if invalid:
            raise SchemaMismatch(f"Predicted labels {invalid} are not in {list(labels)}")

    return predictions


def export_predictions(
    predictions: np.ndarray,
    test_df: pd.DataFrame,
    output_dir: str,
    id_column: Optional[str] = "problem_id",
    label_column: str = "classe",
    filename: str = "test_predictions.csv"
) -> str:
    """
    Export predictions to CSV, keyed by the test row identifier.

    Falls back to the row position when the id column is absent.

    Returns:
        Path to the saved file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if id_column and id_column in test_df.columns:
        ids = test_df[id_column].to_numpy()
        index_name = id_column
    else:
        ids = np.arange(1, len(test_df) + 1)
        index_name = 'row'

    out = pd.DataFrame({label_column: predictions}, index=pd.Index(ids, name=index_name))

    filepath = output_dir / filename
    out.to_csv(filepath)

    logger.info(f"Predictions exported to {filepath}")
    return str(filepath)


def run_final_prediction(
    train_df: pd.DataFrame,
    test_df: pd.DataFrame,
    algorithm: str,
    feature_columns: Sequence[str],
    label_column: str = "classe",
    labels: Optional[Sequence[str]] = None,
    params: Optional[Dict[str, Any]] = None,
    id_column: Optional[str] = "problem_id",
    output_dir: Optional[str] = "data/predictions/"
) -> Dict[str, Any]:
    """
    Execute the final training and prediction workflow.

    Args:
        train_df: Filtered training table
        test_df: Test table
        algorithm: Selected algorithm name
        feature_columns: Predictor columns
        label_column: Target column
        labels: Allowed label categories
        params: Backend hyperparameters
        id_column: Test row identifier column
        output_dir: Directory for the CSV export, or None to skip

    Returns:
        Dictionary containing the model, predictions and output path
    """
    logger.info("=" * 60)
    logger.info("STARTING FINAL PREDICTION")
    logger.info("=" * 60)

    model = train_final_model(train_df, algorithm, feature_columns, label_column, params)
    predictions = predict_test_set(model, test_df, labels)

    csv_path = None
    if output_dir:
        csv_path = export_predictions(
            predictions, test_df, output_dir, id_column=id_column, label_column=label_column
        )

    ids = (test_df[id_column].tolist() if id_column and id_column in test_df.columns
           else list(range(1, len(test_df) + 1)))

    result = {
        'algorithm': algorithm,
        'model': model,
        'predictions': predictions,
        'ids': ids,
        'label_counts': pd.Series(predictions).value_counts().sort_index().to_dict(),
        'csv_path': csv_path
    }

    logger.info("=" * 60)
    logger.info("PREDICTION COMPLETE")
    logger.info(f"  Test rows: {len(predictions)}")
    logger.info(f"  Label counts: {result['label_counts']}")
    logger.info("=" * 60)

    return result


def print_prediction_results(result: Dict[str, Any]) -> None:
    """
    Print predicted labels for the test rows.

    Args:
        result: Result dictionary from run_final_prediction
    """
    print("\n" + "=" * 50)
    print(f"TEST SET PREDICTIONS - {DISPLAY_NAMES.get(result['algorithm'], result['algorithm'])}")
    print("=" * 50)
    print(f"{'Row':<10} {'Predicted':<10}")
    print("-" * 50)
    for row_id, label in zip(result['ids'], result['predictions']):
        print(f"{str(row_id):<10} {str(label):<10}")
    print("-" * 50)
    print(f"Label counts: {result['label_counts']}")
    if result['csv_path']:
        print(f"Predictions exported to: {result['csv_path']}")
    print("=" * 50 + "\n")
