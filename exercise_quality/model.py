"""
Model Backends Module
=====================

Classifier adapters behind a common fit/predict interface.

Features:
    - HistGradientBoostingClassifier backend (gradient-boosted trees)
    - LinearDiscriminantAnalysis backend
    - One-hot encoding of non-numeric predictors (e.g. the subject)
    - Schema checks on fit and predict
    - Training progress logging
"""

import logging
from typing import Dict, Any, Optional, List, Sequence, Type
from datetime import datetime

import numpy as np
import pandas as pd
from sklearn.compose import ColumnTransformer
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import HistGradientBoostingClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import OneHotEncoder

from .errors import FitFailure, PredictionSchemaMismatch, SchemaMismatch

logger = logging.getLogger(__name__)


class ClassifierBackend:
    """
    Common interface for the candidate classification algorithms.

    Subclasses provide ``name``, ``default_params`` and ``_create_estimator``;
    the base class handles encoding, schema checks and bookkeeping.
    """

    name = "base"
    default_params: Dict[str, Any] = {}

    def __init__(self, **params):
        unknown = set(params) - set(self.default_params)
        if unknown:
            raise ValueError(f"Unknown parameters for '{self.name}': {sorted(unknown)}")
        self.params = {**self.default_params, **params}

        self.pipeline: Optional[Pipeline] = None
        self.feature_columns: Optional[List[str]] = None
        self.classes_: Optional[np.ndarray] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    def _create_estimator(self):
        raise NotImplementedError

    def _build_pipeline(self, X: pd.DataFrame) -> Pipeline:
        categorical = X.select_dtypes(exclude=[np.number, "bool"]).columns.tolist()
        numeric = [c for c in X.columns if c not in categorical]

        encoder = ColumnTransformer(
            transformers=[
                ("categorical", OneHotEncoder(handle_unknown="ignore", sparse_output=False), categorical),
                ("numeric", "passthrough", numeric),
            ],
            sparse_threshold=0.0
        )
        return Pipeline([("encode", encoder), ("classifier", self._create_estimator())])

    def fit(
        self,
        training_data: pd.DataFrame,
        target_column: str,
        feature_columns: Optional[Sequence[str]] = None
    ) -> 'ClassifierBackend':
        """
        Fit the classifier on a training table.

        Args:
            training_data: Table holding predictors and the target
            target_column: Name of the label column
            feature_columns: Predictor columns (default: all but the target)

        Returns:
            Self for method chaining

        Raises:
            SchemaMismatch: If the target or a predictor column is absent
            FitFailure: If the estimator fails to fit
        """
        if target_column not in training_data.columns:
            raise SchemaMismatch(f"Target column '{target_column}' not found in training data")

        if feature_columns is None:
            feature_columns = [c for c in training_data.columns if c != target_column]
        feature_columns = list(feature_columns)
        missing = [c for c in feature_columns if c not in training_data.columns]
        if missing:
            raise SchemaMismatch(f"Predictor columns not found in training data: {missing}")
        if not feature_columns:
            raise SchemaMismatch("No predictor columns to fit on")

        X = training_data[feature_columns]
        y = training_data[target_column].to_numpy()

        start_time = datetime.now()
        logger.debug(f"Fitting '{self.name}' on X={X.shape} with {self.params}")

        pipeline = self._build_pipeline(X)
        try:
            pipeline.fit(X, y)
        except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
            raise FitFailure(self.name, str(e)) from e

        duration = (datetime.now() - start_time).total_seconds()

        self.pipeline = pipeline
        self.feature_columns = feature_columns
        self.classes_ = pipeline.named_steps["classifier"].classes_
        self.training_info = {
            'training_duration_seconds': duration,
            'n_samples': int(X.shape[0]),
            'n_features': len(feature_columns),
            'n_classes': len(self.classes_),
            'trained_at': datetime.now().isoformat(),
            'hyperparameters': dict(self.params)
        }
        self._is_fitted = True

        logger.debug(f"Fitted '{self.name}' in {duration:.2f}s")
        return self

    def predict(self, feature_rows: pd.DataFrame) -> np.ndarray:
        """
        Predict one label per row.

        Raises:
            ValueError: If called before fit()
            PredictionSchemaMismatch: If an expected feature column is absent
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        missing = [c for c in self.feature_columns if c not in feature_rows.columns]
        if missing:
            raise PredictionSchemaMismatch(missing)

        return self.pipeline.predict(feature_rows[self.feature_columns])

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self.params.items())
        return f"{type(self).__name__}({params})"


class GradientBoostingBackend(ClassifierBackend):
    """Gradient-boosted trees via HistGradientBoostingClassifier."""

    name = "gradient_boosting"
    default_params = {
        'max_iter': 100,
        'learning_rate': 0.1,
        'max_depth': None,
        'min_samples_leaf': 20,
        'l2_regularization': 0.0,
        'random_state': 42,
    }

    def _create_estimator(self) -> HistGradientBoostingClassifier:
        return HistGradientBoostingClassifier(
            max_iter=self.params['max_iter'],
            learning_rate=self.params['learning_rate'],
            max_depth=self.params['max_depth'],
            min_samples_leaf=self.params['min_samples_leaf'],
            l2_regularization=self.params['l2_regularization'],
            random_state=self.params['random_state'],
            early_stopping=False,
            verbose=0
        )


class LinearDiscriminantBackend(ClassifierBackend):
    """Linear discriminant analysis."""

    name = "lda"
    default_params = {
        'solver': 'svd',
        'shrinkage': None,
        'tol': 1e-4,
    }

    def _create_estimator(self) -> LinearDiscriminantAnalysis:
        return LinearDiscriminantAnalysis(
            solver=self.params['solver'],
            shrinkage=self.params['shrinkage'],
            tol=self.params['tol']
        )


BACKENDS: Dict[str, Type[ClassifierBackend]] = {
    GradientBoostingBackend.name: GradientBoostingBackend,
    LinearDiscriminantBackend.name: LinearDiscriminantBackend,
}

DISPLAY_NAMES = {
    'gradient_boosting': 'Gradient-boosted trees',
    'lda': 'Linear discriminant analysis',
}


def create_backend(name: str, params: Optional[Dict[str, Any]] = None) -> ClassifierBackend:
    """
    Instantiate a backend from the closed algorithm set.

    Args:
        name: 'gradient_boosting' or 'lda'
        params: Hyperparameter overrides

    Raises:
        ValueError: If the algorithm name is unknown
    """
    if name not in BACKENDS:
        raise ValueError(f"Unknown algorithm '{name}'. Choose from: {sorted(BACKENDS)}")
    return BACKENDS[name](**(params or {}))


def get_model_params(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Hyperparameters for ``name`` from the ``models`` config section."""
    return dict(config.get('models', {}).get(name, {}) or {})


def print_model_summary(model: ClassifierBackend) -> None:
    """
    Print a summary of a trained backend.

    Args:
        model: Trained backend instance
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print(f"Algorithm: {DISPLAY_NAMES.get(model.name, model.name)}")
    print(f"Estimator: {type(model).__name__}")
    if model.classes_ is not None:
        print(f"Classes: {list(model.classes_)}")
    print("\nHyperparameters:")
    for key, value in model.params.items():
        print(f"  - {key}: {value}")

    if model.training_info:
        print("\nTraining Info:")
        print(f"  - Duration: {model.training_info['training_duration_seconds']:.2f}s")
        print(f"  - Samples: {model.training_info['n_samples']}")
        print(f"  - Predictors: {model.training_info['n_features']}")

    print("=" * 50 + "\n")
