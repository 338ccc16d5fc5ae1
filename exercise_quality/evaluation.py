"""
Model Evaluation Module
=======================

K-fold cross-validation of the candidate algorithms.

Features:
    - Per-fold accuracy and confusion matrix for each algorithm
    - Accuracy table (folds × algorithms)
    - Per-fold accuracy and confusion matrix plots
    - Metrics export to JSON
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import accuracy_score, confusion_matrix

from .errors import FitFailure
from .folds import FoldAssignment, fold_train_indices
from .model import create_backend, DISPLAY_NAMES

logger = logging.getLogger(__name__)


def cross_validate_algorithm(
    df: pd.DataFrame,
    assignment: FoldAssignment,
    algorithm: str,
    feature_columns: Sequence[str],
    label_column: str = "classe",
    labels: Optional[Sequence[str]] = None,
    params: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Train on k-1 folds and score the held-out fold, once per fold.

    Each fitted model is discarded as soon as its fold is scored.

    Args:
        df: Filtered training table (positional index is used)
        assignment: Fold assignment from make_folds
        algorithm: Backend name
        feature_columns: Predictor columns
        label_column: Target column
        labels: Fixed label order for confusion matrices
        params: Backend hyperparameters

    Returns:
        Dictionary with fold_accuracies (length k, fold order),
        confusion_matrices, mean_accuracy and std_accuracy

    Raises:
        FitFailure: If fitting fails on any fold
    """
    if labels is None:
        labels = sorted(df[label_column].unique())
    labels = list(labels)
    folds = sorted(assignment)

    accuracies = np.empty(len(folds), dtype=float)
    matrices = np.zeros((len(folds), len(labels), len(labels)), dtype=int)

    logger.info(f"Cross-validating '{algorithm}' over {len(folds)} folds...")

    for i, fold in enumerate(folds):
        held_out = df.iloc[assignment[fold]]
        train = df.iloc[fold_train_indices(assignment, fold)]

        model = create_backend(algorithm, params)
        try:
            model.fit(train, label_column, feature_columns)
        except FitFailure as e:
            raise FitFailure(algorithm, e.reason, fold=fold) from e

        y_true = held_out[label_column].to_numpy()
        y_pred = model.predict(held_out)

        accuracies[i] = accuracy_score(y_true, y_pred)
        matrices[i] = confusion_matrix(y_true, y_pred, labels=labels)

        logger.info(
            f"  fold {fold}: accuracy={accuracies[i]:.4f} "
            f"(train={len(train)}, held-out={len(held_out)})"
        )
        del model

    result = {
        'algorithm': algorithm,
        'folds': folds,
        'labels': labels,
        'fold_accuracies': accuracies,
        'confusion_matrices': matrices,
        'mean_accuracy': float(accuracies.mean()),
        'std_accuracy': float(accuracies.std(ddof=1)) if len(folds) > 1 else 0.0
    }

    logger.info(
        f"'{algorithm}' mean accuracy: {result['mean_accuracy']:.4f} "
        f"(± {result['std_accuracy']:.4f})"
    )
    return result


def evaluate_candidates(
    df: pd.DataFrame,
    assignment: FoldAssignment,
    candidates: Sequence[str],
    feature_columns: Sequence[str],
    label_column: str = "classe",
    labels: Optional[Sequence[str]] = None,
    model_params: Optional[Dict[str, Dict[str, Any]]] = None
) -> Dict[str, Dict[str, Any]]:
    """
    Cross-validate every candidate algorithm, in the given order.

    Returns:
        Ordered mapping from algorithm name to its cross-validation result
    """
    logger.info("=" * 60)
    logger.info("STARTING CROSS-VALIDATION")
    logger.info("=" * 60)

    model_params = model_params or {}
    results: Dict[str, Dict[str, Any]] = {}
    for algorithm in candidates:
        results[algorithm] = cross_validate_algorithm(
            df, assignment, algorithm, feature_columns,
            label_column=label_column,
            labels=labels,
            params=model_params.get(algorithm)
        )

    logger.info("=" * 60)
    logger.info("CROSS-VALIDATION COMPLETE")
    logger.info("=" * 60)
    return results


def accuracy_table(cv_results: Dict[str, Dict[str, Any]]) -> pd.DataFrame:
    """Per-fold accuracy, one column per algorithm."""
    table = pd.DataFrame({
        name: pd.Series(result['fold_accuracies'], index=result['folds'])
        for name, result in cv_results.items()
    })
    table.index.name = 'fold'
    return table


def plot_fold_accuracies(
    cv_results: Dict[str, Dict[str, Any]],
    figsize: Tuple[int, int] = (10, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Line plot of accuracy per fold for each algorithm, with mean lines.

    Args:
        cv_results: Output of evaluate_candidates
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    table = accuracy_table(cv_results)
    fig, ax = plt.subplots(figsize=figsize)
    palette = sns.color_palette("husl", len(table.columns))

    for color, name in zip(palette, table.columns):
        label = DISPLAY_NAMES.get(name, name)
        ax.plot(table.index, table[name], marker='o', color=color, label=label)
        ax.axhline(table[name].mean(), color=color, linestyle='--', alpha=0.6,
                   label=f'{label} mean: {table[name].mean():.4f}')

    ax.set_xticks(table.index)
    ax.set_xlabel('Fold')
    ax.set_ylabel('Accuracy')
    ax.set_ylim([0, 1.05])
    ax.set_title('Cross-Validated Accuracy per Fold', fontsize=14, fontweight='bold')
    ax.legend(loc='lower right', fontsize=8)
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Fold accuracy plot saved to {save_path}")

    return fig


def plot_confusion_matrices(
    cv_results: Dict[str, Dict[str, Any]],
    figsize: Tuple[int, int] = (12, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Confusion matrix summed over folds, one heatmap per algorithm.

    Args:
        cv_results: Output of evaluate_candidates
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    n = len(cv_results)
    fig, axes = plt.subplots(1, n, figsize=figsize, squeeze=False)

    for ax, (name, result) in zip(axes[0], cv_results.items()):
        total = result['confusion_matrices'].sum(axis=0)
        sns.heatmap(
            total,
            annot=True,
            fmt='d',
            cmap='Blues',
            xticklabels=result['labels'],
            yticklabels=result['labels'],
            cbar=False,
            ax=ax
        )
        ax.set_xlabel('Predicted')
        ax.set_ylabel('Actual')
        ax.set_title(f"{DISPLAY_NAMES.get(name, name)}\n"
                     f"mean accuracy={result['mean_accuracy']:.4f}",
                     fontsize=10, fontweight='bold')

    plt.suptitle('Confusion Matrices (summed over folds)', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Confusion matrix plot saved to {save_path}")

    return fig


def save_cv_metrics(cv_results: Dict[str, Dict[str, Any]], path: str) -> str:
    """Write cross-validation results to JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        name: {
            'folds': [int(f) for f in result['folds']],
            'labels': list(result['labels']),
            'fold_accuracies': result['fold_accuracies'].tolist(),
            'mean_accuracy': result['mean_accuracy'],
            'std_accuracy': result['std_accuracy'],
            'confusion_matrix': result['confusion_matrices'].sum(axis=0).tolist()
        }
        for name, result in cv_results.items()
    }

    with open(path, 'w') as f:
        json.dump(payload, f, indent=2)
    logger.info(f"Cross-validation metrics saved to {path}")
    return str(path)


def generate_cv_report(
    cv_results: Dict[str, Dict[str, Any]],
    figures_dir: str = "reports/figures/",
    metrics_dir: str = "reports/metrics/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Save plots and metrics for a cross-validation run.

    Returns:
        Dictionary with figure names and the metrics file path
    """
    figures_dir = Path(figures_dir)
    figures_dir.mkdir(parents=True, exist_ok=True)

    figures: List[str] = []

    plot_fold_accuracies(cv_results, save_path=str(figures_dir / "cv_fold_accuracy.png"))
    figures.append("cv_fold_accuracy.png")

    plot_confusion_matrices(cv_results, save_path=str(figures_dir / "cv_confusion_matrices.png"))
    figures.append("cv_confusion_matrices.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    metrics_file = save_cv_metrics(cv_results, str(Path(metrics_dir) / "cv_metrics.json"))

    return {'figures': figures, 'metrics_file': metrics_file}


def print_cv_report(cv_results: Dict[str, Dict[str, Any]]) -> None:
    """
    Print the per-fold accuracy table and mean accuracy per algorithm.

    Args:
        cv_results: Output of evaluate_candidates
    """
    table = accuracy_table(cv_results)

    print("\n" + "=" * 70)
    print("CROSS-VALIDATION REPORT")
    print("=" * 70)
    print("\nAccuracy per fold:")
    print("-" * 70)
    print(table.round(4).to_string())
    print("-" * 70)
    print("\nMean accuracy:")
    for name, result in cv_results.items():
        print(f"  • {DISPLAY_NAMES.get(name, name):<32} "
              f"{result['mean_accuracy']:.4f} (± {result['std_accuracy']:.4f})")
    print("=" * 70 + "\n")
