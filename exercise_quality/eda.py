"""
Exploratory Data Analysis (EDA) Module
======================================

Visual inspection of the training table before modelling.

Functions:
    - plot_missingness: Histogram of per-column missing fraction
    - plot_label_distribution: Label counts per subject
    - plot_feature_scatter: Raw-feature pairs coloured by label
    - plot_correlation_matrix: Correlation heatmap of retained predictors
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

DEFAULT_SCATTER_PAIRS = [
    ("roll_belt", "pitch_belt"),
    ("roll_belt", "yaw_belt"),
    ("magnet_dumbbell_x", "magnet_dumbbell_y"),
    ("pitch_forearm", "roll_forearm"),
]


def plot_missingness(
    missingness: pd.Series,
    figsize: Tuple[int, int] = (10, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Histogram of missing percentage across columns.

    Args:
        missingness: Series from compute_missingness (percent per column)
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.histplot(missingness.values, bins=20, ax=ax, alpha=0.8)
    n_complete = int((missingness == 0).sum())
    ax.set_xlabel('Missing values (%)')
    ax.set_ylabel('Number of columns')
    ax.set_title(f'Missingness by Column ({n_complete} of {len(missingness)} complete)',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Missingness plot saved to {save_path}")

    return fig


def plot_label_distribution(
    df: pd.DataFrame,
    label_column: str = "classe",
    subject_column: Optional[str] = "user_name",
    figsize: Tuple[int, int] = (10, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Count of each label, split by subject when available.

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)
    order = sorted(df[label_column].unique())

    hue = subject_column if subject_column and subject_column in df.columns else None
    sns.countplot(data=df, x=label_column, hue=hue, order=order, ax=ax)

    ax.set_xlabel('Label')
    ax.set_ylabel('Rows')
    ax.set_title('Label Distribution by Subject', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Label distribution plot saved to {save_path}")

    return fig


def plot_feature_scatter(
    df: pd.DataFrame,
    pairs: Sequence[Tuple[str, str]],
    label_column: str = "classe",
    figsize: Tuple[int, int] = (14, 10),
    save_path: Optional[str] = None
) -> Optional[plt.Figure]:
    """
    Scatter plots of raw-feature pairs, coloured by label.

    Pairs with a column absent from ``df`` are skipped.

    Returns:
        Matplotlib Figure object, or None if no pair is plottable
    """
    usable = []
    for x_col, y_col in pairs:
        if x_col in df.columns and y_col in df.columns:
            usable.append((x_col, y_col))
        else:
            logger.warning(f"Skipping scatter pair ({x_col}, {y_col}): column not found")

    if not usable:
        return None

    n_plots = len(usable)
    n_rows = (n_plots + 1) // 2
    fig, axes = plt.subplots(n_rows, 2, figsize=figsize, squeeze=False)
    axes = axes.flatten()
    hue_order = sorted(df[label_column].unique())

    for ax, (x_col, y_col) in zip(axes, usable):
        sns.scatterplot(
            data=df, x=x_col, y=y_col, hue=label_column, hue_order=hue_order,
            s=8, alpha=0.5, linewidth=0, ax=ax
        )
        ax.set_title(f'{y_col} vs {x_col}', fontsize=10, fontweight='bold')
        ax.legend(title='Label', fontsize=8, markerscale=2)

    # Hide unused subplots
    for idx in range(n_plots, len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle('Raw Sensor Features by Label', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Feature scatter plot saved to {save_path}")

    return fig


def plot_correlation_matrix(
    df: pd.DataFrame,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (14, 12),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Correlation heatmap of the numeric columns.

    Args:
        df: DataFrame with numerical data
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, correlation matrix DataFrame)
    """
    corr_matrix = df.select_dtypes(include=[np.number]).corr(method=method)

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=len(corr_matrix) <= 12,
        fmt='.2f',
        cmap='RdYlBu_r',
        center=0,
        square=True,
        linewidths=0.2,
        cbar_kws={"shrink": 0.8, "label": "Correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation Matrix ({method.capitalize()})',
                 fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def strong_correlations(corr_matrix: pd.DataFrame, threshold: float = 0.8) -> List[Dict[str, Any]]:
    """Pairs of columns with |r| >= threshold, strongest first."""
    pairs = []
    columns = corr_matrix.columns
    for i in range(len(columns)):
        for j in range(i + 1, len(columns)):
            value = corr_matrix.iloc[i, j]
            if abs(value) >= threshold:
                pairs.append({"col1": columns[i], "col2": columns[j], "correlation": float(value)})
    return sorted(pairs, key=lambda x: abs(x["correlation"]), reverse=True)


def generate_eda_report(
    raw_df: pd.DataFrame,
    filtered_df: pd.DataFrame,
    missingness: pd.Series,
    label_column: str = "classe",
    subject_column: Optional[str] = "user_name",
    scatter_pairs: Optional[Sequence[Tuple[str, str]]] = None,
    output_dir: str = "reports/figures/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate the EDA figures for the training table.

    Args:
        raw_df: Training table before filtering
        filtered_df: Training table after the feature filter
        missingness: Missingness report for raw_df
        label_column: Target column
        subject_column: Subject identifier column
        scatter_pairs: Raw-feature pairs to scatter
        output_dir: Directory to save figures
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing figure names and correlation insights
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    scatter_pairs = DEFAULT_SCATTER_PAIRS if scatter_pairs is None else scatter_pairs

    report = {
        "data_shape": raw_df.shape,
        "figures": [],
        "strong_correlations": []
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    logger.info("Plotting missingness...")
    plot_missingness(missingness, save_path=str(output_dir / "01_missingness.png"))
    report["figures"].append("01_missingness.png")

    logger.info("Plotting label distribution...")
    plot_label_distribution(
        raw_df, label_column, subject_column,
        save_path=str(output_dir / "02_label_distribution.png")
    )
    report["figures"].append("02_label_distribution.png")

    logger.info("Plotting raw feature scatter plots...")
    fig = plot_feature_scatter(
        filtered_df, scatter_pairs, label_column,
        save_path=str(output_dir / "03_feature_scatter.png")
    )
    if fig is not None:
        report["figures"].append("03_feature_scatter.png")

    predictors = filtered_df.drop(columns=[label_column])
    if predictors.select_dtypes(include=[np.number]).shape[1] > 1:
        logger.info("Computing correlation matrix...")
        _, corr_matrix = plot_correlation_matrix(
            predictors, save_path=str(output_dir / "04_correlation_matrix.png")
        )
        report["figures"].append("04_correlation_matrix.png")
        report["strong_correlations"] = strong_correlations(corr_matrix)

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_correlation_insights(pairs: List[Dict[str, Any]], limit: int = 10) -> None:
    """
    Print the most strongly correlated predictor pairs.

    Args:
        pairs: Output of strong_correlations
        limit: Maximum number of pairs to list
    """
    print("\n" + "=" * 50)
    print("CORRELATION INSIGHTS")
    print("=" * 50)

    if pairs:
        print(f"\n{len(pairs)} strongly correlated predictor pairs; top {min(limit, len(pairs))}:")
        for item in pairs[:limit]:
            direction = "positive" if item["correlation"] > 0 else "negative"
            print(f"  • {item['col1']} ↔ {item['col2']}: {item['correlation']:.3f} ({direction})")
    else:
        print("\nNo strongly correlated predictor pairs found")

    print("=" * 50 + "\n")
