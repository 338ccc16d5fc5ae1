"""
Fold Partitioning Module
========================

Stratified k-fold partition of the training rows.

Fold membership is reproducible only when ``random_state`` is set. The
pipeline seeds it from config by default; pass ``None`` for unseeded
folds that differ on every run.
"""

import logging
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.model_selection import StratifiedKFold

logger = logging.getLogger(__name__)

FoldAssignment = Dict[int, np.ndarray]


def make_folds(
    labels: Sequence,
    n_folds: int = 5,
    random_state: Optional[int] = 1234
) -> FoldAssignment:
    """
    Split row positions into ``n_folds`` disjoint, label-stratified folds.

    Args:
        labels: Label vector, one entry per row
        n_folds: Number of folds (k)
        random_state: Seed for the shuffle; None for unseeded

    Returns:
        Mapping from fold index (1..k) to sorted held-out row positions
    """
    y = np.asarray(labels)
    n_rows = len(y)

    if n_folds < 2:
        raise ValueError(f"n_folds must be at least 2, got {n_folds}")
    if n_folds > n_rows:
        raise ValueError(f"n_folds ({n_folds}) cannot exceed the number of rows ({n_rows})")

    if random_state is None:
        logger.warning("Fold assignment is unseeded; fold membership will not be reproducible")

    splitter = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=random_state)

    assignment: FoldAssignment = {}
    for fold, (_, held_out) in enumerate(splitter.split(np.zeros(n_rows), y), start=1):
        assignment[fold] = np.sort(held_out)

    sizes = [len(idx) for idx in assignment.values()]
    logger.info(f"Created {n_folds} stratified folds over {n_rows} rows, sizes {sizes}")
    return assignment


def fold_train_indices(assignment: FoldAssignment, fold: int) -> np.ndarray:
    """Row positions of every fold except ``fold``."""
    if fold not in assignment:
        raise KeyError(f"Unknown fold {fold}; valid folds are {sorted(assignment)}")
    others = [idx for f, idx in assignment.items() if f != fold]
    return np.sort(np.concatenate(others))


def validate_folds(assignment: FoldAssignment, n_rows: int) -> None:
    """
    Check that folds are pairwise disjoint and cover every row exactly once.

    Raises:
        ValueError: If the assignment is not a partition of 0..n_rows-1
    """
    counts = np.zeros(n_rows, dtype=int)
    for fold, idx in assignment.items():
        if len(idx) and (idx.min() < 0 or idx.max() >= n_rows):
            raise ValueError(f"Fold {fold} has row positions outside 0..{n_rows - 1}")
        np.add.at(counts, idx, 1)

    if (counts > 1).any():
        raise ValueError(f"{int((counts > 1).sum())} rows are assigned to more than one fold")
    if (counts == 0).any():
        raise ValueError(f"{int((counts == 0).sum())} rows are not assigned to any fold")


def fold_summary(assignment: FoldAssignment, labels: Sequence) -> pd.DataFrame:
    """
    Label counts per fold, for checking stratification.

    Returns:
        DataFrame indexed by fold with one column per label plus 'total'
    """
    y = pd.Series(np.asarray(labels))
    rows = {fold: y.iloc[idx].value_counts() for fold, idx in assignment.items()}
    summary = pd.DataFrame(rows).T.fillna(0).astype(int).sort_index(axis=1)
    summary['total'] = summary.sum(axis=1)
    summary.index.name = 'fold'
    return summary
