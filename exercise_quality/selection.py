"""
Model Selection Module
======================

Picks the algorithm with the best mean cross-validated accuracy.

Ties go to the candidate listed first: a later candidate replaces the
current best only with a strictly higher mean.
"""

import logging
from typing import Dict, Any

import numpy as np
import pandas as pd
from scipy import stats

from .model import DISPLAY_NAMES

logger = logging.getLogger(__name__)


def select_best_model(cv_results: Dict[str, Dict[str, Any]]) -> str:
    """
    Return the algorithm with the strictly highest mean fold accuracy.

    Args:
        cv_results: Ordered mapping from algorithm to cross-validation result

    Raises:
        ValueError: If there are no candidates
    """
    if not cv_results:
        raise ValueError("No cross-validation results to select from")

    best_name = None
    best_mean = -np.inf
    for name, result in cv_results.items():
        mean = float(np.mean(result['fold_accuracies']))
        if mean > best_mean:
            best_name, best_mean = name, mean

    tied = [
        name for name, result in cv_results.items()
        if name != best_name and np.isclose(np.mean(result['fold_accuracies']), best_mean)
    ]
    if tied:
        logger.warning(f"'{best_name}' ties with {tied}; keeping the first-listed candidate")

    logger.info(f"Selected '{best_name}' with mean accuracy {best_mean:.4f}")
    return best_name


def compare_models(cv_results: Dict[str, Dict[str, Any]]) -> pd.DataFrame:
    """
    Summary statistics of fold accuracy per algorithm, best first.

    Returns:
        DataFrame indexed by algorithm with mean, std, min, max and rank
    """
    rows = {}
    for name, result in cv_results.items():
        acc = np.asarray(result['fold_accuracies'], dtype=float)
        rows[name] = {
            'mean': acc.mean(),
            'std': acc.std(ddof=1) if len(acc) > 1 else 0.0,
            'min': acc.min(),
            'max': acc.max(),
            'n_folds': len(acc)
        }

    table = pd.DataFrame.from_dict(rows, orient='index')
    table.index.name = 'algorithm'
    # stable sort keeps listing order among ties
    table = table.sort_values('mean', ascending=False, kind='mergesort')
    table['rank'] = np.arange(1, len(table) + 1)
    return table


def paired_fold_test(
    cv_results: Dict[str, Dict[str, Any]],
    first: str,
    second: str
) -> Dict[str, float]:
    """
    Paired t-test over per-fold accuracies of two algorithms.

    Diagnostic only; selection never depends on it. Folds are shared
    between algorithms, so the test pairs them by fold.
    """
    a = np.asarray(cv_results[first]['fold_accuracies'], dtype=float)
    b = np.asarray(cv_results[second]['fold_accuracies'], dtype=float)
    if len(a) != len(b):
        raise ValueError("Algorithms were evaluated on different numbers of folds")

    diff = a - b
    if len(a) < 2 or np.allclose(diff, diff[0]):
        return {'mean_difference': float(diff.mean()), 't_statistic': float('nan'),
                'p_value': float('nan')}

    t_stat, p_value = stats.ttest_rel(a, b)
    return {
        'mean_difference': float(diff.mean()),
        't_statistic': float(t_stat),
        'p_value': float(p_value)
    }


def print_selection_report(cv_results: Dict[str, Dict[str, Any]], selected: str) -> None:
    """
    Print the model comparison and the selected algorithm.

    Args:
        cv_results: Output of evaluate_candidates
        selected: Name returned by select_best_model
    """
    table = compare_models(cv_results)

    print("\n" + "=" * 70)
    print("MODEL SELECTION")
    print("=" * 70)
    print(table.round(4).to_string())

    others = [name for name in table.index if name != selected]
    if others:
        runner_up = others[0]
        test = paired_fold_test(cv_results, selected, runner_up)
        print(f"\nPaired t-test vs '{runner_up}': "
              f"mean difference={test['mean_difference']:.4f}, "
              f"t={test['t_statistic']:.3f}, p={test['p_value']:.4f}")

    print(f"\n✓ Selected: {DISPLAY_NAMES.get(selected, selected)} "
          f"(mean accuracy {table.loc[selected, 'mean']:.4f})")
    print("=" * 70 + "\n")
