"""
Shared fixtures: synthetic observation tables shaped like the sensor data.
"""

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

LABELS = ["A", "B", "C", "D", "E"]
SUBJECTS = ["adelmo", "carlitos", "charles", "eurico", "jeremy", "pedro"]
FULL_COLUMNS = [f"sensor_{i}" for i in range(1, 11)]
SPARSE_COLUMNS = [f"stat_{i}" for i in range(1, 6)]


def make_observations(n_rows=100, n_full=10, n_sparse=5, with_label=True, seed=42):
    """
    Balanced table: label-dependent sensor columns, plus sparse columns
    with exactly one missing value each.
    """
    rng = np.random.RandomState(seed)
    labels = np.array([LABELS[i % len(LABELS)] for i in range(n_rows)])
    codes = np.array([LABELS.index(label) for label in labels])
    centers = rng.normal(0, 3, size=(len(LABELS), n_full))

    data = {"user_name": [SUBJECTS[i % len(SUBJECTS)] for i in range(n_rows)]}
    for j in range(n_full):
        data[f"sensor_{j + 1}"] = centers[codes, j] + rng.normal(0, 1, n_rows)
    for j in range(n_sparse):
        values = rng.normal(0, 1, n_rows)
        values[j] = np.nan
        data[f"stat_{j + 1}"] = values

    df = pd.DataFrame(data)
    if with_label:
        df["classe"] = labels
    return df


@pytest.fixture
def train_df():
    """100 rows, 5 balanced labels, 10 complete and 5 sparse columns."""
    return make_observations()


@pytest.fixture
def test_df():
    """10 unlabelled rows with a problem_id column."""
    df = make_observations(n_rows=10, with_label=False, seed=7)
    df["problem_id"] = np.arange(1, 11)
    return df
