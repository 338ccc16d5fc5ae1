"""
Test Suite for Evaluation and Selection
=======================================
"""

import json

import pytest
import numpy as np

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from exercise_quality.errors import FitFailure
from exercise_quality.evaluation import (
    cross_validate_algorithm, evaluate_candidates, accuracy_table, generate_cv_report
)
from exercise_quality.folds import make_folds
from exercise_quality.selection import select_best_model, compare_models, paired_fold_test
from conftest import FULL_COLUMNS, LABELS

PREDICTORS = ['user_name'] + FULL_COLUMNS


def fake_result(accuracies):
    acc = np.asarray(accuracies, dtype=float)
    return {'fold_accuracies': acc, 'mean_accuracy': float(acc.mean())}


class TestCrossValidation:
    """Tests for per-fold evaluation."""

    @pytest.fixture
    def folds(self, train_df):
        return make_folds(train_df['classe'], n_folds=5, random_state=0)

    def test_accuracies_per_fold(self, train_df, folds):
        result = cross_validate_algorithm(
            train_df, folds, 'lda', PREDICTORS, labels=LABELS
        )

        assert len(result['fold_accuracies']) == 5
        assert ((result['fold_accuracies'] >= 0) & (result['fold_accuracies'] <= 1)).all()
        assert result['folds'] == [1, 2, 3, 4, 5]
        assert result['mean_accuracy'] == pytest.approx(result['fold_accuracies'].mean())

    def test_confusion_matrices(self, train_df, folds):
        result = cross_validate_algorithm(
            train_df, folds, 'lda', PREDICTORS, labels=LABELS
        )
        matrices = result['confusion_matrices']

        assert matrices.shape == (5, 5, 5)
        # each fold's matrix counts exactly its held-out rows
        assert list(matrices.sum(axis=(1, 2))) == [20] * 5
        diagonal = np.trace(matrices, axis1=1, axis2=2) / 20
        np.testing.assert_allclose(diagonal, result['fold_accuracies'])

    def test_fit_failure_names_fold(self, train_df, folds):
        df = train_df.copy()
        df.loc[folds[3][0], 'sensor_1'] = np.inf

        with pytest.raises(FitFailure) as excinfo:
            cross_validate_algorithm(df, folds, 'lda', PREDICTORS, labels=LABELS)
        # the bad row is held out in fold 3, so fold 1 trains on it first
        assert excinfo.value.fold == 1
        assert excinfo.value.algorithm == 'lda'

    def test_evaluate_candidates_order(self, train_df, folds):
        results = evaluate_candidates(
            train_df, folds, ['lda', 'gradient_boosting'], PREDICTORS,
            labels=LABELS,
            model_params={'gradient_boosting': {'max_iter': 20}}
        )

        assert list(results) == ['lda', 'gradient_boosting']
        for result in results.values():
            assert len(result['fold_accuracies']) == 5

        table = accuracy_table(results)
        assert table.shape == (5, 2)
        assert list(table.index) == [1, 2, 3, 4, 5]

    def test_generate_report(self, train_df, folds, tmp_path):
        results = evaluate_candidates(train_df, folds, ['lda'], PREDICTORS, labels=LABELS)
        report = generate_cv_report(
            results,
            figures_dir=str(tmp_path / "figures"),
            metrics_dir=str(tmp_path / "metrics")
        )

        for name in report['figures']:
            assert (tmp_path / "figures" / name).exists()
        with open(report['metrics_file']) as f:
            metrics = json.load(f)
        assert len(metrics['lda']['fold_accuracies']) == 5


class TestSelection:
    """Tests for model selection."""

    def test_higher_mean_wins(self):
        results = {
            'gradient_boosting': fake_result([0.9, 0.92, 0.91]),
            'lda': fake_result([0.7, 0.71, 0.69])
        }
        assert select_best_model(results) == 'gradient_boosting'

    def test_later_candidate_can_win(self):
        results = {
            'gradient_boosting': fake_result([0.6, 0.6]),
            'lda': fake_result([0.8, 0.7])
        }
        assert select_best_model(results) == 'lda'

    def test_tie_goes_to_first_listed(self):
        results = {
            'lda': fake_result([0.8, 0.6]),
            'gradient_boosting': fake_result([0.6, 0.8])
        }
        assert select_best_model(results) == 'lda'

    def test_selected_mean_is_maximal(self):
        results = {
            'a': fake_result([0.5, 0.55]),
            'b': fake_result([0.9, 0.1]),
            'c': fake_result([0.6, 0.61])
        }
        selected = select_best_model(results)
        best = np.mean(results[selected]['fold_accuracies'])
        assert all(best >= np.mean(r['fold_accuracies']) for r in results.values())

    def test_empty(self):
        with pytest.raises(ValueError):
            select_best_model({})

    def test_compare_models(self):
        results = {
            'lda': fake_result([0.7, 0.8]),
            'gradient_boosting': fake_result([0.9, 0.95])
        }
        table = compare_models(results)

        assert list(table.index) == ['gradient_boosting', 'lda']
        assert list(table['rank']) == [1, 2]
        assert table.loc['lda', 'mean'] == pytest.approx(0.75)

    def test_paired_fold_test(self):
        results = {
            'a': fake_result([0.9, 0.92, 0.95, 0.91]),
            'b': fake_result([0.7, 0.75, 0.72, 0.74])
        }
        test = paired_fold_test(results, 'a', 'b')

        assert test['mean_difference'] > 0
        assert 0 <= test['p_value'] <= 1

    def test_paired_fold_test_constant_difference(self):
        results = {'a': fake_result([0.9, 0.8]), 'b': fake_result([0.8, 0.7])}
        test = paired_fold_test(results, 'a', 'b')
        assert np.isnan(test['p_value'])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
