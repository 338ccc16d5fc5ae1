"""
End-to-end tests on synthetic sensor tables.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from exercise_quality.errors import PredictionSchemaMismatch, SchemaMismatch
from exercise_quality.evaluation import evaluate_candidates
from exercise_quality.folds import make_folds
from exercise_quality.prediction import run_final_prediction, export_predictions
from exercise_quality.preprocessing import filter_pipeline
from exercise_quality.selection import select_best_model
from conftest import FULL_COLUMNS, LABELS, make_observations

CANDIDATES = ['gradient_boosting', 'lda']
FAST_PARAMS = {'gradient_boosting': {'max_iter': 30}}


class TestScenario:
    """Filter, partition, evaluate, select and predict on a 100-row table."""

    def test_full_workflow(self, train_df, test_df, tmp_path):
        filtered = filter_pipeline(train_df)
        assert set(filtered['retained_columns']) == set(FULL_COLUMNS) | {'classe', 'user_name'}

        data = filtered['data']
        folds = make_folds(data['classe'], n_folds=5, random_state=1234)
        assert [len(idx) for idx in folds.values()] == [20] * 5

        cv_results = evaluate_candidates(
            data, folds, CANDIDATES, filtered['predictor_columns'],
            labels=LABELS, model_params=FAST_PARAMS
        )
        for result in cv_results.values():
            accuracies = result['fold_accuracies']
            assert len(accuracies) == 5
            assert ((accuracies >= 0) & (accuracies <= 1)).all()

        means = [cv_results[name]['mean_accuracy'] for name in CANDIDATES]
        expected = CANDIDATES[int(np.argmax(means))]
        selected = select_best_model(cv_results)
        assert selected == expected
        assert select_best_model(cv_results) == selected

        prediction = run_final_prediction(
            data, test_df, selected, filtered['predictor_columns'],
            labels=LABELS,
            params=FAST_PARAMS.get(selected),
            output_dir=str(tmp_path)
        )
        predictions = prediction['predictions']
        assert len(predictions) == 10
        assert set(predictions) <= set(LABELS)
        assert prediction['ids'] == list(range(1, 11))

        exported = pd.read_csv(prediction['csv_path'])
        assert list(exported.columns) == ['problem_id', 'classe']
        assert list(exported['classe']) == list(predictions)

    def test_prediction_missing_feature(self, train_df, test_df):
        filtered = filter_pipeline(train_df)
        with pytest.raises(PredictionSchemaMismatch) as excinfo:
            run_final_prediction(
                filtered['data'], test_df.drop(columns=['sensor_7']), 'lda',
                filtered['predictor_columns'], labels=LABELS, output_dir=None
            )
        assert excinfo.value.stage == 'predict'
        assert excinfo.value.missing_columns == ['sensor_7']

    def test_prediction_missing_value_in_feature(self, train_df, test_df):
        filtered = filter_pipeline(train_df)
        rows = test_df.copy()
        rows.loc[2, 'sensor_5'] = np.nan
        with pytest.raises(SchemaMismatch, match="sensor_5") as excinfo:
            run_final_prediction(
                filtered['data'], rows, 'lda',
                filtered['predictor_columns'], labels=LABELS, output_dir=None
            )
        assert isinstance(excinfo.value, main.PipelineError)
        assert excinfo.value.stage == 'schema'

    def test_export_without_id_column(self, test_df, tmp_path):
        path = export_predictions(
            np.array(['A'] * 10), test_df.drop(columns=['problem_id']), str(tmp_path)
        )
        exported = pd.read_csv(path)
        assert list(exported['row']) == list(range(1, 11))


class TestMainPipeline:
    """Runs main.run_full_pipeline against local CSV files."""

    @pytest.fixture
    def config(self, tmp_path, train_df, test_df):
        train = train_df.copy()
        train.insert(0, 'X', np.arange(1, len(train) + 1))
        train.to_csv(tmp_path / "train.csv", index=False)
        test = test_df.copy()
        test.insert(0, 'X', np.arange(1, len(test) + 1))
        test.to_csv(tmp_path / "test.csv", index=False)

        return {
            'data': {
                'train_url': str(tmp_path / "train.csv"),
                'test_url': str(tmp_path / "test.csv"),
                'predictions_path': str(tmp_path / "predictions"),
            },
            'cv': {'n_folds': 5, 'random_state': 1234},
            'models': {'candidates': CANDIDATES, **FAST_PARAMS},
            'eda': {'scatter_pairs': [['sensor_1', 'sensor_2'], ['roll_belt', 'pitch_belt']]},
            'output': {
                'figures_path': str(tmp_path / "figures"),
                'metrics_path': str(tmp_path / "metrics"),
            },
        }

    def test_run_full_pipeline(self, config, tmp_path):
        results = main.run_full_pipeline(config)

        assert 'X' not in results['filter']['predictor_columns']
        assert results['filter']['excluded_columns'] == ['X']
        assert results['selected'] in CANDIDATES
        assert len(results['prediction']['predictions']) == 10
        assert (tmp_path / "metrics" / "cv_metrics.json").exists()
        assert (tmp_path / "figures" / "03_feature_scatter.png").exists()
        assert (tmp_path / "predictions" / "test_predictions.csv").exists()

    def test_missing_source_names_stage(self, config, tmp_path):
        config['data']['test_url'] = str(tmp_path / "absent.csv")
        with pytest.raises(main.PipelineError) as excinfo:
            main.run_full_pipeline(config, show_eda=False)
        assert excinfo.value.stage == 'load'

    def test_apply_overrides(self):
        config = main.apply_overrides({}, train='a.csv', folds=10, seed=3)
        assert config['data']['train_url'] == 'a.csv'
        assert config['cv'] == {'n_folds': 10, 'random_state': 3}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
