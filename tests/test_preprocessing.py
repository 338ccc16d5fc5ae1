"""
Test Suite for Preprocessing Module
===================================

Tests for the FeatureFilter class and the feature filter pipeline.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from exercise_quality.errors import SchemaMismatch
from exercise_quality.preprocessing import (
    FeatureFilter, compute_missingness, filter_pipeline, get_predictor_columns
)
from conftest import FULL_COLUMNS, SPARSE_COLUMNS


class TestComputeMissingness:
    """Tests for the missingness report."""

    def test_percentages(self):
        df = pd.DataFrame({
            'a': [1.0, 2.0, 3.0, 4.0],
            'b': [1.0, np.nan, 3.0, 4.0],
            'c': [np.nan, np.nan, np.nan, np.nan]
        })
        missing = compute_missingness(df)

        assert missing['a'] == 0
        assert missing['b'] == 25
        assert missing['c'] == 100
        assert list(missing.index) == ['c', 'b', 'a']

    def test_empty_table(self):
        with pytest.raises(ValueError, match="empty"):
            compute_missingness(pd.DataFrame({'a': []}))


class TestFeatureFilter:
    """Tests for FeatureFilter class."""

    @pytest.fixture
    def feature_filter(self):
        return FeatureFilter(label_column='classe', subject_column='user_name')

    def test_init(self, feature_filter):
        assert feature_filter.label_column == 'classe'
        assert feature_filter.subject_column == 'user_name'
        assert feature_filter.exclude_columns == []
        assert feature_filter._is_fitted == False

    def test_retains_only_complete_columns(self, feature_filter, train_df):
        feature_filter.fit(train_df)

        retained = set(feature_filter.retained_columns)
        assert retained == set(FULL_COLUMNS) | {'classe', 'user_name'}
        assert set(feature_filter.dropped_columns) == set(SPARSE_COLUMNS)

    def test_retained_have_no_missing_and_dropped_do(self, feature_filter, train_df):
        feature_filter.fit(train_df)
        counts = train_df.isnull().sum()

        for col in feature_filter.retained_columns:
            assert counts[col] == 0
        for col in feature_filter.dropped_columns:
            assert counts[col] > 0

    def test_keeps_column_order(self, feature_filter, train_df):
        feature_filter.fit(train_df)
        expected = [c for c in train_df.columns if c not in SPARSE_COLUMNS]
        assert feature_filter.retained_columns == expected

    def test_transform_before_fit(self, feature_filter, train_df):
        with pytest.raises(ValueError, match="must be fitted"):
            feature_filter.transform(train_df)

    def test_transform_test_table_without_label(self, feature_filter, train_df, test_df):
        feature_filter.fit(train_df)
        out = feature_filter.transform(test_df)

        assert 'classe' not in out.columns
        assert list(out.columns) == ['user_name'] + FULL_COLUMNS

    def test_transform_missing_feature(self, feature_filter, train_df):
        feature_filter.fit(train_df)
        with pytest.raises(SchemaMismatch):
            feature_filter.transform(train_df.drop(columns=['sensor_3']))

    def test_missing_label_column(self, feature_filter, train_df):
        with pytest.raises(SchemaMismatch, match="classe"):
            feature_filter.fit(train_df.drop(columns=['classe']))

    def test_every_column_incomplete(self, feature_filter):
        df = pd.DataFrame({
            'user_name': ['adelmo', 'pedro', 'jeremy'],
            'f1': [1.0, np.nan, 2.0],
            'f2': [np.nan, 1.0, 2.0],
            'classe': ['A', 'B', 'C']
        })
        feature_filter.fit(df)
        assert feature_filter.retained_columns == ['user_name', 'classe']

    def test_label_and_subject_kept_despite_missing_values(self, feature_filter, train_df):
        df = train_df.copy()
        df.loc[0, 'user_name'] = np.nan
        df.loc[1, 'classe'] = np.nan
        feature_filter.fit(df)

        assert 'user_name' in feature_filter.retained_columns
        assert 'classe' in feature_filter.retained_columns
        assert set(feature_filter.dropped_columns) == set(SPARSE_COLUMNS)
        assert not set(SPARSE_COLUMNS) & set(feature_filter.retained_columns)

    def test_exclude_columns(self, train_df):
        df = train_df.copy()
        df.insert(0, 'X', np.arange(len(df)))
        feature_filter = FeatureFilter(exclude_columns=['X', 'num_window', 'classe'])
        feature_filter.fit(df)

        assert 'X' not in feature_filter.retained_columns
        # label is never excluded
        assert 'classe' in feature_filter.retained_columns

    def test_excluded_columns_kept_apart_from_dropped(self, train_df):
        df = train_df.copy()
        df.insert(0, 'X', np.arange(len(df)))
        feature_filter = FeatureFilter(exclude_columns=['X'])
        feature_filter.fit(df)
        counts = df.isnull().sum()

        assert feature_filter.excluded_columns == ['X']
        assert set(feature_filter.dropped_columns) == set(SPARSE_COLUMNS)
        assert all(counts[c] > 0 for c in feature_filter.dropped_columns)
        # retained, dropped and excluded cover every column exactly once
        parts = (feature_filter.retained_columns + feature_filter.dropped_columns
                 + feature_filter.excluded_columns)
        assert sorted(parts) == sorted(df.columns)


class TestFilterPipeline:
    """Tests for the filter_pipeline function."""

    def test_pipeline_returns_expected_keys(self, train_df):
        result = filter_pipeline(train_df)

        expected_keys = [
            'data', 'feature_filter', 'missingness',
            'retained_columns', 'dropped_columns', 'excluded_columns',
            'predictor_columns'
        ]
        for key in expected_keys:
            assert key in result, f"Missing key: {key}"

    def test_pipeline_output(self, train_df):
        result = filter_pipeline(train_df)

        assert result['data'].shape == (100, 12)
        assert result['data'].isnull().sum().sum() == 0
        assert result['predictor_columns'] == ['user_name'] + FULL_COLUMNS
        assert result['excluded_columns'] == []

    def test_predictor_columns(self):
        assert get_predictor_columns(['a', 'classe', 'b']) == ['a', 'b']


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
