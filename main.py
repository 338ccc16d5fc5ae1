#!/usr/bin/env python3
"""
Exercise Quality Report - Main Pipeline
=======================================

Orchestrates the analysis of the Weight Lifting Exercises sensor data.

Phases:
    1. Loading - Fetch the training and test tables
    2. Feature filter - Drop columns with missing values
    3. EDA - Exploratory plots of the filtered training table
    4. Folds - Stratified k-fold partition
    5. Cross-validation - Accuracy of each candidate algorithm per fold
    6. Selection - Pick the algorithm with the best mean accuracy
    7. Prediction - Retrain on all training rows and label the test set

Usage:
    # Run complete pipeline with the default config
    python main.py

    # Use local copies of the data
    python main.py --train data/raw/pml-training.csv --test data/raw/pml-testing.csv

    # Change fold count and seed
    python main.py --folds 10 --seed 7
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

sys.path.insert(0, str(Path(__file__).parent))

from exercise_quality.data_loader import (
    load_config, load_datasets, validate_observations, print_data_summary,
    DEFAULT_LABELS, DEFAULT_SUBJECTS, DEFAULT_TRAIN_URL, DEFAULT_TEST_URL
)
from exercise_quality.errors import PipelineError
from exercise_quality.preprocessing import filter_pipeline, print_filter_summary, DEFAULT_EXCLUDE_COLUMNS
from exercise_quality.eda import generate_eda_report, print_correlation_insights
from exercise_quality.folds import make_folds, validate_folds, fold_summary
from exercise_quality.model import get_model_params, print_model_summary
from exercise_quality.evaluation import evaluate_candidates, generate_cv_report, print_cv_report
from exercise_quality.selection import select_best_model, print_selection_report
from exercise_quality.prediction import run_final_prediction, print_prediction_results

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def _banner(title: str) -> None:
    print("\n" + "=" * 70)
    print(title)
    print("=" * 70)


def run_full_pipeline(config: Dict[str, Any], show_eda: bool = True) -> Dict[str, Any]:
    """
    Execute the complete pipeline.

    Args:
        config: Configuration dictionary
        show_eda: Whether to produce the exploratory figures

    Returns:
        Dictionary containing all phase results

    Raises:
        PipelineError: If any phase fails; ``stage`` names the phase
    """
    data_cfg = config.get('data', {})
    cv_cfg = config.get('cv', {})
    model_cfg = config.get('models', {})
    output_cfg = config.get('output', {})

    label_column = data_cfg.get('label_column', 'classe')
    subject_column = data_cfg.get('subject_column', 'user_name')
    id_column = data_cfg.get('id_column', 'problem_id')
    labels = data_cfg.get('labels', DEFAULT_LABELS)
    subjects = data_cfg.get('subjects', DEFAULT_SUBJECTS)
    candidates = model_cfg.get('candidates', ['gradient_boosting', 'lda'])
    figures_path = output_cfg.get('figures_path', 'reports/figures/')
    metrics_path = output_cfg.get('metrics_path', 'reports/metrics/')

    _banner("EXERCISE QUALITY REPORT")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")

    results: Dict[str, Any] = {'config': config}

    # Phase 1: Loading
    _banner("PHASE 1: LOADING DATA")
    train_df, test_df = load_datasets(
        data_cfg.get('train_url', DEFAULT_TRAIN_URL),
        data_cfg.get('test_url', DEFAULT_TEST_URL),
        label_column=label_column,
        id_column=id_column,
        na_values=data_cfg.get('na_values')
    )
    validate_observations(train_df, label_column, labels, subject_column, subjects)
    validate_observations(test_df, None, labels, subject_column, subjects)
    print_data_summary(train_df, "TRAINING")
    print_data_summary(test_df, "TEST")
    results['train_shape'] = train_df.shape
    results['test_shape'] = test_df.shape

    # Phase 2: Feature filter
    _banner("PHASE 2: FEATURE FILTER")
    filtered = filter_pipeline(
        train_df,
        label_column=label_column,
        subject_column=subject_column,
        exclude_columns=data_cfg.get('exclude_columns', DEFAULT_EXCLUDE_COLUMNS)
    )
    print_filter_summary(filtered)
    results['filter'] = filtered
    train_data = filtered['data'].reset_index(drop=True)
    predictors = filtered['predictor_columns']

    # Phase 3: EDA
    if show_eda:
        _banner("PHASE 3: EXPLORATORY DATA ANALYSIS")
        pairs = config.get('eda', {}).get('scatter_pairs')
        report = generate_eda_report(
            train_df, train_data, filtered['missingness'],
            label_column=label_column,
            subject_column=subject_column,
            scatter_pairs=[tuple(p) for p in pairs] if pairs else None,
            output_dir=figures_path
        )
        print_correlation_insights(report['strong_correlations'])
        print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {figures_path}")
        results['eda'] = report

    # Phase 4: Folds
    _banner("PHASE 4: FOLD PARTITION")
    assignment = make_folds(
        train_data[label_column],
        n_folds=cv_cfg.get('n_folds', 5),
        random_state=cv_cfg.get('random_state', 1234)
    )
    validate_folds(assignment, len(train_data))
    print(fold_summary(assignment, train_data[label_column]).to_string())
    results['folds'] = assignment

    # Phase 5: Cross-validation
    _banner("PHASE 5: CROSS-VALIDATION")
    cv_results = evaluate_candidates(
        train_data, assignment, candidates, predictors,
        label_column=label_column,
        labels=labels,
        model_params={name: get_model_params(config, name) for name in candidates}
    )
    print_cv_report(cv_results)
    results['cv'] = cv_results
    results['cv_report'] = generate_cv_report(
        cv_results, figures_dir=figures_path, metrics_dir=metrics_path
    )

    # Phase 6: Selection
    _banner("PHASE 6: MODEL SELECTION")
    selected = select_best_model(cv_results)
    print_selection_report(cv_results, selected)
    results['selected'] = selected

    # Phase 7: Prediction
    _banner("PHASE 7: FINAL PREDICTION")
    prediction = run_final_prediction(
        train_data, test_df, selected, predictors,
        label_column=label_column,
        labels=labels,
        params=get_model_params(config, selected),
        id_column=id_column,
        output_dir=data_cfg.get('predictions_path', 'data/predictions/')
    )
    print_model_summary(prediction['model'])
    print_prediction_results(prediction)
    results['prediction'] = prediction

    _banner("PIPELINE COMPLETE")
    print(f"  • Training rows: {train_df.shape[0]} ({len(predictors)} predictors)")
    print(f"  • Selected model: {selected} "
          f"(mean accuracy {cv_results[selected]['mean_accuracy']:.4f})")
    print(f"  • Test predictions: {len(prediction['predictions'])}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def apply_overrides(
    config: Dict[str, Any],
    train: Optional[str] = None,
    test: Optional[str] = None,
    folds: Optional[int] = None,
    seed: Optional[int] = None
) -> Dict[str, Any]:
    """Apply command-line overrides on top of the loaded config."""
    config.setdefault('data', {})
    config.setdefault('cv', {})
    if train:
        config['data']['train_url'] = train
    if test:
        config['data']['test_url'] = test
    if folds is not None:
        config['cv']['n_folds'] = folds
    if seed is not None:
        config['cv']['random_state'] = seed
    return config


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Exercise quality classification report",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --train data/raw/pml-training.csv --test data/raw/pml-testing.csv
  python main.py --folds 10 --seed 7 --skip-eda
        """
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument('--train', type=str, help='Training CSV URL or path (overrides config)')
    parser.add_argument('--test', type=str, help='Test CSV URL or path (overrides config)')
    parser.add_argument('--folds', '-k', type=int, help='Number of cross-validation folds')
    parser.add_argument('--seed', type=int, help='Random seed for the fold partition')

    parser.add_argument(
        '--skip-eda',
        action='store_true',
        help='Do not produce exploratory figures'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args()

    # Check if config exists
    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)

    config = apply_overrides(load_config(args.config), args.train, args.test, args.folds, args.seed)
    level = 'DEBUG' if args.verbose else config.get('logging', {}).get('level', 'INFO')
    setup_logging(level)

    try:
        run_full_pipeline(config, show_eda=not args.skip_eda)
        return 0

    except PipelineError as e:
        logger.error(f"Pipeline failed during stage '{e.stage}': {e}")
        print(f"\n❌ Pipeline failed during stage '{e.stage}': {e}")
        return 1

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
