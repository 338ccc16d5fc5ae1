"""
Exercise Quality Report
=======================

Classifies how well a dumbbell exercise was performed from wearable
sensor readings, comparing two classifiers by cross-validated accuracy.

Modules:
    - data_loader: CSV ingestion and schema validation
    - preprocessing: Removal of columns with missing values
    - eda: Exploratory plots of the training table
    - folds: Stratified k-fold partitioning
    - model: Classifier backends (gradient boosting, LDA)
    - evaluation: Cross-validated accuracy per algorithm
    - selection: Choice of the best algorithm
    - prediction: Final retraining and test-set prediction
"""

__version__ = "1.0.0"
