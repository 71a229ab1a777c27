"""
Heart Failure ML: mortality model comparison for heart-failure patients

A reproducible framework for comparing off-the-shelf classifiers on the
heart-failure clinical records dataset using a deterministic stratified
train/test split, confusion-matrix statistics and ROC/AUC analysis.
"""

__version__ = "1.0.0"

# Explicit classification threshold used throughout the pipeline
CLASSIFICATION_THRESHOLD = 0.5

# Outcome value treated as the positive class (death during follow-up)
POSITIVE_LABEL = 1

__all__ = [
    "__version__",
    "CLASSIFICATION_THRESHOLD",
    "POSITIVE_LABEL",
]
