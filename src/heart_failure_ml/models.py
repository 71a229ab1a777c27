"""
Model definitions for heart-failure mortality prediction.

Includes:
- Logistic Regression
- Gaussian Naive Bayes
- K-Nearest Neighbors
- Linear / Quadratic Discriminant Analysis
- Decision Tree
- Random Forest
- Majority-class baseline
"""

import logging
from typing import Any, Dict, Optional

import numpy as np
from sklearn.base import BaseEstimator, ClassifierMixin
from sklearn.discriminant_analysis import (
    LinearDiscriminantAnalysis,
    QuadraticDiscriminantAnalysis,
)
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.tree import DecisionTreeClassifier

from heart_failure_ml import POSITIVE_LABEL

logger = logging.getLogger(__name__)


class MajorityClassBaseline(ClassifierMixin, BaseEstimator):
    """
    Baseline classifier that always predicts the majority class.

    Used to contextualize model performance relative to a trivial strategy.
    Its score is constant, so its ROC curve is the no-discrimination diagonal.
    """

    def fit(self, X, y):
        """Fit by finding the majority class."""
        classes, counts = np.unique(y, return_counts=True)
        self.classes_ = classes
        self.majority_class_ = classes[np.argmax(counts)]
        logger.debug(f"Majority class baseline: always predict class {self.majority_class_}")
        return self

    def predict(self, X) -> np.ndarray:
        """Predict majority class for all samples."""
        if not hasattr(self, "majority_class_"):
            raise ValueError("Baseline not fitted yet.")
        return np.full(len(X), self.majority_class_)

    def predict_proba(self, X) -> np.ndarray:
        """Return probability 1.0 for the majority class."""
        if not hasattr(self, "majority_class_"):
            raise ValueError("Baseline not fitted yet.")
        proba = np.zeros((len(X), len(self.classes_)))
        proba[:, list(self.classes_).index(self.majority_class_)] = 1.0
        return proba


def create_logistic_regression(
    params: Dict[str, Any],
    random_state: int = 42,
) -> LogisticRegression:
    """
    Create Logistic Regression model.

    Parameters
    ----------
    params : dict
        Hyperparameters (C, class_weight, max_iter)
    random_state : int
        Random state

    Returns
    -------
    LogisticRegression
        Configured model
    """
    return LogisticRegression(
        C=params.get("C", 1.0),
        class_weight=params.get("class_weight", None),
        max_iter=params.get("max_iter", 1000),
        random_state=random_state,
    )


def create_naive_bayes(params: Dict[str, Any]) -> GaussianNB:
    """Create Gaussian Naive Bayes classifier."""
    return GaussianNB(var_smoothing=params.get("var_smoothing", 1e-9))


def create_knn_classifier(
    params: Dict[str, Any],
) -> KNeighborsClassifier:
    """
    Create K-Nearest Neighbors classifier.

    Parameters
    ----------
    params : dict
        Hyperparameters (n_neighbors, weights, metric)

    Returns
    -------
    KNeighborsClassifier
        Configured model
    """
    return KNeighborsClassifier(
        n_neighbors=params.get("n_neighbors", 5),
        weights=params.get("weights", "uniform"),
        metric=params.get("metric", "euclidean"),
    )


def create_lda(params: Dict[str, Any]) -> LinearDiscriminantAnalysis:
    """Create Linear Discriminant Analysis classifier."""
    return LinearDiscriminantAnalysis(
        solver=params.get("solver", "svd"),
    )


def create_qda(params: Dict[str, Any]) -> QuadraticDiscriminantAnalysis:
    """Create Quadratic Discriminant Analysis classifier."""
    return QuadraticDiscriminantAnalysis(
        reg_param=params.get("reg_param", 0.0),
    )


def create_decision_tree_classifier(
    params: Dict[str, Any],
    random_state: int = 42,
) -> DecisionTreeClassifier:
    """
    Create Decision Tree classifier.

    Parameters
    ----------
    params : dict
        Hyperparameters (max_depth, min_samples_split, min_samples_leaf,
                         ccp_alpha, class_weight)
    random_state : int
        Random state

    Returns
    -------
    DecisionTreeClassifier
        Configured model
    """
    return DecisionTreeClassifier(
        max_depth=params.get("max_depth", None),
        min_samples_split=params.get("min_samples_split", 2),
        min_samples_leaf=params.get("min_samples_leaf", 1),
        ccp_alpha=params.get("ccp_alpha", 0.0),
        class_weight=params.get("class_weight", None),
        random_state=random_state,
    )


def create_random_forest_classifier(
    params: Dict[str, Any],
    random_state: int = 42,
) -> RandomForestClassifier:
    """
    Create Random Forest classifier.

    Parameters
    ----------
    params : dict
        Hyperparameters (n_estimators, max_depth, max_features,
                         min_samples_leaf, class_weight)
    random_state : int
        Random state

    Returns
    -------
    RandomForestClassifier
        Configured model
    """
    return RandomForestClassifier(
        n_estimators=params.get("n_estimators", 500),
        max_depth=params.get("max_depth", None),
        max_features=params.get("max_features", "sqrt"),
        min_samples_leaf=params.get("min_samples_leaf", 1),
        class_weight=params.get("class_weight", None),
        random_state=random_state,
        n_jobs=params.get("n_jobs", -1),
    )


def create_majority_baseline(params: Dict[str, Any]) -> MajorityClassBaseline:
    return MajorityClassBaseline()


MODEL_FACTORY = {
    "lr": create_logistic_regression,
    "nb": create_naive_bayes,
    "knn": create_knn_classifier,
    "lda": create_lda,
    "qda": create_qda,
    "dtc": create_decision_tree_classifier,
    "rf": create_random_forest_classifier,
    "baseline": create_majority_baseline,
}

MODEL_NAMES = {
    "lr": "Logistic Regression",
    "nb": "Naive Bayes",
    "knn": "K-Nearest Neighbors",
    "lda": "Linear Discriminant Analysis",
    "qda": "Quadratic Discriminant Analysis",
    "dtc": "Decision Tree",
    "rf": "Random Forest",
    "baseline": "Baseline (Majority Class)",
}

# Models whose factory accepts a random_state
SEEDED_MODELS = ("lr", "dtc", "rf")


def create_model(
    model_type: str,
    params: Optional[Dict[str, Any]] = None,
    random_state: int = 42,
):
    """
    Factory function to create any model by type.

    Parameters
    ----------
    model_type : str
        Model type code ('lr', 'nb', 'knn', 'lda', 'qda', 'dtc', 'rf', 'baseline')
    params : dict, optional
        Hyperparameters
    random_state : int
        Random state

    Returns
    -------
    estimator
        Configured sklearn estimator
    """
    if model_type not in MODEL_FACTORY:
        raise ValueError(
            f"Unknown model type: {model_type}. "
            f"Available: {list(MODEL_FACTORY.keys())}"
        )

    factory_func = MODEL_FACTORY[model_type]
    params = params or {}

    if model_type in SEEDED_MODELS:
        return factory_func(params, random_state=random_state)
    else:
        return factory_func(params)


def get_model_name(model_type: str) -> str:
    """Get human-readable model name."""
    return MODEL_NAMES.get(model_type, model_type)


def predict_scores(model, X: np.ndarray, positive_value: Any = POSITIVE_LABEL) -> np.ndarray:
    """
    Positive-class probability from a fitted estimator.

    Parameters
    ----------
    model : estimator
        Fitted classifier exposing ``predict_proba`` and ``classes_``
    X : np.ndarray
        Feature matrix
    positive_value : any
        Label value of the positive class

    Returns
    -------
    np.ndarray
        Scores, one per row of ``X``
    """
    classes = list(model.classes_)
    if positive_value not in classes:
        # Positive class never seen in training: probability is zero everywhere
        logger.warning(
            f"Positive class {positive_value!r} absent from fitted classes {classes}"
        )
        return np.zeros(len(X))
    return model.predict_proba(X)[:, classes.index(positive_value)]
