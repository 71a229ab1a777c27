"""
Evaluation metrics module.

Binary classifier evaluation at a fixed threshold and across all thresholds:
- Confusion matrix (TP, FP, TN, FN) with derived ratios
- ROC curve and AUC (trapezoidal rule)
- Brier score
- Aggregation across repeated splits with confidence intervals

Any derived ratio whose denominator is zero is reported as ``None``
(undefined), never as 0 or NaN.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import auc, brier_score_loss, confusion_matrix, roc_curve

from heart_failure_ml import POSITIVE_LABEL
from heart_failure_ml.exceptions import (
    InvalidLabelDomainError,
    LengthMismatchError,
    SingleClassError,
)

logger = logging.getLogger(__name__)

# Metric keys that are counts or settings rather than rates
COUNT_KEYS = ("tp", "fp", "tn", "fn", "total", "threshold")


def _ratio(numerator: int, denominator: int) -> Optional[float]:
    if denominator == 0:
        return None
    return numerator / denominator


@dataclass(frozen=True)
class PredictionSet:
    """Index-aligned true labels, predicted labels and scores."""

    true_labels: np.ndarray
    predicted_labels: np.ndarray
    scores: np.ndarray

    def __post_init__(self):
        lengths = {len(self.true_labels), len(self.predicted_labels), len(self.scores)}
        if len(lengths) != 1:
            raise LengthMismatchError(
                f"PredictionSet sequences differ in length: "
                f"true={len(self.true_labels)}, predicted={len(self.predicted_labels)}, "
                f"scores={len(self.scores)}"
            )

    def __len__(self) -> int:
        return len(self.true_labels)


@dataclass(frozen=True)
class ConfusionMatrix:
    """
    Confusion matrix counts at a fixed decision threshold.

    Derived ratios are computed on demand and are ``None`` when undefined.
    """

    tp: int
    fp: int
    tn: int
    fn: int
    positive_value: Any = POSITIVE_LABEL

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.tn + self.fn

    @property
    def accuracy(self) -> Optional[float]:
        """(TP + TN) / total"""
        return _ratio(self.tp + self.tn, self.total)

    @property
    def sensitivity(self) -> Optional[float]:
        """True positive rate, TP / (TP + FN)."""
        return _ratio(self.tp, self.tp + self.fn)

    @property
    def specificity(self) -> Optional[float]:
        """True negative rate, TN / (TN + FP)."""
        return _ratio(self.tn, self.tn + self.fp)

    @property
    def ppv(self) -> Optional[float]:
        """Positive predictive value (precision), TP / (TP + FP)."""
        return _ratio(self.tp, self.tp + self.fp)

    @property
    def npv(self) -> Optional[float]:
        """Negative predictive value, TN / (TN + FN)."""
        return _ratio(self.tn, self.tn + self.fn)

    @property
    def false_positive_rate(self) -> Optional[float]:
        return _ratio(self.fp, self.fp + self.tn)

    @property
    def f1(self) -> Optional[float]:
        """Harmonic mean of PPV and sensitivity, 2TP / (2TP + FP + FN)."""
        return _ratio(2 * self.tp, 2 * self.tp + self.fp + self.fn)

    @property
    def balanced_accuracy(self) -> Optional[float]:
        if self.sensitivity is None or self.specificity is None:
            return None
        return (self.sensitivity + self.specificity) / 2

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tp": self.tp,
            "fp": self.fp,
            "tn": self.tn,
            "fn": self.fn,
            "total": self.total,
            "accuracy": self.accuracy,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
            "ppv": self.ppv,
            "npv": self.npv,
            "f1": self.f1,
            "balanced_accuracy": self.balanced_accuracy,
        }


@dataclass(frozen=True)
class ROCCurve:
    """
    ROC curve points ordered by ascending FPR (ties by ascending TPR).

    ``thresholds[i]`` is the decision threshold producing point ``i``;
    the sentinels ``+inf`` and ``-inf`` yield (0, 0) and (1, 1).
    """

    fpr: np.ndarray
    tpr: np.ndarray
    thresholds: np.ndarray
    auc: float

    @property
    def points(self) -> List[Tuple[float, float]]:
        return [(float(x), float(y)) for x, y in zip(self.fpr, self.tpr)]

    def __len__(self) -> int:
        return len(self.fpr)


def _check_lengths(a: np.ndarray, b: np.ndarray, names: Tuple[str, str]):
    if len(a) != len(b):
        raise LengthMismatchError(
            f"{names[0]} and {names[1]} must have equal length, "
            f"got {len(a)} and {len(b)}"
        )


def confusion(
    true_labels: Sequence[Any],
    predicted_labels: Sequence[Any],
    positive_value: Any = POSITIVE_LABEL,
) -> ConfusionMatrix:
    """
    Compute the confusion matrix of binary predictions.

    Parameters
    ----------
    true_labels : sequence
        True labels
    predicted_labels : sequence
        Predicted labels, same two-valued domain as ``true_labels``
    positive_value : any
        Label value counted as positive (default: 1)

    Returns
    -------
    ConfusionMatrix
        Exact TP/FP/TN/FN counts
    """
    y_true = np.asarray(true_labels)
    y_pred = np.asarray(predicted_labels)
    _check_lengths(y_true, y_pred, ("true_labels", "predicted_labels"))

    if len(y_true) == 0:
        return ConfusionMatrix(tp=0, fp=0, tn=0, fn=0, positive_value=positive_value)

    domain = np.union1d(np.unique(y_true), np.unique(y_pred))
    if len(domain) > 2:
        raise InvalidLabelDomainError(
            f"Labels must come from a two-valued domain, found {domain.tolist()}"
        )
    if len(domain) == 2 and positive_value not in domain.tolist():
        raise InvalidLabelDomainError(
            f"positive_value {positive_value!r} is not one of the labels {domain.tolist()}"
        )

    # Boolean encoding keeps the matrix 2x2 even when a class is absent
    cm = confusion_matrix(
        y_true == positive_value,
        y_pred == positive_value,
        labels=[False, True],
    )
    tn, fp, fn, tp = (int(v) for v in cm.ravel())

    return ConfusionMatrix(tp=tp, fp=fp, tn=tn, fn=fn, positive_value=positive_value)


def roc(
    true_labels: Sequence[Any],
    scores: Sequence[float],
    positive_value: Any = POSITIVE_LABEL,
) -> ROCCurve:
    """
    Compute the ROC curve and its AUC.

    Every distinct score is a candidate threshold, bracketed by ``+inf`` and
    ``-inf``; a record is predicted positive when ``score >= threshold``.

    Parameters
    ----------
    true_labels : sequence
        True labels (two-valued)
    scores : sequence of float
        Predicted probability (or any monotone score) for the positive class
    positive_value : any
        Label value counted as positive (default: 1)

    Returns
    -------
    ROCCurve
        FPR/TPR points, thresholds and trapezoidal AUC

    Raises
    ------
    SingleClassError
        ``true_labels`` contains only one class
    """
    y_true = np.asarray(true_labels)
    y_score = np.asarray(scores, dtype=float)
    _check_lengths(y_true, y_score, ("true_labels", "scores"))

    classes = np.unique(y_true)
    if len(classes) > 2:
        raise InvalidLabelDomainError(
            f"true_labels must be two-valued, found {classes.tolist()}"
        )
    if len(classes) == 2 and positive_value not in classes.tolist():
        raise InvalidLabelDomainError(
            f"positive_value {positive_value!r} is not one of the labels {classes.tolist()}"
        )
    is_positive = y_true == positive_value
    n_pos = int(is_positive.sum())
    n_neg = len(y_true) - n_pos
    if len(classes) < 2 or n_pos == 0 or n_neg == 0:
        raise SingleClassError(
            f"ROC/AUC is undefined: true_labels contain a single class "
            f"({classes.tolist()}, positive_value={positive_value!r})"
        )
    if not np.all(np.isfinite(y_score)):
        raise ValueError("scores must be finite")

    # drop_intermediate=False keeps one point per distinct score, starting at
    # the +inf threshold; the -inf sentinel closes the curve at (1, 1).
    fpr, tpr, thresholds = roc_curve(is_positive, y_score, pos_label=True, drop_intermediate=False)
    fpr = np.r_[fpr, 1.0]
    tpr = np.r_[tpr, 1.0]
    thresholds = np.r_[np.inf, thresholds[1:], -np.inf]

    ordering = np.lexsort((tpr, fpr))
    fpr, tpr, thresholds = fpr[ordering], tpr[ordering], thresholds[ordering]

    area = float(auc(fpr, tpr))

    logger.debug(f"ROC computed over {len(thresholds)} thresholds, AUC={area:.4f}")

    return ROCCurve(fpr=fpr, tpr=tpr, thresholds=thresholds, auc=area)


def evaluate_predictions(
    predictions: PredictionSet,
    positive_value: Any = POSITIVE_LABEL,
    threshold: Optional[float] = None,
    cm: Optional[ConfusionMatrix] = None,
    curve: Optional[ROCCurve] = None,
) -> Dict[str, Any]:
    """
    Calculate all evaluation metrics for a prediction set.

    Parameters
    ----------
    predictions : PredictionSet
        True labels, predicted labels and scores
    positive_value : any
        Label value counted as positive
    threshold : float, optional
        Decision threshold that produced ``predicted_labels`` (recorded only)
    cm : ConfusionMatrix, optional
        Already computed confusion matrix of ``predictions``
    curve : ROCCurve, optional
        Already computed ROC curve of ``predictions``

    Returns
    -------
    dict
        Confusion counts, derived ratios, ``roc_auc`` and ``brier``
    """
    if cm is None:
        cm = confusion(predictions.true_labels, predictions.predicted_labels, positive_value)
    metrics = cm.as_dict()

    if curve is None:
        try:
            curve = roc(predictions.true_labels, predictions.scores, positive_value)
        except SingleClassError as e:
            logger.warning(f"Could not calculate ROC-AUC: {e}")
    metrics["roc_auc"] = curve.auc if curve is not None else None

    scores = np.asarray(predictions.scores, dtype=float)
    if scores.size and scores.min() >= 0.0 and scores.max() <= 1.0:
        metrics["brier"] = float(
            brier_score_loss(
                (np.asarray(predictions.true_labels) == positive_value).astype(int),
                scores,
            )
        )
    else:
        metrics["brier"] = None

    metrics["threshold"] = threshold

    return metrics


def aggregate_metrics(
    metric_dicts: List[Dict[str, Any]],
    ci: float = 0.95,
) -> Dict[str, Tuple[Optional[float], Optional[float], Optional[float]]]:
    """
    Aggregate metrics across repeated runs with confidence intervals.

    Parameters
    ----------
    metric_dicts : list
        List of metric dictionaries, one per run
    ci : float
        Confidence interval level (default: 0.95 for 95% CI)

    Returns
    -------
    dict
        Dictionary with metric_name: (mean, lower_ci, upper_ci), bounds
        clipped to [0, 1];
        ``(None, None, None)`` when every run left the metric undefined
    """
    import scipy.stats as stats

    if not metric_dicts:
        return {}

    aggregated = {}

    for metric_name in metric_dicts[0].keys():
        if metric_name in COUNT_KEYS:
            continue

        values = [run[metric_name] for run in metric_dicts if run.get(metric_name) is not None]

        if not values:
            aggregated[metric_name] = (None, None, None)
            continue

        mean_val = float(np.mean(values))

        if len(values) > 1:
            std_val = np.std(values, ddof=1)
            sem = std_val / np.sqrt(len(values))
            ci_delta = sem * stats.t.ppf((1 + ci) / 2, len(values) - 1)
            # Every aggregated metric is a rate or probability score in [0, 1]
            lower_ci = float(max(mean_val - ci_delta, 0.0))
            upper_ci = float(min(mean_val + ci_delta, 1.0))
        else:
            lower_ci = mean_val
            upper_ci = mean_val

        aggregated[metric_name] = (mean_val, lower_ci, upper_ci)

    return aggregated
