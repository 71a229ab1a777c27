import numpy as np
import pytest
from sklearn.metrics import roc_auc_score, roc_curve

from heart_failure_ml import evaluation
from heart_failure_ml.evaluation import (
    ConfusionMatrix,
    PredictionSet,
    aggregate_metrics,
    confusion,
    evaluate_predictions,
    roc,
)
from heart_failure_ml.exceptions import (
    InvalidLabelDomainError,
    LengthMismatchError,
    SingleClassError,
)


def test_confusion_concrete_scenario():
    cm = confusion([1, 0, 1, 0, 0], [1, 0, 0, 0, 1], positive_value=1)
    assert (cm.tp, cm.fn, cm.tn, cm.fp) == (1, 1, 2, 1)
    assert cm.accuracy == pytest.approx(0.6)
    assert cm.sensitivity == pytest.approx(0.5)
    assert cm.specificity == pytest.approx(2 / 3, abs=1e-3)
    assert cm.ppv == pytest.approx(0.5)
    assert cm.npv == pytest.approx(2 / 3)


def test_confusion_perfect_predictions():
    labels = [0, 1, 1, 0, 1]
    cm = confusion(labels, labels)
    assert cm.fp == 0
    assert cm.fn == 0
    assert cm.accuracy == 1.0


def test_confusion_string_labels_and_positive_value():
    cm = confusion(["died", "alive", "died"], ["died", "died", "alive"], positive_value="died")
    assert (cm.tp, cm.fp, cm.tn, cm.fn) == (1, 1, 0, 1)


def test_confusion_undefined_ratios():
    # No actual positives and no predicted positives
    cm = confusion([0, 0, 0], [0, 0, 0])
    assert cm.tn == 3
    assert cm.sensitivity is None
    assert cm.ppv is None
    assert cm.f1 is None
    assert cm.balanced_accuracy is None
    assert cm.specificity == 1.0
    assert cm.as_dict()["sensitivity"] is None


def test_confusion_empty_input():
    cm = confusion([], [])
    assert cm.total == 0
    assert cm.accuracy is None


def test_confusion_length_mismatch():
    with pytest.raises(LengthMismatchError):
        confusion([0, 1, 1], [0, 1])


def test_confusion_three_valued_domain():
    with pytest.raises(InvalidLabelDomainError):
        confusion([0, 1, 2], [0, 1, 1])


def test_confusion_positive_value_outside_domain():
    with pytest.raises(InvalidLabelDomainError):
        confusion(["a", "b"], ["a", "b"], positive_value=1)


def test_confusion_matrix_derived_values():
    cm = ConfusionMatrix(tp=8, fp=2, tn=5, fn=0)
    assert cm.total == 15
    assert cm.npv == 1.0
    assert cm.f1 == pytest.approx(16 / 18)
    assert cm.balanced_accuracy == pytest.approx((1.0 + 5 / 7) / 2)


def test_roc_perfect_separation():
    curve = roc([0, 0, 1, 1], [0.1, 0.2, 0.8, 0.9])
    assert curve.auc == pytest.approx(1.0)
    assert curve.points[0] == (0.0, 0.0)
    assert curve.points[-1] == (1.0, 1.0)


def test_roc_inverted_scores():
    curve = roc([0, 0, 1, 1], [0.9, 0.8, 0.2, 0.1])
    assert curve.auc == pytest.approx(0.0)


def test_roc_constant_score_is_diagonal():
    curve = roc([0, 1, 0, 1, 1], [0.5] * 5)
    assert curve.auc == pytest.approx(0.5)
    assert curve.points == [(0.0, 0.0), (1.0, 1.0), (1.0, 1.0)]


def test_roc_thresholds_include_sentinels():
    curve = roc([0, 1, 0, 1], [0.3, 0.6, 0.6, 0.9])
    assert curve.thresholds[0] == np.inf
    assert curve.thresholds[-1] == -np.inf
    # +inf, three distinct scores, -inf
    assert len(curve) == 5


def test_roc_points_match_confusion_sweep():
    y = np.array([1, 0, 1, 1, 0, 0, 1, 0])
    s = np.array([0.9, 0.7, 0.7, 0.4, 0.3, 0.3, 0.2, 0.1])
    curve = roc(y, s)
    for threshold, fpr, tpr in zip(curve.thresholds, curve.fpr, curve.tpr):
        cm = confusion(y, (s >= threshold).astype(int))
        assert fpr == pytest.approx(cm.false_positive_rate)
        assert tpr == pytest.approx(cm.sensitivity)


def test_roc_agrees_with_sklearn_roc_curve():
    rng = np.random.default_rng(11)
    for _ in range(50):
        y = rng.integers(0, 2, 40)
        y[:2] = [0, 1]
        # Coarse scores force many ties
        s = rng.integers(0, 8, 40) / 8
        curve = roc(y, s)
        fpr, tpr, thresholds = roc_curve(y, s, pos_label=1, drop_intermediate=False)
        assert np.array_equal(curve.fpr, np.r_[fpr, 1.0])
        assert np.array_equal(curve.tpr, np.r_[tpr, 1.0])
        assert np.array_equal(curve.thresholds[1:-1], thresholds[1:])
        assert curve.auc == pytest.approx(roc_auc_score(y, s))


def test_roc_with_ties_half_credit():
    # One tied positive/negative pair contributes half credit
    curve = roc([0, 1], [0.5, 0.5])
    assert curve.auc == pytest.approx(0.5)
    curve = roc([0, 1, 0, 1], [0.1, 0.5, 0.5, 0.9])
    assert curve.auc == pytest.approx(0.875)


def test_roc_monotone_non_decreasing():
    rng = np.random.default_rng(5)
    y = rng.integers(0, 2, 200)
    s = rng.random(200)
    curve = roc(y, s)
    assert np.all(np.diff(curve.fpr) >= 0)
    assert np.all(np.diff(curve.tpr) >= 0)
    assert 0.0 <= curve.auc <= 1.0


def test_random_scores_auc_near_half():
    rng = np.random.default_rng(123)
    aucs = []
    for _ in range(200):
        y = rng.integers(0, 2, 100)
        y[:2] = [0, 1]
        aucs.append(roc(y, rng.random(100)).auc)
    assert np.mean(aucs) == pytest.approx(0.5, abs=0.02)


def test_roc_single_class_rejected():
    with pytest.raises(SingleClassError):
        roc([1, 1, 1], [0.2, 0.5, 0.9])


def test_roc_positive_value_absent_rejected():
    with pytest.raises(SingleClassError):
        roc([0, 0, 0], [0.2, 0.5, 0.9], positive_value=1)


def test_roc_non_finite_scores_rejected():
    with pytest.raises(ValueError):
        roc([0, 1], [0.2, np.nan])


def test_roc_length_mismatch():
    with pytest.raises(LengthMismatchError):
        roc([0, 1, 1], [0.2, 0.4])


def test_prediction_set_length_mismatch():
    with pytest.raises(LengthMismatchError):
        PredictionSet(
            true_labels=np.array([0, 1]),
            predicted_labels=np.array([0, 1, 1]),
            scores=np.array([0.1, 0.9]),
        )


def test_evaluate_predictions():
    predictions = PredictionSet(
        true_labels=np.array([1, 0, 1, 0, 0]),
        predicted_labels=np.array([1, 0, 0, 0, 1]),
        scores=np.array([0.9, 0.2, 0.4, 0.1, 0.6]),
    )
    metrics = evaluate_predictions(predictions, positive_value=1, threshold=0.5)
    assert metrics["tp"] == 1
    assert metrics["accuracy"] == pytest.approx(0.6)
    assert metrics["roc_auc"] == pytest.approx(5 / 6)
    assert metrics["brier"] is not None
    assert metrics["threshold"] == 0.5


def test_evaluate_predictions_single_class_auc_undefined():
    predictions = PredictionSet(
        true_labels=np.array([0, 0]),
        predicted_labels=np.array([0, 1]),
        scores=np.array([0.1, 0.7]),
    )
    metrics = evaluate_predictions(predictions)
    assert metrics["roc_auc"] is None
    assert metrics["sensitivity"] is None


def test_aggregate_metrics():
    runs = [
        {"accuracy": 0.8, "sensitivity": None, "tp": 3},
        {"accuracy": 0.6, "sensitivity": None, "tp": 2},
    ]
    agg = aggregate_metrics(runs, ci=0.95)
    assert "tp" not in agg
    mean, lower, upper = agg["accuracy"]
    assert mean == pytest.approx(0.7)
    assert lower < mean < upper
    assert agg["sensitivity"] == (None, None, None)


def test_aggregate_metrics_single_run():
    agg = aggregate_metrics([{"roc_auc": 0.75}])
    assert agg["roc_auc"] == (0.75, 0.75, 0.75)


def test_aggregate_metrics_bounds_clipped_to_unit_interval():
    runs = [{"sensitivity": 1.0, "brier": 0.0}, {"sensitivity": 0.4, "brier": 0.3}]
    agg = aggregate_metrics(runs, ci=0.95)
    mean, lower, upper = agg["sensitivity"]
    assert mean == pytest.approx(0.7)
    assert lower == 0.0
    assert upper == 1.0
    assert agg["brier"][1] == 0.0


def test_evaluate_predictions_reuses_given_results(monkeypatch):
    predictions = PredictionSet(
        true_labels=np.array([1, 0, 1, 0, 0]),
        predicted_labels=np.array([1, 0, 0, 0, 1]),
        scores=np.array([0.9, 0.2, 0.4, 0.1, 0.6]),
    )
    cm = confusion(predictions.true_labels, predictions.predicted_labels)
    curve = roc(predictions.true_labels, predictions.scores)
    expected = evaluate_predictions(predictions, threshold=0.5)

    def fail(*args, **kwargs):
        raise AssertionError("recomputed")

    monkeypatch.setattr(evaluation, "confusion", fail)
    monkeypatch.setattr(evaluation, "roc", fail)

    assert evaluate_predictions(predictions, threshold=0.5, cm=cm, curve=curve) == expected
