import numpy as np
import pytest

from heart_failure_ml.models import (
    MODEL_FACTORY,
    MajorityClassBaseline,
    create_model,
    get_model_name,
    predict_scores,
)


@pytest.fixture
def toy_xy():
    rng = np.random.default_rng(0)
    y = np.array([0] * 40 + [1] * 20)
    X = rng.normal(size=(60, 3)) + y[:, None] * 1.5
    return X, y


@pytest.mark.parametrize("model_type", sorted(MODEL_FACTORY))
def test_every_model_fits_and_scores(model_type, toy_xy):
    X, y = toy_xy
    model = create_model(model_type, {}, random_state=0)
    model.fit(X, y)
    scores = predict_scores(model, X, positive_value=1)
    assert scores.shape == (60,)
    assert np.all((scores >= 0.0) & (scores <= 1.0))


def test_unknown_model_type():
    with pytest.raises(ValueError, match="Unknown model type"):
        create_model("svm", {})


def test_model_params_forwarded():
    model = create_model("knn", {"n_neighbors": 7})
    assert model.n_neighbors == 7
    forest = create_model("rf", {"n_estimators": 10}, random_state=3)
    assert forest.n_estimators == 10
    assert forest.random_state == 3


def test_get_model_name():
    assert get_model_name("qda") == "Quadratic Discriminant Analysis"
    assert get_model_name("custom") == "custom"


def test_majority_baseline(toy_xy):
    X, y = toy_xy
    baseline = MajorityClassBaseline().fit(X, y)
    assert baseline.majority_class_ == 0
    assert np.all(baseline.predict(X) == 0)
    assert np.all(predict_scores(baseline, X, positive_value=1) == 0.0)


def test_majority_baseline_not_fitted():
    with pytest.raises(ValueError):
        MajorityClassBaseline().predict(np.zeros((2, 1)))


def test_predict_scores_positive_class_unseen():
    baseline = MajorityClassBaseline().fit(np.zeros((3, 1)), np.array([0, 0, 0]))
    assert np.all(predict_scores(baseline, np.zeros((4, 1)), positive_value=1) == 0.0)
