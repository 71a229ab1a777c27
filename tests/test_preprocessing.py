import numpy as np
import pandas as pd
import pytest

from heart_failure_ml.preprocessing import PreprocessingPipeline, create_preprocessing_pipeline


def test_fit_on_train_only():
    train = pd.DataFrame({"a": [1.0, 2.0, np.nan, 3.0], "b": [10.0, 20.0, 30.0, 40.0]})
    test = pd.DataFrame({"b": [25.0, np.nan], "a": [100.0, 2.0]})

    pipeline = PreprocessingPipeline()
    X_train = pipeline.fit_transform(train)
    X_test = pipeline.transform(test)

    assert not np.isnan(X_train).any()
    assert np.allclose(X_train.mean(axis=0), 0.0)
    # Test columns reordered to training order; NaN imputed with train median
    assert X_test[1, 1] == pytest.approx(pipeline.scaler.transform([[2.0, 25.0]])[0, 1])
    assert X_test[0, 0] > 3


def test_without_scaling():
    train = pd.DataFrame({"a": [1.0, np.nan, 3.0]})
    pipeline = create_preprocessing_pipeline({"standardize": False, "impute_strategy": "mean"})
    X = pipeline.fit_transform(train)
    assert X[:, 0].tolist() == [1.0, 2.0, 3.0]


def test_transform_before_fit():
    with pytest.raises(ValueError):
        PreprocessingPipeline().transform(pd.DataFrame({"a": [1.0]}))
