import numpy as np
import pandas as pd
import pytest

from heart_failure_ml.io import HEART_FAILURE_COLUMNS


def make_heart_failure_frame(n_records: int = 299, n_deaths: int = 96, seed: int = 0) -> pd.DataFrame:
    """Synthetic records with the heart-failure header; deaths have lower ejection fraction."""
    rng = np.random.default_rng(seed)
    death = np.zeros(n_records, dtype=int)
    death[rng.choice(n_records, size=n_deaths, replace=False)] = 1

    df = pd.DataFrame(
        {
            "age": rng.integers(40, 95, n_records).astype(float),
            "anaemia": rng.integers(0, 2, n_records),
            "creatinine_phosphokinase": rng.integers(23, 7861, n_records),
            "diabetes": rng.integers(0, 2, n_records),
            "ejection_fraction": np.where(death == 1, 30, 40) + rng.integers(-10, 10, n_records),
            "high_blood_pressure": rng.integers(0, 2, n_records),
            "platelets": rng.normal(263000, 97000, n_records),
            "serum_creatinine": np.where(death == 1, 1.8, 1.2) + rng.normal(0, 0.3, n_records),
            "serum_sodium": rng.integers(113, 148, n_records),
            "sex": rng.integers(0, 2, n_records),
            "smoking": rng.integers(0, 2, n_records),
            "time": rng.integers(4, 285, n_records),
            "DEATH_EVENT": death,
        }
    )
    return df[HEART_FAILURE_COLUMNS]


@pytest.fixture
def heart_failure_df():
    return make_heart_failure_frame()


@pytest.fixture
def heart_failure_csv(tmp_path, heart_failure_df):
    path = tmp_path / "heart_failure_clinical_records_dataset.csv"
    heart_failure_df.to_csv(path, index=False)
    return path


@pytest.fixture
def thirty_seventy_df():
    """100 records, 30 positive / 70 negative, in interleaved order."""
    labels = np.array([1 if i % 10 < 3 else 0 for i in range(100)])
    return pd.DataFrame({"record_id": np.arange(100), "x": np.arange(100) * 0.5, "label": labels})
