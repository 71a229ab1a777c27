"""
Data I/O module for loading the heart-failure clinical records dataset.

Responsibilities:
- Load data from a delimited file
- Validate the binary outcome column
- Select feature columns
- Check feature types
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from heart_failure_ml.exceptions import InvalidDatasetError, InvalidLabelDomainError
from heart_failure_ml.splitting import validate_binary_labels

logger = logging.getLogger(__name__)

# Header of the reference dataset (299 patients, follow-up mortality outcome)
HEART_FAILURE_COLUMNS = [
    "age",
    "anaemia",
    "creatinine_phosphokinase",
    "diabetes",
    "ejection_fraction",
    "high_blood_pressure",
    "platelets",
    "serum_creatinine",
    "serum_sodium",
    "sex",
    "smoking",
    "time",
    "DEATH_EVENT",
]

DEFAULT_OUTCOME_COLUMN = "DEATH_EVENT"


def load_data(
    filepath: Path,
    outcome_col: str = DEFAULT_OUTCOME_COLUMN,
    sep: str = ",",
) -> pd.DataFrame:
    """
    Load the dataset from a delimited file.

    Parameters
    ----------
    filepath : Path
        Path to the delimited file (header row required)
    outcome_col : str
        Column name containing the binary outcome
    sep : str
        Field delimiter (default: comma)

    Returns
    -------
    pd.DataFrame
        Loaded dataframe
    """
    logger.info(f"Loading data from {filepath}")

    df = pd.read_csv(filepath, sep=sep)
    logger.info(f"Loaded dataset with shape {df.shape}")

    if df.empty:
        raise InvalidDatasetError(f"No records found in {filepath}")

    if outcome_col not in df.columns:
        raise InvalidDatasetError(
            f"Outcome column '{outcome_col}' not found. "
            f"Available columns: {list(df.columns)}"
        )

    missing_header = [c for c in HEART_FAILURE_COLUMNS if c not in df.columns]
    if missing_header:
        logger.warning(
            f"Dataset header differs from the reference heart-failure header; "
            f"missing columns: {missing_header}"
        )

    return df


def select_feature_columns(
    df: pd.DataFrame,
    outcome_col: str = DEFAULT_OUTCOME_COLUMN,
    exclude: Optional[Iterable[str]] = None,
) -> List[str]:
    """
    Select feature columns: everything except the outcome and excluded names.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    outcome_col : str
        Outcome column name
    exclude : iterable of str, optional
        Additional columns to leave out (e.g. 'time')

    Returns
    -------
    list
        Feature column names, in file order
    """
    exclude = set(exclude or [])

    unknown = exclude - set(df.columns)
    if unknown:
        logger.warning(f"Excluded columns not present in data: {sorted(unknown)}")

    features = [c for c in df.columns if c != outcome_col and c not in exclude]

    logger.info(f"Selected {len(features)} feature columns")
    logger.debug(f"Features: {features}")

    return features


def check_outcome(df: pd.DataFrame, outcome_col: str = DEFAULT_OUTCOME_COLUMN) -> np.ndarray:
    """
    Validate that the outcome is complete and binary.

    Returns
    -------
    np.ndarray
        Sorted distinct outcome values
    """
    return validate_binary_labels(df, outcome_col)


def prepare_dataset(
    filepath: Path,
    outcome_col: str = DEFAULT_OUTCOME_COLUMN,
    exclude_columns: Optional[Iterable[str]] = None,
    positive_value=1,
    config: Optional[dict] = None,
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Complete data preparation pipeline.

    Steps:
    1. Load data from file
    2. Validate binary outcome
    3. Select feature columns
    4. Check that features are numeric

    Parameters
    ----------
    filepath : Path
        Path to data file
    outcome_col : str
        Outcome column name
    exclude_columns : iterable of str, optional
        Columns to leave out of the feature set
    positive_value : any
        Outcome value treated as positive (for prevalence logging)
    config : dict, optional
        Configuration dictionary (overrides other parameters if provided)

    Returns
    -------
    df : pd.DataFrame
        Dataframe with feature columns and the outcome
    feature_names : list
        List of feature column names
    """
    if config is not None:
        outcome_col = config.get("outcome_column", outcome_col)
        exclude_columns = config.get("exclude_columns", exclude_columns)
        positive_value = config.get("positive_value", positive_value)

    df = load_data(filepath=filepath, outcome_col=outcome_col)

    values = check_outcome(df, outcome_col)
    if positive_value not in values.tolist():
        raise InvalidLabelDomainError(
            f"positive_value {positive_value!r} not among outcome values {values.tolist()}"
        )

    feature_names = select_feature_columns(df, outcome_col, exclude_columns)
    if not feature_names:
        raise InvalidDatasetError("No feature columns left after exclusions!")

    non_numeric = [
        c for c in feature_names if not pd.api.types.is_numeric_dtype(df[c])
    ]
    if non_numeric:
        raise InvalidDatasetError(
            f"Non-numeric feature columns: {non_numeric}. "
            "Encode categorical features numerically before loading."
        )

    missing = df[feature_names].isna().mean() * 100
    if missing.sum() > 0:
        logger.info(
            f"Missing values (will be imputed): {missing[missing > 0].to_dict()}"
        )

    n_pos = int((df[outcome_col] == positive_value).sum())
    logger.info(
        f"Final dataset: {len(df)} samples, {len(feature_names)} features, "
        f"prevalence {n_pos}/{len(df)} ({n_pos / len(df) * 100:.1f}%)"
    )

    return df[feature_names + [outcome_col]].copy(), feature_names
