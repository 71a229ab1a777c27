"""
Preprocessing module for the heart-failure pipeline.

All transformers are fitted ONLY on training data and applied to test data.

Includes:
- Simple imputation for missing feature values (median by default)
- StandardScaler for features
"""

import logging

import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import StandardScaler

logger = logging.getLogger(__name__)


class PreprocessingPipeline:
    """
    Preprocessing pipeline fitted on the training partition.

    Steps (all fitted on training data only):
    1. Impute missing values
    2. Standardize features (optional)

    Parameters
    ----------
    impute_strategy : str
        ``SimpleImputer`` strategy (default: 'median')
    standardize : bool
        Whether to scale features to zero mean, unit variance
    """

    def __init__(
        self,
        impute_strategy: str = "median",
        standardize: bool = True,
    ):
        self.impute_strategy = impute_strategy
        self.standardize = standardize

        self.imputer = SimpleImputer(strategy=impute_strategy)
        self.scaler = StandardScaler() if standardize else None

        self.feature_names_ = None

    def fit_transform(self, X: pd.DataFrame) -> np.ndarray:
        """
        Fit preprocessing pipeline on training data and transform.

        Parameters
        ----------
        X : pd.DataFrame
            Feature matrix (training data)

        Returns
        -------
        np.ndarray
            Transformed features
        """
        logger.debug(f"Fitting preprocessing on {X.shape[0]} samples")

        self.feature_names_ = X.columns.tolist()

        X_imputed = self.imputer.fit_transform(X)

        if self.scaler is not None:
            return self.scaler.fit_transform(X_imputed)
        return X_imputed

    def transform(self, X: pd.DataFrame) -> np.ndarray:
        """
        Transform new data using the fitted pipeline.

        Parameters
        ----------
        X : pd.DataFrame
            Feature matrix (test data)

        Returns
        -------
        np.ndarray
            Transformed features
        """
        if self.feature_names_ is None:
            raise ValueError("Pipeline not fitted yet. Call fit_transform first.")

        # Ensure same feature order
        X = X[self.feature_names_]

        X_imputed = self.imputer.transform(X)

        if self.scaler is not None:
            return self.scaler.transform(X_imputed)
        return X_imputed


def create_preprocessing_pipeline(config: dict = None) -> PreprocessingPipeline:
    """Build a preprocessing pipeline from the configuration dictionary."""
    config = config or {}
    return PreprocessingPipeline(
        impute_strategy=config.get("impute_strategy", "median"),
        standardize=config.get("standardize", True),
    )
