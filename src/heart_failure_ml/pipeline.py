"""
Model comparison orchestrator.

One run:
- Stratified train/test split of the full dataset
- Preprocessing fitted on the training partition only
- Fit each model, score the test partition
- Confusion matrix at the classification threshold and ROC/AUC

Repeated runs re-split with consecutive seeds so metrics can be reported
with confidence intervals.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import joblib
import numpy as np
import pandas as pd
from tqdm import tqdm

from heart_failure_ml import CLASSIFICATION_THRESHOLD, POSITIVE_LABEL
from heart_failure_ml.evaluation import (
    ConfusionMatrix,
    PredictionSet,
    ROCCurve,
    confusion,
    evaluate_predictions,
    roc,
)
from heart_failure_ml.io import DEFAULT_OUTCOME_COLUMN
from heart_failure_ml.models import create_model, get_model_name, predict_scores
from heart_failure_ml.preprocessing import create_preprocessing_pipeline
from heart_failure_ml.splitting import Split, stratified_split

logger = logging.getLogger(__name__)


def to_serializable(obj: Any) -> Any:
    """Recursively convert numpy/pandas objects into JSON-serializable types."""
    if isinstance(obj, dict):
        return {k: to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_serializable(v) for v in obj]
    if isinstance(obj, (np.generic,)):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, float) and not np.isfinite(obj):
        return str(obj)
    return obj


@dataclass
class ModelResult:
    """Outcome of fitting and evaluating one model on one split."""

    model_type: str
    predictions: PredictionSet
    confusion: ConfusionMatrix
    roc: ROCCurve
    metrics: Dict[str, Any]
    test_indices: np.ndarray
    seed: int

    @property
    def model_name(self) -> str:
        return get_model_name(self.model_type)


class ModelComparison:
    """
    Fits and evaluates several classifiers on one stratified split.

    Parameters
    ----------
    df : pd.DataFrame
        Dataset with feature columns and the outcome
    feature_names : list
        Feature column names
    model_types : list
        Model type codes ('lr', 'nb', 'knn', 'lda', 'qda', 'dtc', 'rf', 'baseline')
    config : dict
        Configuration dictionary
    artifacts_dir : Path, optional
        Directory to save per-model artifacts
    """

    def __init__(
        self,
        df: pd.DataFrame,
        feature_names: List[str],
        model_types: List[str],
        config: Dict[str, Any],
        artifacts_dir: Optional[Path] = None,
    ):
        self.df = df
        self.feature_names = feature_names
        self.model_types = model_types
        self.config = config
        self.artifacts_dir = artifacts_dir

        self.outcome_col = config.get("outcome_column", DEFAULT_OUTCOME_COLUMN)
        self.positive_value = config.get("positive_value", POSITIVE_LABEL)
        self.threshold = config.get("classification_threshold", CLASSIFICATION_THRESHOLD)
        self.train_fraction = config.get("train_fraction", 0.7)
        self.random_state = config.get("random_state", 42)
        self.model_params = config.get("model_params", {}) or {}

        self.split_: Optional[Split] = None
        self.results_: Dict[str, ModelResult] = {}

    def _negative_value(self) -> Any:
        values = sorted(self.df[self.outcome_col].unique().tolist())
        return next(v for v in values if v != self.positive_value)

    def run(self, seed: Optional[int] = None, show_progress: bool = True) -> Dict[str, ModelResult]:
        """
        Run the comparison for all models.

        Parameters
        ----------
        seed : int, optional
            Split/model seed (default: configured random_state)
        show_progress : bool
            Whether to show a progress bar over models

        Returns
        -------
        dict
            model_type: ModelResult
        """
        seed = self.random_state if seed is None else seed

        split = stratified_split(
            self.df,
            label_key=self.outcome_col,
            train_fraction=self.train_fraction,
            seed=seed,
        )
        self.split_ = split

        X_train = split.train[self.feature_names]
        X_test = split.test[self.feature_names]
        y_train = split.train[self.outcome_col].to_numpy()
        y_test = split.test[self.outcome_col].to_numpy()

        logger.info(
            f"Train prevalence: {np.mean(y_train == self.positive_value) * 100:.1f}%, "
            f"Test prevalence: {np.mean(y_test == self.positive_value) * 100:.1f}%"
        )

        preprocessor = create_preprocessing_pipeline(self.config)
        X_train_prep = preprocessor.fit_transform(X_train)
        X_test_prep = preprocessor.transform(X_test)

        negative_value = self._negative_value()
        results = {}

        for model_type in tqdm(
            self.model_types,
            desc="Models",
            disable=not show_progress,
        ):
            logger.debug(f"--- Training {get_model_name(model_type)} ---")

            model = create_model(
                model_type=model_type,
                params=self.model_params.get(model_type, {}),
                random_state=seed,
            )
            model.fit(X_train_prep, y_train)

            scores = predict_scores(model, X_test_prep, self.positive_value)
            y_pred = np.where(scores >= self.threshold, self.positive_value, negative_value)

            predictions = PredictionSet(
                true_labels=y_test,
                predicted_labels=y_pred,
                scores=scores,
            )

            cm = confusion(y_test, y_pred, self.positive_value)
            curve = roc(y_test, scores, self.positive_value)
            metrics = evaluate_predictions(
                predictions, self.positive_value, self.threshold, cm=cm, curve=curve
            )

            result = ModelResult(
                model_type=model_type,
                predictions=predictions,
                confusion=cm,
                roc=curve,
                metrics=metrics,
                test_indices=split.test_indices,
                seed=seed,
            )
            results[model_type] = result

            logger.info(
                f"Seed {seed} {get_model_name(model_type)} results: "
                f"Acc={_fmt(cm.accuracy)}, "
                f"Sens={_fmt(cm.sensitivity)}, "
                f"Spec={_fmt(cm.specificity)}, "
                f"AUC={curve.auc:.3f}"
            )

            if self.artifacts_dir is not None:
                self._save_model_artifacts(result, model)

        if self.artifacts_dir is not None:
            self._save_split_artifacts(split)

        self.results_ = results
        return results

    def _save_model_artifacts(self, result: ModelResult, model: Any):
        """Save fitted model, predictions and metrics for one model."""
        model_dir = self.artifacts_dir / f"seed_{result.seed}" / result.model_type
        model_dir.mkdir(parents=True, exist_ok=True)

        pd.DataFrame(
            {
                "row_index": result.test_indices,
                "y_true": result.predictions.true_labels,
                "y_pred": result.predictions.predicted_labels,
                "score": result.predictions.scores,
            }
        ).to_csv(model_dir / "predictions.csv", index=False)

        with open(model_dir / "metrics.json", "w") as f:
            json.dump(to_serializable(result.metrics), f, indent=2)

        joblib.dump(model, model_dir / "model.joblib")

        logger.debug(f"Saved artifacts for {result.model_type} at {model_dir}")

    def _save_split_artifacts(self, split: Split):
        """Save split indices for reproducibility."""
        split_dir = self.artifacts_dir / f"seed_{split.seed}"
        split_dir.mkdir(parents=True, exist_ok=True)

        pd.DataFrame({"index": split.train_indices}).to_csv(
            split_dir / "train_indices.csv", index=False
        )
        pd.DataFrame({"index": split.test_indices}).to_csv(
            split_dir / "test_indices.csv", index=False
        )

        metadata = {
            "seed": split.seed,
            "train_fraction": split.train_fraction,
            "label_key": split.label_key,
            "train_size": split.n_train,
            "test_size": split.n_test,
            "prng": "numpy PCG64 via SeedSequence(seed).spawn(n_groups)",
            "rounding": "round-half-up",
        }
        with open(split_dir / "split_metadata.json", "w") as f:
            json.dump(to_serializable(metadata), f, indent=2)


def _fmt(value: Optional[float]) -> str:
    return "undefined" if value is None else f"{value:.3f}"


def run_comparison(
    df: pd.DataFrame,
    feature_names: List[str],
    model_types: List[str],
    config: Dict[str, Any],
    artifacts_dir: Optional[Path] = None,
) -> Dict[str, ModelResult]:
    """
    Convenience function to run a single-split comparison.

    Returns
    -------
    dict
        model_type: ModelResult
    """
    comparison = ModelComparison(
        df=df,
        feature_names=feature_names,
        model_types=model_types,
        config=config,
        artifacts_dir=artifacts_dir,
    )
    return comparison.run()


def run_repeated_comparison(
    df: pd.DataFrame,
    feature_names: List[str],
    model_types: List[str],
    config: Dict[str, Any],
    n_repeats: int = 10,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Repeat the comparison over consecutive seeds.

    Seeds are ``random_state, random_state + 1, ...``.

    Parameters
    ----------
    df : pd.DataFrame
        Dataset
    feature_names : list
        Feature column names
    model_types : list
        Model type codes
    config : dict
        Configuration dictionary
    n_repeats : int
        Number of repeated splits

    Returns
    -------
    dict
        model_type: list of metric dictionaries, one per repeat
    """
    if n_repeats < 1:
        raise ValueError(f"n_repeats must be >= 1, got {n_repeats}")

    comparison = ModelComparison(
        df=df,
        feature_names=feature_names,
        model_types=model_types,
        config=config,
    )
    base_seed = comparison.random_state

    repeated: Dict[str, List[Dict[str, Any]]] = {m: [] for m in model_types}

    for repeat in tqdm(range(n_repeats), desc="Repeated splits"):
        results = comparison.run(seed=base_seed + repeat, show_progress=False)
        for model_type, result in results.items():
            repeated[model_type].append(result.metrics)

    logger.info(f"Completed {n_repeats} repeated splits for {len(model_types)} models")

    return repeated
