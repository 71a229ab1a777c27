"""
Reporting module for generating tables and summaries.

Includes:
- Per-model metrics tables (CSV, Markdown)
- Aggregated metrics across repeated splits
- ROC point tables and prediction tables
- Pretty console summaries
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from heart_failure_ml import CLASSIFICATION_THRESHOLD
from heart_failure_ml.evaluation import aggregate_metrics
from heart_failure_ml.models import get_model_name
from heart_failure_ml.pipeline import ModelResult, to_serializable

logger = logging.getLogger(__name__)

UNDEFINED = "undefined"

METRIC_ORDER = [
    "Model",
    "ACCURACY",
    "SENSITIVITY",
    "SPECIFICITY",
    "PPV",
    "NPV",
    "F1",
    "ROC_AUC",
    "BRIER",
    "TP",
    "FP",
    "TN",
    "FN",
]


def format_value(value: Optional[float], digits: int = 3) -> str:
    """Format a metric, rendering undefined values explicitly."""
    if value is None:
        return UNDEFINED
    return f"{value:.{digits}f}"


def create_metrics_summary_table(results: Dict[str, ModelResult]) -> pd.DataFrame:
    """
    Create summary table of single-split metrics.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: ModelResult

    Returns
    -------
    pd.DataFrame
        One row per model
    """
    rows = []

    for model_type, result in results.items():
        metrics = result.metrics
        row = {"Model": get_model_name(model_type)}

        for name in ("accuracy", "sensitivity", "specificity", "ppv", "npv", "f1", "roc_auc", "brier"):
            row[name.upper()] = format_value(metrics.get(name))

        for name in ("tp", "fp", "tn", "fn"):
            row[name.upper()] = int(metrics[name])

        rows.append(row)

    df = pd.DataFrame(rows)
    cols = [c for c in METRIC_ORDER if c in df.columns]
    return df[cols]


def create_aggregated_summary_table(
    repeated_metrics: Dict[str, List[Dict[str, Any]]],
    ci: float = 0.95,
) -> pd.DataFrame:
    """
    Create summary table with aggregated metrics across repeated splits.

    Parameters
    ----------
    repeated_metrics : dict
        Dictionary of model_type: list of metric dicts
    ci : float
        Confidence interval level

    Returns
    -------
    pd.DataFrame
        Summary table with mean (CI) for all metrics
    """
    rows = []

    for model_type, metric_dicts in repeated_metrics.items():
        agg = aggregate_metrics(metric_dicts, ci=ci)

        row = {"Model": get_model_name(model_type)}
        for metric_name, (mean_val, lower_ci, upper_ci) in agg.items():
            if mean_val is None:
                row[metric_name.upper()] = UNDEFINED
            else:
                row[metric_name.upper()] = f"{mean_val:.3f} ({lower_ci:.3f}-{upper_ci:.3f})"

        rows.append(row)

    df = pd.DataFrame(rows)
    cols = [c for c in METRIC_ORDER if c in df.columns]
    return df[cols]


def save_summary_table(
    df: pd.DataFrame,
    output_dir: Path,
    filename_stem: str = "summary",
):
    """
    Save summary table to CSV and Markdown.

    Parameters
    ----------
    df : pd.DataFrame
        Summary table
    output_dir : Path
        Output directory
    filename_stem : str
        Filename stem (without extension)
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    csv_path = output_dir / f"{filename_stem}.csv"
    df.to_csv(csv_path, index=False)
    logger.info(f"Saved summary table (CSV) to {csv_path}")

    md_path = output_dir / f"{filename_stem}.md"
    with open(md_path, "w") as f:
        f.write(df.to_markdown(index=False))
        f.write("\n")

    logger.info(f"Saved summary table (Markdown) to {md_path}")


def roc_points_table(results: Dict[str, ModelResult]) -> pd.DataFrame:
    """Long-format ROC points: one row per (model, threshold)."""
    frames = []
    for model_type, result in results.items():
        frames.append(
            pd.DataFrame(
                {
                    "model_type": model_type,
                    "model_name": get_model_name(model_type),
                    "threshold": result.roc.thresholds,
                    "fpr": result.roc.fpr,
                    "tpr": result.roc.tpr,
                    "auc": result.roc.auc,
                }
            )
        )
    if not frames:
        return pd.DataFrame(columns=["model_type", "model_name", "threshold", "fpr", "tpr", "auc"])
    return pd.concat(frames, ignore_index=True)


def save_roc_points(results: Dict[str, ModelResult], output_dir: Path) -> Path:
    """Save ROC points of all models to ``roc_points.csv``."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "roc_points.csv"
    roc_points_table(results).to_csv(output_path, index=False)
    logger.info(f"Saved ROC points to {output_path}")
    return output_path


def save_predictions(
    results: Dict[str, ModelResult],
    output_dir: Path,
):
    """
    Save test-set predictions of all models in one CSV.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: ModelResult
    output_dir : Path
        Output directory
    """
    if not results:
        logger.warning("No model results provided; skipping predictions table.")
        return

    output_dir.mkdir(parents=True, exist_ok=True)

    frames = []
    for model_type, result in results.items():
        frames.append(
            pd.DataFrame(
                {
                    "row_index": result.test_indices,
                    "model_type": model_type,
                    "true_label": result.predictions.true_labels,
                    "predicted_label": result.predictions.predicted_labels,
                    "score": result.predictions.scores,
                }
            )
        )

    output_path = output_dir / "predictions.csv"
    pd.concat(frames, ignore_index=True).to_csv(output_path, index=False)
    logger.info(f"Saved predictions to {output_path}")


def save_metrics_json(results: Dict[str, ModelResult], output_dir: Path):
    """Save raw metric dictionaries keyed by model type."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "metrics.json"
    payload = {model_type: result.metrics for model_type, result in results.items()}
    with open(output_path, "w") as f:
        json.dump(to_serializable(payload), f, indent=2)
    logger.info(f"Saved metrics to {output_path}")


def print_console_summary(
    df: pd.DataFrame,
    title: str = "HEART FAILURE MODEL COMPARISON",
    threshold: float = CLASSIFICATION_THRESHOLD,
):
    """
    Print pretty summary to console.

    Parameters
    ----------
    df : pd.DataFrame
        Summary table
    title : str
        Banner title
    threshold : float
        Classification threshold used for the confusion matrices
    """
    print("\n" + "=" * 100)
    print(title)
    print("=" * 100)
    print(f"\nClassification Threshold: {threshold}\n")
    print(df.to_string(index=False))
    print("\n" + "=" * 100 + "\n")


def generate_all_reports(
    results: Dict[str, ModelResult],
    output_dir: Path,
    repeated_metrics: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    ci: float = 0.95,
    threshold: float = CLASSIFICATION_THRESHOLD,
):
    """
    Generate all reports and save to output directory.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: ModelResult for the primary split
    output_dir : Path
        Output directory
    repeated_metrics : dict, optional
        Per-model metric dicts from repeated splits
    ci : float
        Confidence interval level for aggregated tables
    threshold : float
        Classification threshold used
    """
    logger.info("Generating reports...")

    tables_dir = output_dir / "tables"

    df = create_metrics_summary_table(results)
    print_console_summary(df, threshold=threshold)
    save_summary_table(df, tables_dir)

    save_roc_points(results, tables_dir)
    save_predictions(results, tables_dir)
    save_metrics_json(results, output_dir / "artifacts")

    if repeated_metrics:
        agg_df = create_aggregated_summary_table(repeated_metrics, ci=ci)
        print_console_summary(
            agg_df,
            title=f"REPEATED SPLITS (Mean, {ci * 100:.0f}% CI)",
            threshold=threshold,
        )
        save_summary_table(agg_df, tables_dir, filename_stem="summary_repeated")

    logger.info(f"All reports saved to {output_dir}")
