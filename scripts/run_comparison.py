#!/usr/bin/env python
"""
Main CLI entrypoint for the heart-failure model comparison.

Usage:
    python scripts/run_comparison.py --data heart_failure_clinical_records_dataset.csv --config configs/default.yaml --seed 42
"""

import argparse
import json
import logging
import random
import sys
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import numpy as np
import yaml

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from heart_failure_ml import CLASSIFICATION_THRESHOLD
from heart_failure_ml.io import prepare_dataset
from heart_failure_ml.models import MODEL_FACTORY
from heart_failure_ml.pipeline import run_comparison, run_repeated_comparison
from heart_failure_ml.reporting import generate_all_reports

# Setup logging with UTF-8 encoding to handle special characters
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("heart_failure_ml.log", encoding="utf-8"),
    ],
)

logger = logging.getLogger(__name__)


def set_random_seeds(seed: int):
    """Set global random seeds for any library code that still reads them."""
    random.seed(seed)
    np.random.seed(seed)
    logger.info(f"Set random seeds to {seed}")


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Compare classifiers on the heart-failure clinical records dataset"
    )

    parser.add_argument(
        "--data",
        type=str,
        default="heart_failure_clinical_records_dataset.csv",
        help="Path to input CSV data file (default: heart_failure_clinical_records_dataset.csv)",
    )

    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Path to configuration YAML file (default: configs/default.yaml)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the stratified split and models (overrides config)",
    )

    parser.add_argument(
        "--train-fraction",
        type=float,
        default=None,
        help="Fraction of each outcome group used for training (overrides config)",
    )

    parser.add_argument(
        "--models",
        type=str,
        default="all",
        help="Comma-separated list of models (lr,nb,knn,lda,qda,dtc,rf,baseline) or 'all'. Overrides config file if provided.",
    )

    parser.add_argument(
        "--repeats",
        type=int,
        default=None,
        help="Number of repeated stratified splits for confidence intervals; 0 disables (overrides config)",
    )

    parser.add_argument(
        "--save-artifacts",
        dest="save_artifacts",
        action="store_true",
        help="(Default) Save fitted models, predictions and split indices",
    )
    parser.add_argument(
        "--no-artifacts",
        dest="save_artifacts",
        action="store_false",
        help="Skip saving per-model artifacts",
    )
    parser.set_defaults(save_artifacts=True)

    parser.add_argument(
        "--output-dir",
        type=str,
        default="reports",
        help="Output directory for reports (default: reports)",
    )

    return parser.parse_args()


def load_config(config_path: str) -> dict:
    """Load configuration from YAML file."""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.warning(f"Config file {config_path} not found. Using defaults.")
        return {}

    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def main():
    """Main execution function."""
    args = parse_args()

    logger.info("=" * 100)
    logger.info("HEART FAILURE ML: Model Comparison Pipeline")
    logger.info("=" * 100)

    config = load_config(args.config)

    # Override config with command-line arguments
    if args.seed is not None:
        config["random_state"] = args.seed
    if args.train_fraction is not None:
        config["train_fraction"] = args.train_fraction
    if args.repeats is not None:
        config["n_repeats"] = args.repeats

    config.setdefault("random_state", 42)
    config.setdefault("train_fraction", 0.7)
    config.setdefault("classification_threshold", CLASSIFICATION_THRESHOLD)
    config.setdefault("outcome_column", "DEATH_EVENT")
    config.setdefault("positive_value", 1)
    config.setdefault("n_repeats", 0)
    config.setdefault("ci", 0.95)

    set_random_seeds(config["random_state"])

    # Priority: command-line argument > config file > default (all models)
    if args.models.lower() != "all":
        model_types = [m.strip() for m in args.models.split(",")]
    elif config.get("models"):
        model_types = [m for m in config["models"] if m is not None]
    else:
        model_types = list(MODEL_FACTORY.keys())

    unknown = [m for m in model_types if m not in MODEL_FACTORY]
    if unknown:
        logger.error(f"Unknown model types: {unknown}. Available: {list(MODEL_FACTORY.keys())}")
        sys.exit(1)

    logger.info(f"Selected models: {model_types}")

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    short_uuid = str(uuid4())[:8]
    run_id = f"{timestamp}_{short_uuid}"

    output_dir = Path(args.output_dir) / f"run_{run_id}"
    artifacts_dir = output_dir / "artifacts" if args.save_artifacts else None
    output_dir.mkdir(parents=True, exist_ok=True)

    run_info = {
        "run_id": run_id,
        "timestamp": timestamp,
        "config_file": args.config,
        "data_file": args.data,
        "models": model_types,
        "random_state": config["random_state"],
        "train_fraction": config["train_fraction"],
        "classification_threshold": config["classification_threshold"],
        "n_repeats": config["n_repeats"],
        "save_artifacts": args.save_artifacts,
        "artifacts_dir": str(artifacts_dir) if artifacts_dir else None,
    }

    with open(output_dir / "run_info.json", "w") as f:
        json.dump(run_info, f, indent=2)

    logger.info(f"Run ID: {run_id}")
    logger.info(f"Output directory: {output_dir}")

    # Step 1: Load and prepare data
    logger.info(f"\nStep 1: Loading data from {args.data}")
    data_path = Path(args.data)

    if not data_path.exists():
        logger.error(f"Data file not found: {args.data}")
        sys.exit(1)

    df, feature_names = prepare_dataset(filepath=data_path, config=config)

    # Step 2: Single stratified split
    logger.info(
        f"\nStep 2: Stratified split (train_fraction={config['train_fraction']}, "
        f"seed={config['random_state']}) and model fitting"
    )
    results = run_comparison(
        df=df,
        feature_names=feature_names,
        model_types=model_types,
        config=config,
        artifacts_dir=artifacts_dir,
    )

    # Step 3: Repeated splits
    repeated_metrics = None
    if config["n_repeats"] > 0:
        logger.info(f"\nStep 3: Repeating over {config['n_repeats']} stratified splits")
        repeated_metrics = run_repeated_comparison(
            df=df,
            feature_names=feature_names,
            model_types=model_types,
            config=config,
            n_repeats=config["n_repeats"],
        )

    # Step 4: Reports
    logger.info("\nStep 4: Generating reports and tables")
    generate_all_reports(
        results=results,
        output_dir=output_dir,
        repeated_metrics=repeated_metrics,
        ci=config["ci"],
        threshold=config["classification_threshold"],
    )

    logger.info("\n" + "=" * 100)
    logger.info("Pipeline complete!")
    logger.info(f"Run ID: {run_id}")
    logger.info(f"Reports saved to: {output_dir / 'tables'}")
    if args.save_artifacts:
        logger.info(f"Artifacts saved to: {artifacts_dir}")
    logger.info("=" * 100 + "\n")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)
