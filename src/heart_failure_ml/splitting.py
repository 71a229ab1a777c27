"""
Stratified train/test splitting.

The split preserves the per-class proportion of the outcome exactly (up to
one unit of rounding) rather than only in expectation, which matters for the
imbalanced heart-failure outcome (~32% deaths).

Pseudo-randomness is fully determined by ``seed``: each label group gets its
own ``numpy.random.Generator`` (PCG64) spawned from
``numpy.random.SeedSequence(seed)``, and the group's row positions are
shuffled with ``Generator.permutation``. Groups are visited in sorted label
order, so the same inputs always produce the same split.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence, Union

import numpy as np
import pandas as pd

from heart_failure_ml.exceptions import (
    EmptyStratumError,
    InvalidDatasetError,
    InvalidLabelDomainError,
)

logger = logging.getLogger(__name__)

DatasetLike = Union[pd.DataFrame, Sequence[Mapping[str, Any]]]

# Tolerance absorbing float error in fraction * size (0.7 * 70 = 48.999...)
_ROUNDING_EPS = 1e-9


@dataclass(frozen=True)
class Split:
    """
    A train/test partition of a source dataset.

    ``train_indices`` and ``test_indices`` are positional row indices into
    the source dataset; together they cover it exactly once. Both partitions
    keep the source's relative row order.
    """

    train: pd.DataFrame
    test: pd.DataFrame
    train_indices: np.ndarray
    test_indices: np.ndarray
    label_key: str
    train_fraction: float
    seed: int

    @property
    def n_train(self) -> int:
        return len(self.train_indices)

    @property
    def n_test(self) -> int:
        return len(self.test_indices)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounding up (2.5 -> 3)."""
    return int(math.floor(value + 0.5 + _ROUNDING_EPS))


def class_proportions(labels: Sequence[Any]) -> Dict[Any, float]:
    """Return the fraction of each distinct label value."""
    labels = pd.Series(np.asarray(labels))
    if labels.empty:
        return {}
    counts = labels.value_counts(sort=False).sort_index()
    return {value: count / len(labels) for value, count in counts.items()}


def _as_frame(dataset: DatasetLike) -> pd.DataFrame:
    """Coerce a DataFrame or sequence of record mappings into a DataFrame."""
    if isinstance(dataset, pd.DataFrame):
        df = dataset
    else:
        records = list(dataset)
        if records:
            keys = set(records[0].keys())
            for position, record in enumerate(records):
                if set(record.keys()) != keys:
                    raise InvalidDatasetError(
                        f"Record {position} has keys {sorted(record.keys())}, "
                        f"expected {sorted(keys)}"
                    )
        df = pd.DataFrame.from_records(records)

    if df.empty:
        raise InvalidDatasetError("Cannot split an empty dataset")

    return df.reset_index(drop=True)


def validate_binary_labels(df: pd.DataFrame, label_key: str) -> np.ndarray:
    """Validate a complete, two-valued label column and return its sorted values."""
    if label_key not in df.columns:
        raise InvalidLabelDomainError(
            f"Label column '{label_key}' not found. "
            f"Available columns: {list(df.columns)}"
        )

    labels = df[label_key]
    if labels.isna().any():
        raise InvalidLabelDomainError(
            f"Label column '{label_key}' has {int(labels.isna().sum())} missing values"
        )

    values = np.sort(labels.unique())
    if len(values) != 2:
        raise InvalidLabelDomainError(
            f"Label column '{label_key}' must be binary, "
            f"found {len(values)} distinct values: {values.tolist()}"
        )

    return values


def stratified_split(
    dataset: DatasetLike,
    label_key: str,
    train_fraction: float,
    seed: int,
) -> Split:
    """
    Partition a labeled dataset into train and test sets by label stratum.

    Parameters
    ----------
    dataset : pd.DataFrame or sequence of mappings
        Source records. Must be non-empty; mappings must share one key set.
    label_key : str
        Name of the binary outcome field
    train_fraction : float
        Fraction of each label group assigned to train, in (0, 1)
    seed : int
        Seed controlling the per-group permutations

    Returns
    -------
    Split
        Train/test partition with positional indices into ``dataset``

    Raises
    ------
    InvalidDatasetError
        Empty dataset or records with differing keys
    InvalidLabelDomainError
        Missing label column/values or a label that is not two-valued
    EmptyStratumError
        A label group would be absent from train or test
    """
    if not 0.0 < train_fraction < 1.0:
        raise ValueError(f"train_fraction must be in (0, 1), got {train_fraction}")

    df = _as_frame(dataset)
    label_values = validate_binary_labels(df, label_key)
    labels = df[label_key].to_numpy()

    child_seeds = np.random.SeedSequence(seed).spawn(len(label_values))

    train_parts: List[np.ndarray] = []
    for value, child_seed in zip(label_values, child_seeds):
        group = np.flatnonzero(labels == value)
        n_group = len(group)
        n_train = round_half_up(train_fraction * n_group)

        if n_train == 0 or n_train == n_group:
            raise EmptyStratumError(
                f"Label group {label_key}={value!r} ({n_group} records) leaves "
                f"{'train' if n_train == 0 else 'test'} empty at "
                f"train_fraction={train_fraction}"
            )

        rng = np.random.default_rng(child_seed)
        permuted = group[rng.permutation(n_group)]
        train_parts.append(permuted[:n_train])

        logger.debug(
            f"Stratum {label_key}={value!r}: {n_train}/{n_group} records to train"
        )

    train_idx = np.sort(np.concatenate(train_parts))
    in_train = np.zeros(len(df), dtype=bool)
    in_train[train_idx] = True
    test_idx = np.flatnonzero(~in_train)

    split = Split(
        train=df.iloc[train_idx].reset_index(drop=True),
        test=df.iloc[test_idx].reset_index(drop=True),
        train_indices=train_idx,
        test_indices=test_idx,
        label_key=label_key,
        train_fraction=train_fraction,
        seed=seed,
    )

    logger.info(
        f"Stratified split (seed={seed}): train={split.n_train}, test={split.n_test}"
    )
    logger.debug(
        f"Train proportions: {class_proportions(split.train[label_key])}, "
        f"test proportions: {class_proportions(split.test[label_key])}"
    )

    return split
