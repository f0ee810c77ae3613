"""Dataset loading and splitting.

This module reads co-purchase files (one pair of product ids per line) into a
pandas DataFrame and partitions the rows into training and test sets.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, NamedTuple, Optional

import numpy as np
import pandas as pd

from productrec.context import PipelineContext
from productrec.exceptions import DataFormatError

# Configure module logger
logger = logging.getLogger(__name__)

# Column names of the in-memory dataset
PRODUCT_ID_COLUMN = "product_id"
COMBINED_PRODUCT_ID_COLUMN = "combined_product_id"
COLUMNS = [PRODUCT_ID_COLUMN, COMBINED_PRODUCT_ID_COLUMN]

DEFAULT_SEPARATOR = "\t"
DEFAULT_COMMENT = "#"
DEFAULT_TEST_FRACTION = 0.2


@dataclass(frozen=True)
class ProductRecord:
    """One observed co-purchase: ``product_id`` was bought with ``combined_product_id``."""

    product_id: float
    combined_product_id: float


class TrainTestSplit(NamedTuple):
    """Disjoint training and test partitions of one dataset."""

    train: pd.DataFrame
    test: pd.DataFrame


def _empty_frame() -> pd.DataFrame:
    return pd.DataFrame({column: pd.Series(dtype=np.float64) for column in COLUMNS})


def load_product_pairs(
    path: str,
    has_header: bool = True,
    separator: str = DEFAULT_SEPARATOR,
    comment: Optional[str] = DEFAULT_COMMENT,
) -> pd.DataFrame:
    """Load a delimited file of product pairs.

    Each data row must hold exactly two numeric fields: the product id and
    the id of a product bought together with it. Lines starting with
    ``comment`` are ignored, and the first remaining line is skipped when
    ``has_header`` is set. Duplicate pairs are kept, one row per line.

    Args:
        path: Path to the input file.
        has_header: Whether the first non-comment line is a header row.
        separator: Field delimiter (tab by default).
        comment: Comment prefix, or None to disable comment handling.

    Returns:
        DataFrame with float columns ``product_id`` and ``combined_product_id``.

    Raises:
        FileNotFoundError: If the file does not exist.
        DataFormatError: If a row does not hold two numeric fields.

    Example:
        >>> pairs = load_product_pairs("data/Amazon0302.txt")
        >>> print(f"Loaded {len(pairs)} pairs")
    """
    data_file = Path(path)
    if not data_file.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    logger.info(f"Loading product pairs from {path}")

    try:
        raw = pd.read_csv(
            data_file,
            sep=separator,
            header=None,
            dtype=str,
            comment=comment,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        logger.warning(f"No rows found in {path}")
        return _empty_frame()
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise DataFormatError(str(path), reason=str(e)) from e

    if has_header:
        raw = raw.iloc[1:]

    if raw.empty:
        logger.warning(f"No data rows found in {path}")
        return _empty_frame()

    if raw.shape[1] != len(COLUMNS):
        raise DataFormatError(
            str(path),
            reason=f"expected {len(COLUMNS)} fields, first line has {raw.shape[1]}",
        )

    numeric = raw.apply(pd.to_numeric, errors="coerce").astype(np.float64)
    invalid = ~np.isfinite(numeric.to_numpy()).all(axis=1)
    if invalid.any():
        bad_row = int(np.flatnonzero(invalid)[0]) + 1
        raise DataFormatError(str(path), row=bad_row)

    numeric.columns = COLUMNS
    frame = numeric.reset_index(drop=True)

    logger.info(f"Loaded {len(frame)} product pairs")
    return frame


def frame_from_records(records: Iterable[ProductRecord]) -> pd.DataFrame:
    """Build a dataset frame from ``ProductRecord`` objects."""
    rows = [(r.product_id, r.combined_product_id) for r in records]
    if not rows:
        return _empty_frame()
    return pd.DataFrame(rows, columns=COLUMNS, dtype=np.float64)


def iter_records(frame: pd.DataFrame) -> Iterator[ProductRecord]:
    """Yield the rows of a dataset frame as ``ProductRecord`` objects."""
    for product_id, combined_id in frame[COLUMNS].itertuples(index=False, name=None):
        yield ProductRecord(float(product_id), float(combined_id))


def train_test_split(
    frame: pd.DataFrame,
    test_fraction: float = DEFAULT_TEST_FRACTION,
    context: Optional[PipelineContext] = None,
) -> TrainTestSplit:
    """Randomly split a dataset into training and test partitions.

    Every row gets one uniform draw and goes to the test partition when the
    draw is below ``test_fraction``. The original index labels are kept, so
    the two partitions are disjoint and together hold every input row.

    Args:
        frame: Dataset to split.
        test_fraction: Probability of a row landing in the test partition.
        context: Pipeline context providing the random generator. A fresh
            unseeded context is used when omitted.

    Returns:
        TrainTestSplit with ``train`` and ``test`` frames.

    Raises:
        ValueError: If test_fraction is not strictly between 0 and 1.
    """
    if not 0.0 < test_fraction < 1.0:
        raise ValueError(
            f"test_fraction must be between 0 and 1 (exclusive), got {test_fraction}"
        )

    context = context or PipelineContext()
    rng = context.spawn_rng()

    in_test = rng.random(len(frame)) < test_fraction
    train = frame.loc[~in_test]
    test = frame.loc[in_test]

    logger.info(
        f"Split {len(frame)} rows into {len(train)} training "
        f"and {len(test)} test rows (test_fraction={test_fraction})"
    )

    return TrainTestSplit(train=train, test=test)
