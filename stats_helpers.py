# stats_helpers.py
"""Descriptive statistics used to derive imputation constants."""
import math
from collections import Counter
from typing import Iterable, List, Sequence

import numpy as np

import config
from csv_parser import Record


def _present(values: Iterable) -> list:
    """Drops absent entries (None and NaN)."""
    return [v for v in values if v is not None and not (isinstance(v, float) and math.isnan(v))]


def median(values: Iterable) -> float:
    """Median of the present values; 0 when none are present."""
    present = _present(values)
    if not present:
        return 0
    return float(np.median(present))


def mode(values: Iterable):
    """
    Most frequent present value, ties going to the value seen first.
    Returns the default port of embarkation when nothing is present.
    """
    present = _present(values)
    if not present:
        return config.DEFAULT_EMBARKED
    # Counter keeps insertion order, and most_common is stable for equal counts
    return Counter(present).most_common(1)[0][0]


def std_dev(values: Iterable) -> float:
    """Population standard deviation; 1 when no values are present."""
    present = _present(values)
    if not present:
        return 1.0
    return float(np.std(present))


def numeric_column(records: Sequence[Record], column: str) -> List[float]:
    """Present numeric values of a column, in record order."""
    return [record[column].raw for record in records
            if column in record and record[column].is_number]


def text_column(records: Sequence[Record], column: str) -> List[str]:
    """Present values of a column as strings, in record order."""
    return [str(record[column].raw) for record in records
            if column in record and not record[column].is_absent]
