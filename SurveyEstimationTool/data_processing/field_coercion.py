"""
Numeric coercion of survey cell values.

Survey cells arrive as strings. Every cleaning and estimation step decides
whether a cell holds a usable number through the functions in this module,
so that "absent" means the same thing everywhere.
"""

import math
import re
from typing import Any, Optional
import pandas as pd
import numpy as np

from .models import SurveyTable

# Whole-string decimal literal; "12abc", "inf" and "1_000" do not match.
NUMERIC_PATTERN = re.compile(r'[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?')


def coerce_numeric(value: Any) -> Optional[float]:
    """
    Convert a single cell value to a finite float.

    Parameters
    ----------
    value : any
        Cell value, usually a string.

    Returns
    -------
    float or None
        The parsed value, or None when the cell is absent: empty or blank,
        null, boolean, non-finite, or not a complete numeric literal.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None

    if isinstance(value, (int, float, np.integer, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else None

    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or NUMERIC_PATTERN.fullmatch(text) is None:
        return None

    number = float(text)
    return number if math.isfinite(number) else None


def is_absent(value: Any) -> bool:
    """Check whether a cell has no usable numeric value."""
    return coerce_numeric(value) is None


def numeric_column(table: SurveyTable, column: str) -> pd.Series:
    """
    Coerce a whole column, row-aligned with the table.

    Absent cells become NaN. A column the table does not have yields an
    all-NaN series, so callers treat it the same as an empty column.
    """
    if not table.has_column(column):
        return pd.Series(np.nan, index=table.records.index, dtype=float)

    coerced = table.column(column).map(coerce_numeric)
    return pd.to_numeric(coerced, errors='coerce').astype(float)


def present_values(table: SurveyTable, column: str) -> pd.Series:
    """Non-absent numeric values of a column, in row order."""
    return numeric_column(table, column).dropna()


def count_absent(table: SurveyTable, column: str) -> int:
    """Number of rows whose cell in ``column`` is absent."""
    return int(numeric_column(table, column).isna().sum())
