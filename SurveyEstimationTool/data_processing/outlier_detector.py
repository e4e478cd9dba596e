"""
Outlier flagging for a single survey column.

Outliers are marked in a derived ``<column>_is_outlier`` boolean column;
no row or value is removed or altered.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union
import numpy as np

from .models import OutlierMethod, SurveyTable
from .field_coercion import numeric_column


@dataclass(frozen=True)
class OutlierBounds:
    """Closed interval of non-outlying values."""
    lower: float
    upper: float

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper


def flag_column_name(column: str) -> str:
    """Name of the derived flag column for ``column``."""
    return f"{column}_is_outlier"


class OutlierDetector:
    """
    Flag outliers in one numeric column.

    Methods:
    - 'iqr': Q1 - k*IQR .. Q3 + k*IQR with positional quartiles
      (sorted values at n//4 and 3n//4, no interpolation)
    - 'z-score': mean -/+ k * population standard deviation

    Columns with fewer than ``min_values`` present values are never flagged.
    """

    DEFAULT_THRESHOLD = 1.5
    MIN_VALUES = 4

    def __init__(self, min_values: int = MIN_VALUES):
        self.min_values = min_values
        self.logger = logging.getLogger(__name__)

    def detect_outliers(self,
                        table: SurveyTable,
                        column: str,
                        method: Union[OutlierMethod, str],
                        threshold: Optional[float] = DEFAULT_THRESHOLD) -> SurveyTable:
        """
        Add a ``<column>_is_outlier`` flag to every row.

        Parameters
        ----------
        table : SurveyTable
            Table to inspect; it is not modified
        column : str
            Column to flag
        method : OutlierMethod or str
            'iqr' or 'z-score'; anything else flags nothing
        threshold : float, default 1.5
            Multiplier applied to the IQR or standard deviation

        Returns
        -------
        SurveyTable
            New table with the derived flag column
        """
        values = numeric_column(table, column)
        bounds = self.compute_bounds(table, column, method, threshold)

        if bounds is None:
            flags = np.zeros(len(values), dtype=bool)
        else:
            present = values.notna()
            outside = (values < bounds.lower) | (values > bounds.upper)
            flags = (present & outside).to_numpy(dtype=bool)

        flag_name = flag_column_name(column)
        self.logger.info(f"{column}: flagged {int(flags.sum())} outliers in '{flag_name}'")

        return table.with_flag(flag_name, flags)

    def compute_bounds(self,
                       table: SurveyTable,
                       column: str,
                       method: Union[OutlierMethod, str],
                       threshold: Optional[float] = DEFAULT_THRESHOLD) -> Optional[OutlierBounds]:
        """
        Bounds outside of which a present value is an outlier.

        Returns None for an unrecognized method or when fewer than
        ``min_values`` present values exist.
        """
        method = OutlierMethod.from_value(method)
        if method == OutlierMethod.NONE:
            return None

        threshold = self.DEFAULT_THRESHOLD if threshold is None else float(threshold)

        present = numeric_column(table, column).dropna().to_numpy(dtype=float)
        n = len(present)
        if n < self.min_values:
            self.logger.debug(f"{column}: only {n} values, skipping outlier bounds")
            return None

        if method == OutlierMethod.IQR:
            sorted_values = np.sort(present)
            q1 = sorted_values[n // 4]
            q3 = sorted_values[(3 * n) // 4]
            iqr = q3 - q1
            return OutlierBounds(float(q1 - threshold * iqr), float(q3 + threshold * iqr))

        mean = present.mean()
        std = present.std(ddof=0)
        return OutlierBounds(float(mean - threshold * std), float(mean + threshold * std))
