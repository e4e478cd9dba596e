"""
Weighted and unweighted point estimates for survey variables.

This module computes count, mean, total and margin of error for an
analysis variable, both unweighted and weighted by a survey weight
column, using a fixed 95% normal-approximation multiplier.
"""

import logging
import math
from typing import List, Optional
import pandas as pd

from ..data_processing.models import (
    EstimateResult, EstimateStats, SchemaMapping, SchemaRole, SurveyTable
)
from ..data_processing.field_coercion import numeric_column

# 95% two-sided normal critical value, fixed for reproducibility of reports.
Z_95 = 1.96


class WeightedEstimator:
    """
    Point estimates for survey analysis variables.

    Unweighted branch: every row with a present value. Sample variance
    uses the n - 1 divisor, SE = sqrt(variance / n), MoE = 1.96 * SE.

    Weighted branch: rows where both the value and the weight are present.
    The weighted variance is sum(w * (x - mean_w)^2) / sum(w) and the
    standard error is the simplified sqrt(variance / n_rows). This ignores
    strata and clusters and is only an approximation of a design-based
    standard error; results carry ``approximate_se=True``.

    Degenerate inputs (no rows, one row, zero total weight) produce zeros,
    never NaN.
    """

    def __init__(self, z_value: float = Z_95):
        """
        Initialize the WeightedEstimator.

        Parameters
        ----------
        z_value : float, default 1.96
            Critical value multiplying the standard error
        """
        self.z_value = z_value
        self.logger = logging.getLogger(__name__)

    def estimate(self, table: SurveyTable, variable: str, weight: str) -> EstimateResult:
        """
        Estimate one analysis variable.

        Parameters
        ----------
        table : SurveyTable
            Cleaned survey table
        variable : str
            Analysis variable column
        weight : str
            Survey weight column

        Returns
        -------
        EstimateResult
            Unweighted and weighted statistics
        """
        values = numeric_column(table, variable)
        weights = numeric_column(table, weight)

        unweighted_values = values.dropna()
        weighted_mask = values.notna() & weights.notna()

        result = EstimateResult(
            name=variable,
            unweighted=self._unweighted_stats(unweighted_values),
            weighted=self._weighted_stats(values[weighted_mask], weights[weighted_mask]),
            weight_variable=weight
        )

        self.logger.info(
            f"Estimated '{variable}' (weight '{weight}'): "
            f"n={result.unweighted.count}, mean={result.unweighted.mean:.4f}, "
            f"weighted n={result.weighted.count}, weighted mean={result.weighted.mean:.4f}"
        )

        return result

    def estimate_from_schema(self,
                             table: SurveyTable,
                             schema: SchemaMapping,
                             role: SchemaRole = SchemaRole.ANALYSIS_VAR_1) -> EstimateResult:
        """
        Estimate the variable mapped to ``role``.

        Raises
        ------
        SchemaMappingError
            If the weight role or ``role`` has no column mapped
        """
        variable = schema.require(role)
        weight = schema.require(SchemaRole.WEIGHT)
        return self.estimate(table, variable, weight)

    def estimate_all(self, table: SurveyTable, schema: SchemaMapping) -> List[EstimateResult]:
        """
        Estimate the first analysis variable and, when mapped, the second.

        Each result is computed independently.
        """
        results = [self.estimate_from_schema(table, schema, SchemaRole.ANALYSIS_VAR_1)]

        if schema.get(SchemaRole.ANALYSIS_VAR_2):
            results.append(self.estimate_from_schema(table, schema, SchemaRole.ANALYSIS_VAR_2))

        return results

    def _unweighted_stats(self, data: pd.Series) -> EstimateStats:
        """Count, mean, total and MoE from the present values."""
        n = len(data)
        if n == 0:
            return EstimateStats()

        total = float(data.sum())
        mean = total / n
        variance = float(((data - mean) ** 2).sum() / (n - 1)) if n > 1 else 0.0
        se = math.sqrt(variance / n)

        return EstimateStats(
            count=n,
            mean=mean,
            moe=self.z_value * se,
            total=total,
            standard_error=se,
            variance=variance
        )

    def _weighted_stats(self, data: pd.Series, weights: pd.Series) -> EstimateStats:
        """Weighted count, mean, total and simplified MoE."""
        n = len(data)
        sum_of_weights = float(weights.sum()) if n else 0.0
        total = float((data * weights).sum()) if n else 0.0

        if n == 0 or sum_of_weights == 0:
            return EstimateStats(
                count=n,
                total=total,
                sum_of_weights=sum_of_weights,
                approximate_se=True
            )

        mean = self._weighted_mean(data, weights)
        variance = self._weighted_variance(data, weights)
        se = math.sqrt(variance / n) if variance > 0 else 0.0

        return EstimateStats(
            count=n,
            mean=mean,
            moe=self.z_value * se,
            total=total,
            standard_error=se,
            variance=variance,
            sum_of_weights=sum_of_weights,
            approximate_se=True
        )

    def _weighted_mean(self, data: pd.Series, weights: pd.Series) -> float:
        """Calculate weighted mean."""
        return float((data * weights).sum() / weights.sum())

    def _weighted_variance(self, data: pd.Series, weights: pd.Series) -> float:
        """Calculate weighted variance."""
        weighted_mean = self._weighted_mean(data, weights)
        weighted_var = ((weights * (data - weighted_mean) ** 2).sum() /
                       weights.sum())
        return float(weighted_var)


def estimate(table: SurveyTable, variable: Optional[str], weight: Optional[str]) -> EstimateResult:
    """
    Module-level shortcut for :meth:`WeightedEstimator.estimate`.

    Raises SchemaMappingError when either column name is missing.
    """
    schema = SchemaMapping({SchemaRole.ANALYSIS_VAR_1: variable, SchemaRole.WEIGHT: weight})
    return WeightedEstimator().estimate_from_schema(table, schema)
