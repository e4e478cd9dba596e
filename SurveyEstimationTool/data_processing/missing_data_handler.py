"""
Missing data analysis and imputation for survey data.

This module fills absent numeric cells in a single column with a
column-wide statistic, and reports item non-response rates for a table.
"""

import logging
from typing import Dict, Optional, Union
import numpy as np
from sklearn.impute import SimpleImputer

from .models import ImputationMethod, SurveyTable
from .field_coercion import numeric_column


class MissingDataHandler:
    """
    Single-column missing data imputation for survey data.

    Features:
    - Mean and median imputation from the present values of the column
    - KNN accepted as a configuration value but not implemented (no-op)
    - Item non-response rates per column

    Imputed cells are written back as fixed two-decimal strings so the
    table keeps its string cell representation.
    """

    def __init__(self, decimals: int = 2):
        """
        Initialize the MissingDataHandler.

        Parameters
        ----------
        decimals : int, default 2
            Number of decimals used when rendering the replacement value
        """
        self.decimals = decimals
        self.logger = logging.getLogger(__name__)

    def impute(self,
               table: SurveyTable,
               column: str,
               method: Union[ImputationMethod, str]) -> SurveyTable:
        """
        Impute absent values in one column.

        Parameters
        ----------
        table : SurveyTable
            Table to impute; it is not modified
        column : str
            Column whose absent cells are filled
        method : ImputationMethod or str
            'mean', 'median', 'knn' (not implemented) or 'none'

        Returns
        -------
        SurveyTable
            New table with absent cells replaced, or the input table when
            there is nothing to do
        """
        method = ImputationMethod.from_value(method)

        if method == ImputationMethod.KNN:
            self.logger.warning(f"KNN imputation is not implemented; '{column}' left unchanged")
            return table

        replacement = self.replacement_value(table, column, method)
        if replacement is None:
            return table

        values = numeric_column(table, column)
        missing_mask = values.isna()
        if not missing_mask.any():
            return table

        rendered = self.format_value(replacement)

        imputed_records = table.records.copy()
        imputed_records[column] = imputed_records[column].astype(object)
        imputed_records.loc[missing_mask, column] = rendered

        self.logger.info(
            f"Imputed {int(missing_mask.sum())} missing values in '{column}' "
            f"using {method.value} ({rendered})"
        )

        return table.with_records(imputed_records)

    def replacement_value(self,
                          table: SurveyTable,
                          column: str,
                          method: Union[ImputationMethod, str]) -> Optional[float]:
        """
        Statistic that would replace absent cells.

        Returns None when the method has no statistic or the column has no
        present values.
        """
        method = ImputationMethod.from_value(method)
        if method not in (ImputationMethod.MEAN, ImputationMethod.MEDIAN):
            return None

        if column not in table.records.columns:
            return None

        present = numeric_column(table, column).dropna()
        if present.empty:
            return None

        if method == ImputationMethod.MEAN:
            return float(present.sum() / len(present))

        imputer = SimpleImputer(missing_values=np.nan, strategy=method.value)
        imputer.fit(present.to_numpy().reshape(-1, 1))
        return float(imputer.statistics_[0])

    def format_value(self, value: float) -> str:
        """Render a replacement value as a fixed-decimal string."""
        return f"{value:.{self.decimals}f}"

    def item_nonresponse(self, table: SurveyTable) -> Dict[str, float]:
        """Calculate item non-response rates (percent of empty cells) for each original column."""
        nonresponse_rates = {}

        for col in table.columns:
            if table.n_rows == 0:
                nonresponse_rates[col] = 0.0
                continue

            series = table.records[col]
            blank = series.map(lambda v: isinstance(v, str) and not v.strip())
            missing_count = int((series.isna() | blank.astype(bool)).sum())
            nonresponse_rates[col] = (missing_count / table.n_rows) * 100

        return nonresponse_rates
