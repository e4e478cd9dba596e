"""
Main Survey Estimation Tool class.

This module provides the primary interface for survey data preparation and
estimation, integrating the cleaning pipeline and the point estimator.
"""

import json
import logging
from typing import Dict, List, Optional, Any, Iterable, Mapping, Sequence
import pandas as pd

from .data_processing import (
    DataCleaner, MissingDataHandler,
    SurveyTable, CleaningConfig, SchemaMapping, SchemaRole,
    EstimateResult, PipelineResult
)
from .descriptive_analysis import WeightedEstimator


class SurveyEstimationTool:
    """
    Survey data preparation and estimation tool.

    This is the main interface that integrates the cleaning and estimation
    components, providing a unified API from ingested rows through to the
    estimates consumed by charts and reports.

    Features:
    - Single-column mean/median imputation
    - IQR and z-score outlier flagging
    - Rule-based row filtering
    - Unweighted and weighted count, mean, total and margin of error
    - Timestamped cleaning log for reporting
    """

    def __init__(self,
                 config_path: Optional[str] = None,
                 log_level: str = 'INFO'):
        """
        Initialize the Survey Estimation Tool.

        Parameters
        ----------
        config_path : str, optional
            Path to a JSON configuration file with optional
            ``cleaning`` and ``schema`` sections
        log_level : str, default 'INFO'
            Logging level
        """
        # Setup logging
        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        self.logger = logging.getLogger(__name__)

        # Configuration
        self.config = self._load_config(config_path) if config_path else {}
        self.cleaning_config = CleaningConfig.from_dict(self.config.get('cleaning'))
        self.schema_mapping = SchemaMapping.from_dict(self.config.get('schema'))

        # Initialize components
        self.missing_data_handler = MissingDataHandler()
        self.data_cleaner = DataCleaner(missing_data_handler=self.missing_data_handler)
        self.estimator = WeightedEstimator()

        # Data storage
        self.data: Optional[SurveyTable] = None
        self.pipeline_result: Optional[PipelineResult] = None
        self.estimates: List[EstimateResult] = []

        self.logger.info("Survey Estimation Tool initialized successfully")

    @property
    def cleaned_data(self) -> Optional[SurveyTable]:
        return self.pipeline_result.table if self.pipeline_result is not None else None

    def load_records(self,
                     rows: Iterable[Mapping[str, Any]],
                     columns: Optional[Sequence[str]] = None) -> SurveyTable:
        """
        Load ingested survey rows.

        Parameters
        ----------
        rows : iterable of mappings
            Rows as column name to string value mappings
        columns : sequence of str, optional
            Ordered column names; inferred from the rows when omitted

        Returns
        -------
        SurveyTable
            Loaded survey table
        """
        self.data = SurveyTable.from_records(rows, columns)
        self._reset_results()

        self.logger.info(
            f"Successfully loaded {self.data.n_rows} records with "
            f"{len(self.data.columns)} variables"
        )

        return self.data

    def load_dataframe(self, frame: pd.DataFrame) -> SurveyTable:
        """Load survey data that is already in a DataFrame."""
        self.data = SurveyTable.from_frame(frame)
        self._reset_results()

        self.logger.info(
            f"Successfully loaded {self.data.n_rows} records with "
            f"{len(self.data.columns)} variables"
        )

        return self.data

    def set_cleaning_config(self, config: Any) -> CleaningConfig:
        """Set the cleaning configuration from a CleaningConfig or a plain dict."""
        if not isinstance(config, CleaningConfig):
            config = CleaningConfig.from_dict(config)
        self.cleaning_config = config
        return config

    def set_schema_mapping(self, mapping: Any) -> SchemaMapping:
        """Set the schema mapping from a SchemaMapping or a plain dict."""
        if not isinstance(mapping, SchemaMapping):
            mapping = SchemaMapping.from_dict(mapping)
        self.schema_mapping = mapping
        return mapping

    def run_cleaning_pipeline(self,
                              data: Optional[SurveyTable] = None,
                              config: Optional[CleaningConfig] = None) -> PipelineResult:
        """
        Run imputation, outlier flagging and rule validation.

        Parameters
        ----------
        data : SurveyTable, optional
            Table to clean. Uses the loaded data if not provided
        config : CleaningConfig, optional
            Cleaning configuration. Uses the tool's configuration if not provided

        Returns
        -------
        PipelineResult
            Cleaned table and cleaning log
        """
        if data is None:
            if self.data is None:
                raise ValueError("No data loaded. Call load_records() first.")
            data = self.data

        config = config or self.cleaning_config

        self.logger.info("Starting data cleaning process")

        try:
            self.pipeline_result = self.data_cleaner.run_pipeline(data, config)
            self.estimates = []

            self.logger.info(
                f"Data cleaning completed. {self.pipeline_result.table.n_rows} records retained "
                f"({len(self.pipeline_result.log)} stages logged)"
            )

            return self.pipeline_result

        except Exception as e:
            self.logger.error(f"Data cleaning failed: {e}")
            raise

    def estimate(self,
                 data: Optional[SurveyTable] = None,
                 schema: Optional[SchemaMapping] = None,
                 role: SchemaRole = SchemaRole.ANALYSIS_VAR_1) -> EstimateResult:
        """
        Estimate one analysis variable.

        Parameters
        ----------
        data : SurveyTable, optional
            Data to analyze. Uses cleaned data if available, else the loaded data
        schema : SchemaMapping, optional
            Role mapping. Uses the tool's mapping if not provided
        role : SchemaRole, default ANALYSIS_VAR_1
            Analysis role to estimate

        Returns
        -------
        EstimateResult
            Unweighted and weighted estimates

        Raises
        ------
        SchemaMappingError
            If the weight or the analysis role is not mapped
        """
        data = self._analysis_data(data)
        schema = schema or self.schema_mapping

        try:
            result = self.estimator.estimate_from_schema(data, schema, role)
            self.estimates = [r for r in self.estimates if r.name != result.name] + [result]
            return result
        except Exception as e:
            self.logger.error(f"Estimation failed: {e}")
            raise

    def estimate_all(self,
                     data: Optional[SurveyTable] = None,
                     schema: Optional[SchemaMapping] = None) -> List[EstimateResult]:
        """Estimate every mapped analysis variable."""
        data = self._analysis_data(data)
        schema = schema or self.schema_mapping

        self.logger.info("Computing survey estimates")

        try:
            self.estimates = self.estimator.estimate_all(data, schema)
            self.logger.info(f"Estimation completed for {len(self.estimates)} variables")
            return self.estimates

        except Exception as e:
            self.logger.error(f"Estimation failed: {e}")
            raise

    def get_analysis_summary(self) -> Dict[str, Any]:
        """
        Get summary of the loaded data, cleaning run and estimates.

        Returns
        -------
        dict
            Summary of analysis results
        """
        summary = {
            'data_loaded': self.data is not None,
            'data_cleaned': self.pipeline_result is not None,
            'n_records': self.data.n_rows if self.data is not None else 0,
            'n_variables': len(self.data.columns) if self.data is not None else 0,
            'cleaning_log': [],
            'estimates': [result.to_dict() for result in self.estimates]
        }

        if self.data is not None:
            summary['item_nonresponse'] = self.missing_data_handler.item_nonresponse(self.data)

        if self.pipeline_result is not None:
            cleaned = self.pipeline_result.table
            summary['n_records_retained'] = cleaned.n_rows
            summary['cleaning_log'] = self.pipeline_result.log_lines()
            summary['outlier_counts'] = {
                name: int(cleaned.flags[name].sum()) for name in cleaned.flag_columns
            }

        return summary

    def _analysis_data(self, data: Optional[SurveyTable]) -> SurveyTable:
        if data is None:
            data = self.cleaned_data if self.cleaned_data is not None else self.data

        if data is None:
            raise ValueError("No data available for analysis")

        return data

    def _reset_results(self):
        self.pipeline_result = None
        self.estimates = []

    def _load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from file."""
        try:
            with open(config_path, 'r') as f:
                config = json.load(f)
            if not isinstance(config, dict):
                raise ValueError("configuration root must be a JSON object")
            self.logger.info(f"Configuration loaded from {config_path}")
            return config
        except (OSError, ValueError) as e:
            self.logger.warning(f"Failed to load configuration: {e}")
            return {}
