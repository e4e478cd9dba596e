"""
Cleaning pipeline for survey data.

This module runs the configured cleaning stages in a fixed order,
imputation, then outlier flagging, then rule validation, and records one
human-readable log entry for every stage that actually ran.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Tuple

from .models import (
    CleaningConfig, ImputationMethod, LogEntry, PipelineResult, SurveyTable
)
from .field_coercion import count_absent
from .missing_data_handler import MissingDataHandler
from .outlier_detector import OutlierDetector, flag_column_name
from .rule_validator import RuleValidator


class DataCleaner:
    """
    Orchestrates the survey cleaning stages.

    Stages:
    1. Imputation, when an imputation column and method are configured
    2. Outlier flagging, when an outlier column and method are configured
    3. Rule validation, when a validation rule is given

    Unconfigured stages are skipped without a log entry. No stage raises
    for degenerate data or an unusable rule; such outcomes are logged and
    the pipeline continues.
    """

    def __init__(self,
                 missing_data_handler: Optional[MissingDataHandler] = None,
                 outlier_detector: Optional[OutlierDetector] = None,
                 rule_validator: Optional[RuleValidator] = None,
                 clock: Callable[[], datetime] = datetime.now):
        """
        Initialize the DataCleaner.

        Parameters
        ----------
        missing_data_handler : MissingDataHandler, optional
            Imputer used by the first stage
        outlier_detector : OutlierDetector, optional
            Detector used by the second stage
        rule_validator : RuleValidator, optional
            Validator used by the third stage
        clock : callable, default datetime.now
            Source of log entry timestamps
        """
        self.missing_data_handler = missing_data_handler or MissingDataHandler()
        self.outlier_detector = outlier_detector or OutlierDetector()
        self.rule_validator = rule_validator or RuleValidator()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

        self.last_result: Optional[PipelineResult] = None

    def run_pipeline(self, table: SurveyTable, config: Optional[CleaningConfig]) -> PipelineResult:
        """
        Run the cleaning pipeline.

        Parameters
        ----------
        table : SurveyTable
            Raw survey table; it is not modified
        config : CleaningConfig
            Cleaning configuration for this run

        Returns
        -------
        PipelineResult
            Cleaned table and the log of executed stages
        """
        config = config or CleaningConfig()
        log: Tuple[LogEntry, ...] = ()

        self.logger.info(f"Starting cleaning pipeline for {table.n_rows} rows")

        if config.imputation.is_active():
            table, entry = self._impute_stage(table, config)
            log = log + (entry,)

        if config.outlier.is_active():
            table, entry = self._outlier_stage(table, config)
            log = log + (entry,)

        if config.validation_rule.strip():
            table, entry = self._validation_stage(table, config)
            log = log + (entry,)

        self.logger.info(f"Cleaning pipeline completed. {table.n_rows} rows retained.")

        self.last_result = PipelineResult(table=table, log=log)
        return self.last_result

    def _impute_stage(self, table: SurveyTable, config: CleaningConfig) -> Tuple[SurveyTable, LogEntry]:
        column = config.imputation.column
        method = config.imputation.method

        if method == ImputationMethod.KNN:
            return table, self._entry(
                f"KNN imputation is not implemented; '{column}' left unchanged", "WARNING"
            )

        replacement = self.missing_data_handler.replacement_value(table, column, method)
        if replacement is None:
            return table, self._entry(
                f"{method.value.capitalize()} imputation on '{column}': "
                f"no numeric values present, column left unchanged",
                "WARNING"
            )

        missing_count = count_absent(table, column)
        imputed = self.missing_data_handler.impute(table, column, method)
        rendered = self.missing_data_handler.format_value(replacement)

        return imputed, self._entry(
            f"{method.value.capitalize()} imputation on '{column}': "
            f"filled {missing_count} missing values with {rendered}"
        )

    def _outlier_stage(self, table: SurveyTable, config: CleaningConfig) -> Tuple[SurveyTable, LogEntry]:
        column = config.outlier.column
        method = config.outlier.method
        threshold = config.outlier.threshold

        flagged = self.outlier_detector.detect_outliers(table, column, method, threshold)
        outlier_count = int(flagged.flags[flag_column_name(column)].sum())

        return flagged, self._entry(
            f"Outlier detection ({method.value}, threshold {threshold:g}) on '{column}': "
            f"flagged {outlier_count} of {flagged.n_rows} rows"
        )

    def _validation_stage(self, table: SurveyTable, config: CleaningConfig) -> Tuple[SurveyTable, LogEntry]:
        rule_text = config.validation_rule

        rule = self.rule_validator.parse(rule_text)
        if rule is None:
            return table, self._entry(
                f"Validation rule '{rule_text}' could not be parsed; rule skipped", "WARNING"
            )

        filtered = self.rule_validator.filter_rows(table, rule)
        removed = table.n_rows - filtered.n_rows

        return filtered, self._entry(
            f"Validation rule '{rule}': removed {removed} rows, {filtered.n_rows} remaining"
        )

    def _entry(self, message: str, level: str = "INFO") -> LogEntry:
        """Create a log entry and mirror it to the module logger."""
        if level == "WARNING":
            self.logger.warning(message)
        else:
            self.logger.info(message)
        return LogEntry(timestamp=self.clock(), message=message, level=level)

    def get_cleaning_report(self) -> Dict[str, Any]:
        """Generate a report of the most recent pipeline run."""
        if self.last_result is None:
            return {
                'cleaning_log': [],
                'rows_retained': 0,
                'flag_columns': [],
                'total_operations': 0
            }

        return {
            'cleaning_log': self.last_result.log_lines(),
            'rows_retained': self.last_result.table.n_rows,
            'flag_columns': self.last_result.table.flag_columns,
            'total_operations': len(self.last_result.log)
        }
