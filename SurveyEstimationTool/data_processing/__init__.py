"""Data processing module for survey cleaning."""

from .data_cleaner import DataCleaner
from .missing_data_handler import MissingDataHandler
from .outlier_detector import OutlierDetector, OutlierBounds, flag_column_name
from .rule_validator import RuleValidator, ValidationRule, parse_rule
from .field_coercion import coerce_numeric, numeric_column, present_values, count_absent
from .models import (
    SurveyTable,
    ImputationMethod,
    OutlierMethod,
    SchemaRole,
    ImputationConfig,
    OutlierConfig,
    CleaningConfig,
    SchemaMapping,
    SchemaMappingError,
    EstimateStats,
    EstimateResult,
    LogEntry,
    PipelineResult
)

__all__ = [
    'DataCleaner',
    'MissingDataHandler',
    'OutlierDetector',
    'OutlierBounds',
    'flag_column_name',
    'RuleValidator',
    'ValidationRule',
    'parse_rule',
    'coerce_numeric',
    'numeric_column',
    'present_values',
    'count_absent',
    'SurveyTable',
    'ImputationMethod',
    'OutlierMethod',
    'SchemaRole',
    'ImputationConfig',
    'OutlierConfig',
    'CleaningConfig',
    'SchemaMapping',
    'SchemaMappingError',
    'EstimateStats',
    'EstimateResult',
    'LogEntry',
    'PipelineResult'
]
