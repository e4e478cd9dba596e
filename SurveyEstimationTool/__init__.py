"""
Survey Estimation Tool

Prepares tabular survey data for statistical reporting: single-column
imputation, outlier flagging and rule-based filtering, followed by
unweighted and weighted point estimates with margins of error.
"""

__version__ = "1.0.0"

from .survey_estimation_tool import SurveyEstimationTool
from .descriptive_analysis import WeightedEstimator
from .data_processing import DataCleaner
from .data_processing.models import (
    SurveyTable,
    ImputationMethod,
    OutlierMethod,
    SchemaRole,
    CleaningConfig,
    SchemaMapping,
    SchemaMappingError,
    EstimateResult,
    PipelineResult
)

__all__ = [
    'SurveyEstimationTool',
    'WeightedEstimator',
    'DataCleaner',
    'SurveyTable',
    'ImputationMethod',
    'OutlierMethod',
    'SchemaRole',
    'CleaningConfig',
    'SchemaMapping',
    'SchemaMappingError',
    'EstimateResult',
    'PipelineResult'
]
