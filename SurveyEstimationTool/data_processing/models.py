"""
Core data models and structures for survey estimation.

This module defines the fundamental data structures used throughout the
survey estimation tool, including the immutable table model, cleaning and
schema configuration, pipeline log entries and result containers for
point estimates.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Union, Tuple, Any, Iterable, Mapping, Sequence
from enum import Enum
import pandas as pd
import numpy as np


class ImputationMethod(Enum):
    """Enumeration of single-column imputation methods."""
    NONE = "none"
    MEAN = "mean"
    MEDIAN = "median"
    KNN = "knn"

    @classmethod
    def from_value(cls, value: Union['ImputationMethod', str, None]) -> 'ImputationMethod':
        """Resolve a configured value, treating anything unrecognized as NONE."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.NONE
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.NONE


class OutlierMethod(Enum):
    """Enumeration of outlier flagging methods."""
    NONE = "none"
    IQR = "iqr"
    Z_SCORE = "z-score"

    @classmethod
    def from_value(cls, value: Union['OutlierMethod', str, None]) -> 'OutlierMethod':
        """Resolve a configured value, treating anything unrecognized as NONE."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.NONE
        normalized = value.strip().lower()
        if normalized in ('zscore', 'z_score'):
            normalized = cls.Z_SCORE.value
        try:
            return cls(normalized)
        except ValueError:
            return cls.NONE


class SchemaRole(Enum):
    """Logical statistical roles a data column can be assigned to."""
    UNIQUE_ID = "uniqueId"
    STRATA = "strata"
    WEIGHT = "weight"
    ANALYSIS_VAR_1 = "analysisVar1"
    ANALYSIS_VAR_2 = "analysisVar2"


_SNAKE_CASE_ROLES = {
    'unique_id': SchemaRole.UNIQUE_ID,
    'strata': SchemaRole.STRATA,
    'weight': SchemaRole.WEIGHT,
    'analysis_var1': SchemaRole.ANALYSIS_VAR_1,
    'analysis_var_1': SchemaRole.ANALYSIS_VAR_1,
    'analysis_var2': SchemaRole.ANALYSIS_VAR_2,
    'analysis_var_2': SchemaRole.ANALYSIS_VAR_2,
}


class SchemaMappingError(ValueError):
    """Raised when a role required for estimation has no column mapped to it."""

    def __init__(self, role: SchemaRole):
        self.role = role
        super().__init__(f"No column mapped to required role '{role.value}'")


@dataclass(frozen=True, eq=False)
class SurveyTable:
    """
    Immutable survey table.

    ``records`` holds the original schema exactly as ingested (string cells,
    ordered columns). ``flags`` holds derived boolean columns added by
    cleaning stages, keyed by name and aligned row-for-row with ``records``.
    Every operation returns a new table; neither frame is modified in place.
    """
    records: pd.DataFrame
    flags: pd.DataFrame = field(default=None)

    def __post_init__(self):
        records = self.records.reset_index(drop=True)
        if self.flags is None:
            flags = pd.DataFrame(index=records.index)
        else:
            flags = self.flags.reset_index(drop=True)
        object.__setattr__(self, 'records', records)
        object.__setattr__(self, 'flags', flags)

    @classmethod
    def from_records(cls,
                     rows: Iterable[Mapping[str, Any]],
                     columns: Optional[Sequence[str]] = None) -> 'SurveyTable':
        """Build a table from ingested rows; keys missing from a row become empty strings."""
        rows = list(rows)
        if columns is None:
            columns = []
            for row in rows:
                for key in row:
                    if key not in columns:
                        columns.append(key)
        data = [[row.get(col, '') for col in columns] for row in rows]
        frame = pd.DataFrame(data, columns=list(columns), dtype=object)
        return cls(frame)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> 'SurveyTable':
        return cls(frame.copy())

    @property
    def columns(self) -> List[str]:
        return list(self.records.columns)

    @property
    def flag_columns(self) -> List[str]:
        return list(self.flags.columns)

    @property
    def n_rows(self) -> int:
        return len(self.records)

    def __len__(self) -> int:
        return self.n_rows

    def has_column(self, name: str) -> bool:
        return name in self.records.columns or name in self.flags.columns

    def column(self, name: str) -> pd.Series:
        """Return an original column, or a derived flag column if no original matches."""
        if name in self.records.columns:
            return self.records[name]
        if name in self.flags.columns:
            return self.flags[name]
        raise KeyError(name)

    def with_records(self, records: pd.DataFrame) -> 'SurveyTable':
        """Return a table with replaced original cells and the same derived flags."""
        return SurveyTable(records.copy(), self.flags.copy())

    def with_flag(self, name: str, values: Iterable[bool]) -> 'SurveyTable':
        """Return a table with the derived column ``name`` added or recomputed."""
        flags = self.flags.copy()
        flags[name] = pd.Series(list(values), index=flags.index, dtype=bool)
        return SurveyTable(self.records.copy(), flags)

    def take(self, mask: Union[pd.Series, Sequence[bool]]) -> 'SurveyTable':
        """Return the rows where ``mask`` is true, in their original order."""
        keep = np.asarray(mask, dtype=bool)
        return SurveyTable(self.records.loc[keep].copy(), self.flags.loc[keep].copy())

    def to_frame(self) -> pd.DataFrame:
        """Original columns followed by derived flags."""
        renamed = {
            name: f"{name}_derived" for name in self.flags.columns
            if name in self.records.columns
        }
        return pd.concat([self.records, self.flags.rename(columns=renamed)], axis=1)

    def to_records(self) -> List[Dict[str, Any]]:
        return self.to_frame().to_dict(orient='records')

    def equals(self, other: 'SurveyTable') -> bool:
        return self.records.equals(other.records) and self.flags.equals(other.flags)


@dataclass
class ImputationConfig:
    """Which column to impute and how."""
    column: Optional[str] = None
    method: ImputationMethod = ImputationMethod.NONE

    def __post_init__(self):
        self.method = ImputationMethod.from_value(self.method)

    def is_active(self) -> bool:
        return bool(self.column) and self.method != ImputationMethod.NONE


@dataclass
class OutlierConfig:
    """Which column to flag outliers in, the method and its threshold multiplier."""
    column: Optional[str] = None
    method: OutlierMethod = OutlierMethod.NONE
    threshold: float = 1.5

    def __post_init__(self):
        from .field_coercion import coerce_numeric

        self.method = OutlierMethod.from_value(self.method)
        threshold = coerce_numeric(self.threshold)
        self.threshold = 1.5 if threshold is None else threshold

    def is_active(self) -> bool:
        return bool(self.column) and self.method != OutlierMethod.NONE


def _section(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    """Nested config section, or an empty mapping when it is not one."""
    section = config.get(key)
    return section if isinstance(section, Mapping) else {}


@dataclass
class CleaningConfig:
    """User-entered cleaning configuration for one pipeline run."""
    imputation: ImputationConfig = field(default_factory=ImputationConfig)
    outlier: OutlierConfig = field(default_factory=OutlierConfig)
    validation_rule: str = ""

    def __post_init__(self):
        if self.validation_rule is None:
            self.validation_rule = ""
        elif not isinstance(self.validation_rule, str):
            self.validation_rule = str(self.validation_rule)

    @classmethod
    def from_dict(cls, config: Optional[Dict[str, Any]]) -> 'CleaningConfig':
        """Build from a plain dict, accepting camelCase or snake_case keys."""
        config = config if isinstance(config, Mapping) else {}
        imputation = _section(config, 'imputation')
        outlier = _section(config, 'outlier')
        rule = config.get('validationRule', config.get('validation_rule'))
        return cls(
            imputation=ImputationConfig(
                column=imputation.get('column') or None,
                method=imputation.get('method'),
            ),
            outlier=OutlierConfig(
                column=outlier.get('column') or None,
                method=outlier.get('method'),
                threshold=outlier.get('threshold'),
            ),
            validation_rule=rule,
        )

    def is_empty(self) -> bool:
        """Check whether every stage would be skipped."""
        return (not self.imputation.is_active()
                and not self.outlier.is_active()
                and not self.validation_rule.strip())


@dataclass
class SchemaMapping:
    """Assignment of logical statistical roles to actual column names."""
    columns: Dict[SchemaRole, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, mapping: Optional[Dict[str, Optional[str]]]) -> 'SchemaMapping':
        columns = {}
        for key, column in (mapping or {}).items():
            if not column:
                continue
            role = _SNAKE_CASE_ROLES.get(key)
            if role is None:
                try:
                    role = SchemaRole(key)
                except ValueError:
                    continue
            columns[role] = column
        return cls(columns=columns)

    def get(self, role: SchemaRole) -> Optional[str]:
        return self.columns.get(role) or None

    def require(self, role: SchemaRole) -> str:
        column = self.get(role)
        if column is None:
            raise SchemaMappingError(role)
        return column

    def analysis_variables(self) -> List[str]:
        """Mapped analysis variables in role order."""
        return [self.columns[role] for role in (SchemaRole.ANALYSIS_VAR_1, SchemaRole.ANALYSIS_VAR_2)
                if self.get(role)]


@dataclass
class EstimateStats:
    """Point estimate for one branch (unweighted or weighted) of one variable."""
    count: int = 0
    mean: float = 0.0
    moe: float = 0.0
    total: float = 0.0
    standard_error: float = 0.0
    variance: float = 0.0
    sum_of_weights: Optional[float] = None
    approximate_se: bool = False

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return {
            'count': self.count,
            'mean': self.mean,
            'moe': self.moe,
            'total': self.total
        }

    def confidence_interval(self) -> Tuple[float, float]:
        """Mean plus/minus the margin of error."""
        return (self.mean - self.moe, self.mean + self.moe)


@dataclass
class EstimateResult:
    """Unweighted and weighted estimates for one analysis variable."""
    name: str
    unweighted: EstimateStats
    weighted: EstimateStats
    weight_variable: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'unweighted': self.unweighted.to_dict(),
            'weighted': self.weighted.to_dict()
        }


@dataclass(frozen=True)
class LogEntry:
    """One timestamped pipeline log line."""
    timestamp: datetime
    message: str
    level: str = "INFO"

    def __str__(self) -> str:
        return f"[{self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}] {self.message}"


@dataclass(frozen=True)
class PipelineResult:
    """Cleaned table plus the ordered log of what each executed stage did."""
    table: SurveyTable
    log: Tuple[LogEntry, ...] = ()

    def log_lines(self) -> List[str]:
        return [str(entry) for entry in self.log]


# Type aliases for convenience
Row = Dict[str, Any]
EstimateList = List[EstimateResult]
