"""
Rule-based row filtering for survey data.

A validation rule is a single comparison ``<column> <op> <number>`` with
``op`` one of ``>``, ``<`` or ``=``. Rows whose value fails the comparison
are dropped; rows with no usable value are kept.
"""

import logging
import operator
import re
from dataclasses import dataclass
from typing import Optional
import numpy as np

from .models import SurveyTable
from .field_coercion import coerce_numeric, numeric_column

RULE_PATTERN = re.compile(r'(?P<column>[^<>=]*)(?P<op>[<>=]+)(?P<value>.*)', re.DOTALL)

COMPARATORS = {
    '>': operator.gt,
    '<': operator.lt,
    '=': operator.eq,
}


@dataclass(frozen=True)
class ValidationRule:
    """Parsed comparison rule."""
    column: str
    operator: str
    threshold: float

    def holds(self, value: float) -> bool:
        return COMPARATORS[self.operator](value, self.threshold)

    def __str__(self) -> str:
        return f"{self.column} {self.operator} {self.threshold:g}"


def parse_rule(text: Optional[str]) -> Optional[ValidationRule]:
    """
    Parse ``<column> <op> <number>``.

    The column is everything before the first run of comparator
    characters. That run must be exactly one of ``>``, ``<`` or ``=``, and
    everything after it must be a complete number. Returns None when the
    text does not form such a rule.
    """
    if not text or not text.strip():
        return None

    match = RULE_PATTERN.match(text)
    if match is None:
        return None

    column = match.group('column').strip()
    op = match.group('op')
    threshold = coerce_numeric(match.group('value'))

    if not column or op not in COMPARATORS or threshold is None:
        return None

    return ValidationRule(column=column, operator=op, threshold=threshold)


class RuleValidator:
    """
    Apply a single validation rule to a survey table.

    Rows whose value in the rule's column is absent cannot be evaluated
    and are retained. Surviving rows keep their relative order.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def apply_rule(self, table: SurveyTable, rule_text: Optional[str]) -> SurveyTable:
        """
        Filter rows by a free-text rule.

        A blank rule returns the table unchanged. A rule that cannot be
        parsed is logged and also returns the table unchanged.
        """
        if not rule_text or not rule_text.strip():
            return table

        rule = self.parse(rule_text)
        if rule is None:
            return table

        return self.filter_rows(table, rule)

    def parse(self, rule_text: Optional[str]) -> Optional[ValidationRule]:
        """Parse a rule, logging a warning when the text is not a usable rule."""
        rule = parse_rule(rule_text)
        if rule is None:
            self.logger.warning(f"Could not parse validation rule '{rule_text}'; rule skipped")
        return rule

    def filter_rows(self, table: SurveyTable, rule: ValidationRule) -> SurveyTable:
        """Keep rows where the rule holds or the value is absent."""
        if rule.column not in table.records.columns:
            self.logger.warning(f"Rule column '{rule.column}' not found; all rows retained")

        values = numeric_column(table, rule.column)
        keep = np.array(
            [np.isnan(value) or rule.holds(value) for value in values],
            dtype=bool
        )

        removed = int((~keep).sum())
        self.logger.info(f"Rule '{rule}': removed {removed} rows, {int(keep.sum())} retained")

        return table.take(keep)
