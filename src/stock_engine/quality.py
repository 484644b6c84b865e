"""
Data quality reporting for loaded sources.

Normalization never raises: rows without date/item are dropped and bad
numbers become NaN. This module makes those silent losses visible as a
structured report per source.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

import pandas as pd

Check = Callable[[pd.DataFrame, pd.DataFrame], list["DataQualityIssue"]]


@dataclass
class DataQualityIssue:
    """A single data quality issue found in a source."""

    column: str
    issue_type: str  # "dropped_rows", "unparseable_number", "missing"
    severity: str  # "critical", "warning", "info"
    count: int
    percentage: float
    sample_values: list[Any] = field(default_factory=list)
    description: str = ""


@dataclass
class DataQualityReport:
    source_name: str
    raw_rows: int
    kept_rows: int
    issues: list[DataQualityIssue] = field(default_factory=list)

    @property
    def dropped_rows(self) -> int:
        return self.raw_rows - self.kept_rows

    @property
    def critical_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "critical"]

    @property
    def warning_issues(self) -> list[DataQualityIssue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def has_critical_issues(self) -> bool:
        return len(self.critical_issues) > 0

    def summary(self) -> dict:
        return {
            "source": self.source_name,
            "raw_rows": self.raw_rows,
            "kept_rows": self.kept_rows,
            "critical": len(self.critical_issues),
            "warnings": len(self.warning_issues),
            "info": len([i for i in self.issues if i.severity == "info"]),
        }


def severity_for(percentage: float) -> str:
    if percentage > 20:
        return "critical"
    if percentage > 5:
        return "warning"
    return "info"


class DataQualityChecker:
    """
    Compares raw rows with their normalized counterpart.

    Each check receives (raw frame, normalized frame). Add source-specific
    checks with add_check().
    """

    def __init__(self, source_name: str):
        self.source_name = source_name
        self._checks: list[Check] = [self._check_dropped_rows]

    def add_check(self, check_fn: Check) -> "DataQualityChecker":
        self._checks.append(check_fn)
        return self

    def _check_dropped_rows(
        self, raw: pd.DataFrame, normalized: pd.DataFrame
    ) -> list[DataQualityIssue]:
        dropped = len(raw) - len(normalized)
        if dropped <= 0 or len(raw) == 0:
            return []
        pct = dropped / len(raw) * 100
        return [
            DataQualityIssue(
                column="date, item",
                issue_type="dropped_rows",
                severity=severity_for(pct),
                count=dropped,
                percentage=pct,
                description=f"{dropped:,} rows without a valid date or item code",
            )
        ]

    def check_numeric(self, column: str) -> "DataQualityChecker":
        """Flag normalized values that are NaN in ``column``."""

        def check(raw: pd.DataFrame, normalized: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in normalized.columns or len(normalized) == 0:
                return []
            missing = int(normalized[column].isna().sum())
            if missing == 0:
                return []
            pct = missing / len(normalized) * 100
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="unparseable_number",
                    severity=severity_for(pct),
                    count=missing,
                    percentage=pct,
                    description=f"{missing:,} empty or unparseable values ({pct:.1f}%)",
                )
            ]

        self._checks.append(check)
        return self

    def check_missing_text(self, column: str, severity: str = "info") -> "DataQualityChecker":
        """Flag empty strings in a normalized text column."""

        def check(raw: pd.DataFrame, normalized: pd.DataFrame) -> list[DataQualityIssue]:
            if column not in normalized.columns or len(normalized) == 0:
                return []
            empty = int((normalized[column].fillna("") == "").sum())
            if empty == 0:
                return []
            return [
                DataQualityIssue(
                    column=column,
                    issue_type="missing",
                    severity=severity,
                    count=empty,
                    percentage=empty / len(normalized) * 100,
                    description=f"{empty:,} rows without {column}",
                )
            ]

        self._checks.append(check)
        return self

    def run(self, raw: pd.DataFrame, normalized: pd.DataFrame) -> DataQualityReport:
        issues = []
        for check_fn in self._checks:
            issues.extend(check_fn(raw, normalized))
        return DataQualityReport(
            source_name=self.source_name,
            raw_rows=len(raw),
            kept_rows=len(normalized),
            issues=issues,
        )
