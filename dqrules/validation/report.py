"""ValidationReport aggregation.

This module defines the ValidationReport class that aggregates the per-row
ValidationResults of one engine run.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import polars as pl

from dqrules.core.models import Severity
from dqrules.validation.result import ValidationResult

RESULT_SCHEMA = {
    "rowIndex": pl.Int64,
    "table": pl.Utf8,
    "column": pl.Utf8,
    "ruleName": pl.Utf8,
    "message": pl.Utf8,
    "severity": pl.Utf8,
    "ruleId": pl.Utf8,
}


@dataclass
class ValidationReport:
    """Aggregated report of validation results.

    Provides summary counts, per-rule pass rates, tabular export through
    polars, JSON round-tripping and text formatting with severity filters.

    Attributes:
        results: Flat list of per-row results
        timestamp: When validation started
        passed: Number of ``success`` results
        failed: Number of ``failure`` results
        warnings_count: Number of ``warning`` results

    Example:
        >>> report = create_report(results)
        >>> print(report.summary())
        Validation Summary: 8/10 passed, 1 failed, 1 warnings
        >>> print(report.format(severity_filter="failures"))
        # Shows only failure results
    """

    results: list[ValidationResult]
    timestamp: datetime
    passed: int
    failed: int
    warnings_count: int

    @property
    def total(self) -> int:
        return len(self.results)

    def is_valid(self) -> bool:
        """Check that no result has ``failure`` severity.

        Warnings do not make a report invalid.
        """
        return self.failed == 0

    def summary(self) -> str:
        """Generate summary string.

        Example:
            >>> report.summary()
            'Validation Summary: 4/5 passed, 1 failed, 0 warnings'
        """
        return (
            f"Validation Summary: {self.passed}/{self.total} passed, "
            f"{self.failed} failed, {self.warnings_count} warnings"
        )

    def to_frame(self, severity_filter: str | None = None) -> pl.DataFrame:
        """Return the results as a DataFrame with the camelCase result columns."""
        results = self.filter(severity_filter)
        if not results:
            return pl.DataFrame(schema=RESULT_SCHEMA)
        return pl.DataFrame([r.to_dict() for r in results], schema=RESULT_SCHEMA)

    def pass_rates(self) -> pl.DataFrame:
        """Per-rule counts and pass rate.

        Returns:
            DataFrame with columns ruleId, ruleName, total, passed, failed,
            warnings and passRate (0.0-1.0), ordered by first appearance
        """
        frame = self.to_frame()
        return (
            frame.group_by("ruleId", maintain_order=True)
            .agg(
                pl.col("ruleName").first(),
                pl.len().alias("total"),
                (pl.col("severity") == Severity.SUCCESS.value).sum().alias("passed"),
                (pl.col("severity") == Severity.FAILURE.value).sum().alias("failed"),
                (pl.col("severity") == Severity.WARNING.value).sum().alias("warnings"),
            )
            .with_columns((pl.col("passed") / pl.col("total")).alias("passRate"))
        )

    def filter(self, severity_filter: str | None = None) -> list[ValidationResult]:
        """Select results by severity.

        Args:
            severity_filter: "failures", "warnings", "issues" (failures and
                warnings) or None for everything
        """
        if severity_filter == "failures":
            return [r for r in self.results if r.is_failure()]
        if severity_filter == "warnings":
            return [r for r in self.results if r.is_warning()]
        if severity_filter == "issues":
            return [r for r in self.results if not r.is_success()]
        return list(self.results)

    def to_json(self) -> dict[str, Any]:
        """Export report as JSON for programmatic access.

        Example:
            >>> json_data = report.to_json()
            >>> json_data["summary"]["is_valid"]
            False
        """
        return {
            "timestamp": self.timestamp.isoformat(),
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "failed": self.failed,
                "warnings_count": self.warnings_count,
                "is_valid": self.is_valid(),
            },
            "results": [r.to_dict() for r in self.results],
        }

    def format(self, severity_filter: str | None = None) -> str:
        """Format report as human-readable text.

        Args:
            severity_filter: Same values as :meth:`filter`

        Example:
            >>> print(report.format("failures"))
            Validation Report (2024-01-15 10:30:00)
            ============================================================
            Validation Summary: 1/2 passed, 1 failed, 0 warnings

            [FAILURE] transactions[1].userId (User exists): Value 9999 in userId does not exist in users.id
        """
        lines = [
            f"Validation Report ({self.timestamp.strftime('%Y-%m-%d %H:%M:%S')})",
            "=" * 60,
            self.summary(),
            "",
        ]
        lines.extend(result.format() for result in self.filter(severity_filter))
        return "\n".join(lines)

    @staticmethod
    def from_json(data: dict[str, Any]) -> "ValidationReport":
        """Reconstruct a report from :meth:`to_json` output.

        Counts are recomputed from the results rather than trusted.
        """
        results = [ValidationResult.from_dict(r) for r in data.get("results", [])]
        return create_report(results, timestamp=datetime.fromisoformat(data["timestamp"]))


def create_report(
    results: Sequence[ValidationResult], timestamp: datetime | None = None
) -> ValidationReport:
    """Create a ValidationReport from a list of ValidationResults.

    Example:
        >>> report = create_report([])
        >>> report.is_valid()
        True
    """
    results = list(results)
    return ValidationReport(
        results=results,
        timestamp=timestamp or datetime.now(),
        passed=sum(1 for r in results if r.is_success()),
        failed=sum(1 for r in results if r.is_failure()),
        warnings_count=sum(1 for r in results if r.is_warning()),
    )
