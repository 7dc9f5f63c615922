"""Report writer registry.

Report writers render a :class:`~dqrules.validation.report.ValidationReport`
into one output format. Writers are registered by name so the CLI can look
them up from ``--format`` and list them in ``list-formats``.
"""

import json
from typing import Protocol

from dqrules.validation.report import ValidationReport


class ReportWriter(Protocol):
    """Protocol for report writers."""

    def render(self, report: ValidationReport, severity_filter: str | None = None) -> str: ...


class JSONReportWriter:
    """JSON document with timestamp, summary counts and results."""

    def render(self, report: ValidationReport, severity_filter: str | None = None) -> str:
        data = report.to_json()
        data["results"] = [r.to_dict() for r in report.filter(severity_filter)]
        return json.dumps(data, indent=2, default=str)


class TextReportWriter:
    """Human-readable summary followed by one line per result."""

    def render(self, report: ValidationReport, severity_filter: str | None = None) -> str:
        return report.format(severity_filter)


class CSVReportWriter:
    """One CSV row per result with the camelCase result columns."""

    def render(self, report: ValidationReport, severity_filter: str | None = None) -> str:
        return report.to_frame(severity_filter).write_csv()


WRITERS: dict[str, type[ReportWriter]] = {}


def register_writer(name: str, cls: type[ReportWriter]) -> None:
    """Register a report writer.

    Example:
        >>> class MarkdownWriter:
        ...     def render(self, report, severity_filter=None):
        ...         return "| rule | message |"
        >>> register_writer("markdown", MarkdownWriter)
    """
    WRITERS[name] = cls


def get_writer(name: str) -> ReportWriter:
    """Get report writer instance by name.

    Raises:
        KeyError: If the name is not registered, with message listing
                  available formats
    """
    if name not in WRITERS:
        available = ", ".join(sorted(WRITERS)) if WRITERS else "none"
        raise KeyError(f"Unknown report format '{name}'. Available: {available}")
    return WRITERS[name]()


def list_writers() -> dict[str, str]:
    """List report formats with descriptions (from docstrings)."""
    return {name: cls.__doc__ or "No description" for name, cls in sorted(WRITERS.items())}


register_writer("json", JSONReportWriter)
register_writer("text", TextReportWriter)
register_writer("csv", CSVReportWriter)
