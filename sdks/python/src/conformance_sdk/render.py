from __future__ import annotations

from typing import Any, Iterator

from .errors import ReportFormatError, UnknownConformanceStatusError
from .models.report import ConformanceReport, ConformanceStatus


def iter_report_lines(report: ConformanceReport, indent: str = "  ") -> Iterator[str]:
    for depth, node in report.walk():
        pad = indent * depth
        yield f"{pad}{node.status.glyph} {node.title} ({node.status.display_title})"
        for message in node.error_messages:
            yield f"{pad}{indent}- {message}"


def render_report(report: ConformanceReport, indent: str = "  ") -> str:
    return "\n".join(iter_report_lines(report, indent=indent))


def render_raw_report(payload: Any, indent: str = "  ") -> str:
    """Render a report straight from its wire form.

    A node without a recognised status cannot be displayed; it is reported as
    a formatting error instead of being shown under some default category.
    """

    if not isinstance(payload, dict):
        raise ReportFormatError(f"Report must be a JSON object, got {type(payload).__name__}")
    try:
        report = ConformanceReport.from_dict(payload)
    except UnknownConformanceStatusError as exc:
        raise ReportFormatError(str(exc)) from exc
    except (KeyError, TypeError) as exc:
        raise ReportFormatError(f"Malformed report node: {exc}") from exc
    return render_report(report, indent=indent)


def summarize_failures(report: ConformanceReport) -> str:
    lines: list[str] = []
    _collect_failures(report, lines)
    return "\n".join(lines)


def _collect_failures(report: ConformanceReport, lines: list[str]) -> None:
    if report.status is ConformanceStatus.CONFORMANT:
        return
    lines.append(f"{report.title}: {report.status.value}")
    for message in report.error_messages:
        lines.append(f" - Error message: {message}")
    for child in report.sub_reports:
        _collect_failures(child, lines)
