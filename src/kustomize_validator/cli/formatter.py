# src/kustomize_validator/cli/formatter.py
import os
from typing import List, Sequence

from rich.table import Table
from rich.text import Text

from kustomize_validator.build.executor import extract_failed_paths
from kustomize_validator.core.models import DirectoryReport, ViolationRecord
from kustomize_validator.validator.validator import find

OK = "OK"
INFO = "INFO"
WARNING = "WARNING"
ERROR = "ERROR"
UNKNOWN = "UNKNOWN"

SEVERITY_STYLES = {
    OK: "green",
    INFO: "blue",
    WARNING: "yellow",
    ERROR: "red",
}

TABLE_COLUMNS = ["Relative path", "ApiVersion", "Kind", "Name", "Namespace", "Validation error"]


def format_message(severity: str, message: str) -> Text:
    """
    Tags a message with its severity, e.g. "[OK]: built overlays/prod".
    Unknown severities are returned untagged.
    """
    style = SEVERITY_STYLES.get(severity)
    if style is None:
        return Text(message)
    return Text.assemble("[", (severity, style), "]: ", message)


def _output_blocks(report: DirectoryReport) -> List[Text]:
    return [
        format_message(UNKNOWN, f"==> Stdout ({report.path}):\n{report.build.stdout}"),
        format_message(UNKNOWN, f"==> Stderr ({report.path}):\n{report.build.stderr}"),
    ]


def format_violation(violation: ViolationRecord, verbose: bool = False) -> Text:
    """Renders a content violation, with surrounding lines when verbose."""
    res = violation.resource
    lines = [
        format_message(ERROR, (
            f"Content validation failed for apiVersion {res.api_version}, kind {res.kind}, "
            f"namespace {res.namespace}, name {res.name}"
        )),
        Text(f"\tPattern: {violation.pattern}"),
        Text(f"\tLine: {violation.line_number}"),
        Text(f"\tMatch: {violation.matched_line.strip()}"),
    ]

    if verbose and violation.context_lines:
        lines.append(Text("\n\tContext:"))
        for offset, line in enumerate(violation.context_lines):
            line_no = violation.context_start + offset
            if line_no == violation.line_number:
                lines.append(Text(f"    → {line_no:4d} | {line}", style="bold yellow"))
            else:
                lines.append(Text(f"      {line_no:4d} | {line}"))

    return Text("\n").join(lines)


def format_report(report: DirectoryReport, error_only: bool = False,
                  verbose: bool = False) -> List[Text]:
    """Streamed log lines for one directory."""
    out = []
    build = report.build

    if not build.ok:
        out.append(format_message(ERROR, f"Error while executing kustomize in path: {build.path}, {build.error}"))
        for failed_path in extract_failed_paths(build.stderr):
            out.append(Text.assemble("Failed path: ", (os.path.join(build.path, failed_path), "yellow")))
        if verbose:
            out.extend(_output_blocks(report))
    elif not report.violations and not error_only:
        out.append(format_message(OK, f"Successfully executed kustomize on {build.path}"))
        if verbose:
            out.extend(_output_blocks(report))

    for violation in report.violations:
        out.append(format_violation(violation, verbose=verbose))

    return out


def render_table(reports: Sequence[DirectoryReport], error_only: bool = False) -> Table:
    """Builds the per-resource table shown with --table."""
    table = Table(show_lines=False, header_style="bold magenta")
    for column in TABLE_COLUMNS:
        table.add_column(column)

    for report in reports:
        if not report.build.ok:
            table.add_row(report.path, "", "", "", "", Text(str(report.build.error), style="red"))
        for res in report.resources:
            violation = find(report.violations, res.api_version, res.kind, res.namespace, res.name)
            if error_only and violation is None:
                continue
            table.add_row(
                res.source_path, res.api_version, res.kind, res.name, res.namespace,
                Text(violation.message(), style="red") if violation else "",
            )

    return table


def format_summary(summary: dict) -> List[Text]:
    return [
        Text.assemble("Total: ", (str(summary["total"]), "blue")),
        Text.assemble("Success: ", (str(summary["successful"]), "green")),
        Text.assemble("Error: ", (str(summary["failed"]), "red")),
        Text.assemble("Failed in %: ", (f"{summary['failure_rate'] * 100:.2f}%", "red")),
    ]
