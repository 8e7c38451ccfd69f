"""Render an AnalysisReport as Markdown, JSON or CSV."""

from __future__ import annotations

import csv
import io
import json

from gerry_core.analysis import AnalysisReport

FORMATS = ("markdown", "json", "csv")
TOP_CONTRIBUTORS = 20

CSV_HEADER = (
    "change_number",
    "project",
    "subject",
    "owner_name",
    "owner_email",
    "status",
    "created",
    "updated",
    "submitted",
)


def sanitize_csv_text(text: str) -> str:
    """Commas become spaces and double quotes become single quotes."""
    return text.replace(",", " ").replace('"', "'")


def render(report: AnalysisReport, fmt: str) -> str:
    fmt = fmt.lower()
    if fmt in ("markdown", "md"):
        return to_markdown(report)
    if fmt == "json":
        return to_json(report)
    if fmt == "csv":
        return to_csv(report)
    raise ValueError(f"unknown format: {fmt} (supported: {', '.join(FORMATS)})")


def to_markdown(report: AnalysisReport) -> str:
    lines = ["# Gerrit Change Analysis\n"]
    lines.append(f"**Analysis Period:** {report.start_date} to {report.end_date}")
    lines.append(f"**Repository:** {report.repository or 'All repositories'}")
    lines.append(f"**Generated:** {report.generated_at}")
    lines.append(f"**Total Changes:** {report.total_changes}")
    if not report.complete:
        lines.append(f"\n> Partial result ({report.stop_reason.value}): more matching changes may exist.")
    lines.append("")

    authors = report.by_author

    if not report.repository:
        lines.append("## Changes by Repository\n")
        lines.append("| Repository | Change Count |")
        lines.append("|------------|-------------|")
        for stat in report.by_repository:
            lines.append(f"| {stat.name} | {stat.count} |")
        lines.append("")

    lines.append("## Changes by Author\n")
    lines.append("| Author | Change Count | Repositories |")
    lines.append("|--------|--------------|-------------|")
    for stat in authors:
        lines.append(f"| {stat.name} | {stat.count} | {stat.repo_count} |")
    lines.append("")

    lines.append("## Timeline Analysis\n")
    lines.append("Changes merged per month:\n")
    lines.append("| Month | Change Count |")
    lines.append("|-------|-------------|")
    for stat in report.timeline:
        lines.append(f"| {stat.name} | {stat.count} |")
    lines.append("")

    lines.append(f"## Top {TOP_CONTRIBUTORS} Contributors\n")
    lines.append("| Rank | Author | Changes | Repositories |")
    lines.append("|------|--------|---------|-------------|")
    for rank, stat in enumerate(authors[:TOP_CONTRIBUTORS], 1):
        lines.append(f"| {rank} | {stat.name} | {stat.count} | {stat.repo_count} |")
    lines.append("")

    lines.append("---")
    lines.append("*Generated by gerry analyze*")
    return "\n".join(lines) + "\n"


def to_json(report: AnalysisReport) -> str:
    document = {
        "metadata": {
            "start_date": report.start_date,
            "end_date": report.end_date,
            "repository": report.repository or "",
            "generated_at": report.generated_at,
            "total_changes": report.total_changes,
            "complete": report.complete,
            "stop_reason": report.stop_reason.value,
        },
        "changes": [change.raw for change in report.changes],
        "analysis": {
            "by_author": [s.to_dict() for s in report.by_author],
            "by_repository": [s.to_dict() for s in report.by_repository],
            "timeline": [s.to_dict() for s in report.timeline],
        },
    }
    return json.dumps(document, indent=2)


def to_csv(report: AnalysisReport) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for change in report.changes:
        writer.writerow(
            (
                change.number,
                change.project,
                sanitize_csv_text(change.subject),
                sanitize_csv_text(change.owner if change.owner != "unknown" else ""),
                change.owner_email,
                change.status,
                change.created,
                change.updated,
                change.submitted,
            )
        )
    return buffer.getvalue()
