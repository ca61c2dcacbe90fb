"""Markdown summary of one commit analysis run."""

from __future__ import annotations

from typing import TYPE_CHECKING

from commitscore_core.models import DIMENSION_LABELS, DIMENSIONS, quality_level

if TYPE_CHECKING:
    from commitscore_core.analyzer import CommitReport


def build_summary(report: CommitReport) -> str:
    commit = report.commit
    analyzed = report.with_status("analyzed", "cached")
    skipped = report.with_status("skipped")
    failed = report.with_status("failed")

    lines = [f"## Commit quality: `{commit.short_id}`\n"]
    first_line = commit.message.strip().splitlines()[0] if commit.message.strip() else "(no message)"
    lines.append(f"_{first_line}_ by **{commit.author}**\n")

    analysis = report.analysis
    if analysis is None:
        verdict = "Not analyzed: no file produced a usable result."
    else:
        verdict = f"Overall score **{analysis.overall_score:.1f}/10** ({quality_level(analysis.overall_score)})."
        if not analysis.reliable:
            verdict += " Some scores are unreliable defaults because the model output could not be parsed."
    lines.append(f"> {verdict}\n")

    lines.append(
        f"**{len(analyzed)}** file(s) analyzed"
        + (f", **{len(skipped)}** skipped" if skipped else "")
        + (f", **{len(failed)}** failed" if failed else "")
        + "\n"
    )

    if analyzed:
        header = " | ".join(DIMENSION_LABELS[d] for d in DIMENSIONS)
        lines.append(f"| File | {header} | Overall |")
        lines.append("|------|" + ":---:|" * len(DIMENSIONS) + ":-----:|")
        for outcome in analyzed:
            fa = outcome.analysis
            cells = " | ".join(str(fa.scores.score(d)) for d in DIMENSIONS)
            marker = "" if fa.reliable else " (unreliable)"
            lines.append(f"| `{fa.file_path}`{marker} | {cells} | {fa.overall_score:.1f} |")

    if analysis is not None and analysis.recommendations:
        lines.append("\n**Top recommendations:**")
        for rec in analysis.recommendations:
            where = f" (`{rec.referenced_file}`)" if rec.referenced_file else ""
            lines.append(f"- [{rec.priority}] {rec.title}{where}")

    if skipped or failed:
        lines.append("\n**Not analyzed:**")
        for outcome in skipped + failed:
            lines.append(f"- `{outcome.path}` ({outcome.kind}): {outcome.reason}")

    return "\n".join(lines)
