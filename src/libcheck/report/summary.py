"""Plain-text summary of an AggregateReport for the console."""

from libcheck.report.aggregate import AggregateReport


def format_summary(report: AggregateReport) -> str:
    """Render the per-board overview and example distribution as text."""
    percent = report.percent
    lines = [f"Tested libraries: {report.num_libs}", ""]

    for board in report.boards:
        lines.append(f"{board.name} @ {','.join(board.versions)}")
        if board.passed > 0:
            lines.append(f"- Compatible libs:          {board.passed} ({percent(board.passed)})")
            lines.append(f"    claiming compatibility: {board.pass_claim} ({percent(board.pass_claim)})")
        if board.failed > 0:
            lines.append(f"- Incompatible libs:        {board.failed} ({percent(board.failed)})")
            lines.append(f"    claiming compatibility: {board.fail_claim} ({percent(board.fail_claim)})")
        if board.untested > 0:
            lines.append(f"- Untested libs:            {board.untested} ({percent(board.untested)})")

    lines.append("")
    lines.append(f"Compatible with all boards:  {report.num_libs_pass_all_boards} ({percent(report.num_libs_pass_all_boards)})")
    lines.append(f"Compatible with no boards:   {report.num_libs_pass_no_boards} ({percent(report.num_libs_pass_no_boards)})")
    lines.append(f"Claiming but failing:        {report.num_libs_fail_claim} ({percent(report.num_libs_fail_claim)})")

    lines.append("")
    lines.append("Number of examples (distribution):")
    for bucket in report.examples:
        lines.append(f"- {bucket.num}: {bucket.count} ({percent(bucket.count)})")

    return "\n".join(lines)
