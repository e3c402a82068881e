from __future__ import annotations

from collections import Counter
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cachecheck.driver import RunSummary
from cachecheck.logictest.runner import LogicTestReport
from cachecheck.workloads.registry import get_workload


def print_run_summary(summary: RunSummary, console: Optional[Console] = None) -> None:
    """
    Render a workload run as a rich table: one row per query, plus failed checks.
    """
    console = console or Console()

    title = (
        f"Workload [cyan]{summary['workload']}[/cyan]\n"
        f"[dim]{summary['iterations']} iterations │ "
        f"{summary['writes_applied']} writes applied │ "
        f"{summary['writes_rejected']} rejected[/dim]"
    )
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Query", style="cyan", no_wrap=True)
    table.add_column("Checks", justify="right", style="magenta")
    table.add_column("Failures", justify="right", style="red")

    failures = Counter(c["query_id"] for c in summary["failed_checks"])
    per_query = summary["iterations"]
    query_ids = sorted(set(failures) | set(get_workload(summary["workload"]).queries))
    for query_id in query_ids:
        table.add_row(query_id, str(per_query), str(failures.get(query_id, 0)))
    console.print(table)

    for check in summary["failed_checks"][:10]:
        console.print(
            f"[red]✗[/red] iteration {check['iteration']} query {check['query_id']} "
            f"after {check['attempts']} attempts"
        )
        console.print(f"  expected: {escape(str(check['expected']))}")
        console.print(f"  actual:   {escape(str(check['actual']))}")

    if summary["failures"]:
        console.print(
            f"[bold red]{summary['failures']} of {summary['checks']} checks failed[/bold red]"
        )
    else:
        console.print(f"[bold green]All {summary['checks']} checks passed[/bold green]")


def print_logictest_reports(
    reports: List[LogicTestReport], console: Optional[Console] = None
) -> None:
    """Render logic-test outcomes, one row per script, followed by each failure."""
    console = console or Console()

    if not reports:
        console.print("[yellow]No scripts were run.[/yellow]")
        return

    table = Table(title="Logic tests", box=box.ROUNDED)
    table.add_column("Script", style="cyan")
    table.add_column("Records", justify="right", style="magenta")
    table.add_column("Result", justify="center")

    for report in reports:
        if report.passed:
            result = "[green]pass[/green]"
        else:
            result = f"[red]{len(report.failures)} failed[/red]"
        table.add_row(report.script or "<string>", str(report.records_run), result)
    console.print(table)

    for report in reports:
        for failure in report.failures:
            where = escape(f"{report.script}:{failure.line} [{failure.path}]")
            console.print(f"[red]✗[/red] {where} {escape(failure.message)}")
            if failure.expected or failure.actual:
                console.print(f"  expected: {escape(' '.join(failure.expected))}")
                console.print(f"  actual:   {escape(' '.join(failure.actual))}")


__all__ = ["print_run_summary", "print_logictest_reports"]
