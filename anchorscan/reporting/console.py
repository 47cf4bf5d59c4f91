# Rich console output: format findings for terminal display.

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from anchorscan.findings.models import Finding, Severity

# Severity → Rich style
SEVERITY_STYLE = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "bold yellow",
    Severity.LOW: "bold blue",
}

DEFAULT_SEVERITY_STYLE = "bold white"

SEVERITY_ORDER = (Severity.HIGH, Severity.MEDIUM, Severity.LOW)


def _severity_style(severity: Severity) -> str:
    return SEVERITY_STYLE.get(severity, DEFAULT_SEVERITY_STYLE)


def print_findings(
    findings: Sequence[Finding],
    analyzed_files: Sequence[Path] | None = None,
    verbose: bool = False,
    recommendations: Optional[Mapping[str, Sequence[str]]] = None,
    console: Optional[Console] = None,
) -> None:
    """
    Print findings grouped by file and colored by severity.

    With verbose, source context (when the finding carries one) and the
    recommendations of every rule that fired are shown as well. If
    analyzed_files is provided, a per-file summary table follows.
    """
    if console is None:
        console = Console()
    recommendations = recommendations or {}

    if not findings and not analyzed_files:
        console.print(
            Panel(
                "[green]No issues found.[/green]",
                title="Anchorscan Analysis",
                border_style="green",
                box=box.ROUNDED,
            )
        )
        return

    if not findings and analyzed_files:
        _print_file_summary_table([], analyzed_files, console)
        _print_summary([], console)
        return

    by_file: dict[str, list[Finding]] = {}
    for f in findings:
        by_file.setdefault(f.location.file, []).append(f)

    for path in sorted(by_file):
        file_findings = sorted(by_file[path], key=lambda x: (x.location.start_line, x.location.start_col))

        console.print()
        console.print(Panel(
            f"[bold cyan]{escape(_shorten_path(path))}[/bold cyan]",
            box=box.SIMPLE_HEAD,
            border_style="blue",
            padding=(0, 1),
        ))

        table = Table(
            show_header=True,
            header_style="bold magenta",
            box=box.SIMPLE,
            padding=(0, 1),
            expand=False,
        )
        table.add_column("Line", justify="right", style="dim", width=5)
        table.add_column("Col", justify="right", style="dim", width=4)
        table.add_column("Severity", width=8)
        table.add_column("Rule", no_wrap=True)
        table.add_column("Message", style="white")

        for f in file_findings:
            table.add_row(
                str(f.location.start_line),
                str(f.location.start_col),
                Text(f.severity.value.upper(), style=_severity_style(f.severity)),
                Text(f"[{f.rule_id}]", style="dim"),
                Text(f.description),
            )
        console.print(table)

        for f in file_findings:
            if verbose and f.context:
                console.print(f"  [dim]{escape(f.location.format())}[/dim]")
                console.print(Text(f.context, style="dim"))
            elif f.snippet:
                console.print(f"  [dim]|--[/dim] {escape(f.snippet.strip())}", highlight=False)
        console.print()

        if verbose:
            seen_rules: set[str] = set()
            for f in file_findings:
                if f.rule_id in seen_rules:
                    continue
                seen_rules.add(f.rule_id)
                for hint in recommendations.get(f.rule_id, ()):
                    console.print(f"  [dim][Fix][/dim] {escape(f'[{f.rule_id}]')} {escape(hint)}", highlight=False)
            if seen_rules:
                console.print()

    if analyzed_files:
        _print_file_summary_table(findings, analyzed_files, console)

    _print_summary(findings, console)


def _shorten_path(path: str | Path) -> str:
    """Return the path relative to the working directory when it lies under it."""
    p = Path(path)
    try:
        return str(p.relative_to(Path.cwd()))
    except ValueError:
        return str(p)


def _print_file_summary_table(
    findings: Sequence[Finding],
    analyzed_files: Sequence[Path],
    console: Console,
) -> None:
    """Print a table of clean vs flagged files."""
    by_path: dict[str, int] = {}
    for f in findings:
        by_path[f.location.file] = by_path.get(f.location.file, 0) + 1

    flagged = [p for p in analyzed_files if str(p) in by_path]
    clean = [p for p in analyzed_files if str(p) not in by_path]

    table = Table(
        title="Files Summary",
        show_header=True,
        header_style="bold cyan",
        box=box.ROUNDED,
        padding=(0, 1),
    )
    table.add_column("File", style="white")
    table.add_column("Status", width=10)
    table.add_column("Findings", justify="right", width=8)

    for p in sorted(flagged, key=str):
        table.add_row(_shorten_path(p), Text("ISSUES", style="bold red"), str(by_path[str(p)]))
    for p in sorted(clean, key=str):
        table.add_row(_shorten_path(p), Text("OK", style="bold green"), "0")

    console.print()
    console.print(Panel(table, border_style="cyan", box=box.ROUNDED))


def _print_summary(findings: Sequence[Finding], console: Console) -> None:
    """Print a compact per-severity summary of findings."""
    by_severity: dict[Severity, int] = {}
    for f in findings:
        by_severity[f.severity] = by_severity.get(f.severity, 0) + 1

    total = len(findings)
    summary_parts = [f"[bold]{total} finding{'s' if total != 1 else ''}[/bold]"]
    for sev in SEVERITY_ORDER:
        if sev in by_severity:
            summary_parts.append(f"[{_severity_style(sev)}]{by_severity[sev]} {sev.value}[/]")

    console.print()
    console.print(
        Panel(
            " | ".join(summary_parts),
            title="Summary",
            border_style="yellow" if total > 0 else "green",
            box=box.ROUNDED,
        )
    )
