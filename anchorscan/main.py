"""
Typer CLI entry point for anchorscan.

Accepts a .rs file or a directory, parses every Rust file with
tree-sitter, runs the enabled rules through the engine and prints a rich
report. With --ast the syntax tree of each file is also written next to it
as <file>.json.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from anchorscan.ast_json import write_ast_json
from anchorscan.config import (
    Config,
    get_default_config,
    get_enabled_rules,
    parse_rule_ids,
    parse_severities,
    rule_recommendations,
)
from anchorscan.context import create_context
from anchorscan.engine import analyze_files
from anchorscan.parser import create_parser
from anchorscan.reporting.console import print_findings
from anchorscan.traversal import find_rust_files, is_rust_file

logger = logging.getLogger(__name__)

# Source lines shown around each finding when --verbose is given without -C
VERBOSE_CONTEXT_LINES = 2

app = typer.Typer(help="Anchorscan - static security analysis for Solana/Anchor programs written in Rust.")


def _collect_rust_files(target: Path) -> List[Path]:
    """
    Resolve a target path into a list of .rs files to analyze.

    - If target is a .rs file, return [target]
    - If target is a directory, use traversal.find_rust_files()
    - Otherwise, raise typer.BadParameter.
    """
    if target.is_file():
        if not is_rust_file(target):
            raise typer.BadParameter(f"Target file must have .rs extension, got: {target}")
        return [target]

    if target.is_dir():
        files = find_rust_files(target)
        if not files:
            logger.warning("No .rs files found under %s", target)
        return files

    raise typer.BadParameter(f"Target path is neither a file nor a directory: {target}")


def _write_ast_files(files: List[Path]) -> None:
    parser = create_parser()
    for path in files:
        ctx = create_context(path, parser=parser)
        if ctx is None:
            continue
        write_ast_json(ctx)


@app.command()
def analyze(
    target: Path = typer.Argument(
        ...,
        exists=True,
        readable=True,
        resolve_path=True,
        help="Rust file or directory to analyze.",
    ),
    ignore: Optional[str] = typer.Option(
        None, "--ignore", "-i", help="Severities to ignore, comma separated (low,medium,high)."
    ),
    ignore_rules: Optional[str] = typer.Option(
        None, "--ignore-rules", help="Rule IDs to ignore, comma separated."
    ),
    context_lines: Optional[int] = typer.Option(
        None,
        "--context-lines",
        "-C",
        min=0,
        help=f"Lines of source context to attach to each finding (default: {VERBOSE_CONTEXT_LINES} with --verbose, else 0).",
    ),
    ast: bool = typer.Option(False, "--ast", help="Also write each file's syntax tree as JSON beside it."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show source context and recommendations."),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level (DEBUG, INFO, WARNING, ERROR)."),
) -> None:
    """Analyze a single Rust file or all .rs files under a directory."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    config: Config = get_default_config()
    config.ignore_severities = parse_severities(ignore)
    config.ignore_rules = parse_rule_ids(ignore_rules)
    if context_lines is None:
        context_lines = VERBOSE_CONTEXT_LINES if verbose else 0
    config.context_lines = context_lines

    rules = list(get_enabled_rules(config))
    if not rules:
        typer.echo("No rules are enabled in the current configuration.")
        raise typer.Exit(code=1)

    files = _collect_rust_files(target)
    logger.info("Found %d Rust file(s) to analyze", len(files))

    if ast:
        _write_ast_files(files)

    result = analyze_files(files, config)
    for severity, count in sorted(result.stats.findings_by_severity.items(), key=lambda item: item[0].value):
        logger.info("- %s: %d", severity.value, count)

    print_findings(
        result.findings,
        analyzed_files=result.analyzed_files,
        verbose=verbose,
        recommendations=rule_recommendations(rules),
    )


def main() -> None:
    """Entry point for `python -m anchorscan.main` and the console script."""
    app()


if __name__ == "__main__":
    main()
