# Analysis orchestration: run the enabled rules over parsed files and collect stats.

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from tree_sitter import Parser

from anchorscan.config import Config, get_default_config, get_enabled_rules
from anchorscan.context import FileContext, create_context
from anchorscan.findings.models import Finding, Severity
from anchorscan.parser import create_parser
from anchorscan.rules.base import Rule

logger = logging.getLogger(__name__)


@dataclass
class AnalysisStats:
    files_analyzed: int = 0
    files_skipped: int = 0
    rules_executed: int = 0
    total_time_ms: int = 0
    findings_by_severity: dict[Severity, int] = field(default_factory=dict)


@dataclass
class AnalysisResult:
    findings: List[Finding]
    stats: AnalysisStats
    analyzed_files: List[Path] = field(default_factory=list)


def analyze_context(
    context: FileContext,
    config: Optional[Config] = None,
    rules: Optional[Sequence[Rule]] = None,
) -> List[Finding]:
    """
    Run rules (default: the enabled rules of config) on one file.

    A rule that raises is logged and skipped so one broken rule cannot
    hide the findings of the others.
    """
    if config is None:
        config = get_default_config()
    if rules is None:
        rules = get_enabled_rules(config)
    findings: List[Finding] = []
    for rule in rules:
        try:
            rule_findings = rule.run(context, config)
        except Exception as exc:
            logger.exception("Rule %s failed on %s: %s", rule.id, context.path, exc)
            continue
        findings.extend(rule_findings)
    logger.debug("Found %d issue(s) in %s", len(findings), context.path)
    return findings


def analyze_files(
    paths: Sequence[Path],
    config: Optional[Config] = None,
    parser: Optional[Parser] = None,
) -> AnalysisResult:
    """Parse and analyze each path; unreadable files are skipped (already logged)."""
    if config is None:
        config = get_default_config()
    if parser is None:
        parser = create_parser()

    logger.info("Starting analysis of %d file(s)", len(paths))
    start = time.perf_counter()
    rules = get_enabled_rules(config)
    stats = AnalysisStats(rules_executed=len(rules))
    findings: List[Finding] = []
    analyzed: List[Path] = []

    for path in paths:
        ctx = create_context(path, parser=parser)
        if ctx is None:
            stats.files_skipped += 1
            continue
        if ctx.has_parse_errors and config.skip_parse_errors:
            logger.warning("Skipping %s: syntax errors", path)
            stats.files_skipped += 1
            continue
        file_findings = analyze_context(ctx, config, rules)
        for finding in file_findings:
            stats.findings_by_severity[finding.severity] = stats.findings_by_severity.get(finding.severity, 0) + 1
        findings.extend(file_findings)
        analyzed.append(path)

    stats.files_analyzed = len(analyzed)
    stats.total_time_ms = int((time.perf_counter() - start) * 1000)
    logger.info("Analysis completed: %d finding(s) in %dms", len(findings), stats.total_time_ms)
    return AnalysisResult(findings=findings, stats=stats, analyzed_files=analyzed)
