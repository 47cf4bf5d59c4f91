"""Tests for the analysis engine: rule isolation, stats, parse-error handling."""

import logging
from pathlib import Path

from anchorscan.config import Config, get_default_config
from anchorscan.context import FileContext, create_context
from anchorscan.engine import analyze_context, analyze_files
from anchorscan.findings.models import Severity
from anchorscan.parser import parse_bytes
from anchorscan.rules.base import Rule
from anchorscan.rules.division_by_zero import DivisionByZeroRule

SAMPLE = Path(__file__).parent / "sample.rs"


class _ExplodingRule(Rule):
    id = "exploding"
    title = "Exploding"
    description = "Always fails"
    severity = Severity.HIGH

    def check(self, tree, file_path, span_extractor, context_lines=0):
        raise RuntimeError("boom")


def test_analyze_sample_program():
    """The sample program reports its two instruction handlers and one unchecked division."""
    result = analyze_files([SAMPLE])
    by_rule = {}
    for f in result.findings:
        by_rule.setdefault(f.rule_id, []).append(f)
    assert set(by_rule) == {"anchor-instructions", "solana-division-by-zero"}
    assert len(by_rule["anchor-instructions"]) == 2
    assert "share" in by_rule["solana-division-by-zero"][0].description
    assert result.stats.files_analyzed == 1
    assert result.stats.rules_executed == 9
    assert result.stats.findings_by_severity == {Severity.LOW: 2, Severity.MEDIUM: 1}
    assert result.stats.total_time_ms >= 0
    assert result.analyzed_files == [SAMPLE]


def test_failing_rule_is_isolated(caplog):
    source = b"fn f(a: u64, b: u64) -> u64 { a / b }\n"
    ctx = FileContext(path=Path("lib.rs"), source=source, tree=parse_bytes(source))
    config = Config(rules=[_ExplodingRule(), DivisionByZeroRule()])
    with caplog.at_level(logging.ERROR):
        findings = analyze_context(ctx, config)
    assert [f.rule_id for f in findings] == ["solana-division-by-zero"]
    assert "Rule exploding failed" in caplog.text


def test_unreadable_file_skipped(tmp_path):
    result = analyze_files([tmp_path / "missing.rs"])
    assert result.findings == []
    assert result.stats.files_analyzed == 0
    assert result.stats.files_skipped == 1


def test_parse_errors_analyzed_by_default(tmp_path):
    path = tmp_path / "broken.rs"
    path.write_bytes(b"fn f(a: u64, b: u64) -> u64 { a / b }\nfn g( {\n")
    ctx = create_context(path)
    assert ctx is not None and ctx.has_parse_errors
    result = analyze_files([path], Config(rules=[DivisionByZeroRule()]))
    assert result.stats.files_analyzed == 1


def test_parse_errors_skipped_when_configured(tmp_path, caplog):
    path = tmp_path / "broken.rs"
    path.write_bytes(b"fn g( {\n")
    config = get_default_config()
    config.skip_parse_errors = True
    with caplog.at_level(logging.WARNING):
        result = analyze_files([path], config)
    assert result.stats.files_analyzed == 0
    assert result.stats.files_skipped == 1
    assert "syntax errors" in caplog.text


def test_context_lines_flow_into_findings(tmp_path):
    path = tmp_path / "lib.rs"
    path.write_bytes(b"fn f(a: u64, b: u64) -> u64 {\n    a / b\n}\n")
    config = Config(rules=[DivisionByZeroRule()], context_lines=1)
    result = analyze_files([path], config)
    assert result.findings[0].context is not None
    assert result.findings[0].location.file == str(path)


def test_rules_selected_once_per_run(tmp_path, caplog):
    """Rule selection (and its logging) happens once, not once per file."""
    paths = []
    for name in ("a.rs", "b.rs"):
        path = tmp_path / name
        path.write_bytes(b"fn f() {}\n")
        paths.append(path)
    disabled = DivisionByZeroRule()
    disabled.enabled = False
    with caplog.at_level(logging.DEBUG, logger="anchorscan.config"):
        result = analyze_files(paths, Config(rules=[disabled]))
    assert result.stats.files_analyzed == 2
    assert result.stats.rules_executed == 0
    assert caplog.text.count("is disabled") == 1
