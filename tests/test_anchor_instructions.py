"""Unit tests for the anchor_instructions rule."""

from pathlib import Path

from anchorscan.context import FileContext
from anchorscan.parser import create_parser, parse_bytes
from anchorscan.rules.anchor_instructions import AnchorInstructionsRule


def _run_rule(source: bytes, path: Path | None = None) -> list:
    """Parse source, build context, run AnchorInstructionsRule, return findings."""
    if path is None:
        path = Path("lib.rs")
    parser = create_parser()
    tree = parse_bytes(source, parser=parser)
    ctx = FileContext(path=path, source=source, tree=tree)
    rule = AnchorInstructionsRule()
    return rule.run(ctx, None)


def test_instruction_handlers_reported():
    source = b"""
use anchor_lang::prelude::*;

#[program]
pub mod counter {
    use super::*;

    pub fn initialize(ctx: Context<Initialize>) -> Result<()> {
        Ok(())
    }

    pub fn increment(ctx: Context<Increment>, by: u64) -> Result<()> {
        Ok(())
    }

    fn helper(ctx: Context<Increment>) {}
}
"""
    findings = _run_rule(source)
    assert [f.description.split("'")[1] for f in findings] == ["initialize", "increment"]
    assert all(f.rule_id == "anchor-instructions" for f in findings)
    assert all(f.severity.value == "low" for f in findings)
    assert findings[0].location.start_line == 8


def test_functions_without_context_ignored():
    assert _run_rule(b"pub fn add(a: u64) -> Result<u64> { Ok(a) }\n") == []
