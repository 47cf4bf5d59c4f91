"""Unit tests for the missing_owner_check rule."""

from pathlib import Path

from anchorscan.context import FileContext
from anchorscan.parser import create_parser, parse_bytes
from anchorscan.rules.missing_owner_check import MissingOwnerCheckRule


def _run_rule(source: bytes, path: Path | None = None) -> list:
    """Parse source, build context, run MissingOwnerCheckRule, return findings."""
    if path is None:
        path = Path("lib.rs")
    parser = create_parser()
    tree = parse_bytes(source, parser=parser)
    ctx = FileContext(path=path, source=source, tree=tree)
    rule = MissingOwnerCheckRule()
    return rule.run(ctx, None)


def test_unchecked_account_flagged():
    source = b"""
#[derive(Accounts)]
pub struct ReadOracle<'info> {
    /// CHECK: read manually
    pub oracle: UncheckedAccount<'info>,
}
"""
    findings = _run_rule(source)
    assert len(findings) == 1
    assert findings[0].rule_id == "solana-missing-owner-check"
    assert findings[0].severity.value == "high"
    assert "ReadOracle" in findings[0].description


def test_account_info_with_owner_constraint_not_flagged():
    source = b"""
#[derive(Accounts)]
pub struct ReadOracle<'info> {
    #[account(owner = oracle_program::ID)]
    pub oracle: AccountInfo<'info>,
}
"""
    assert _run_rule(source) == []


def test_account_info_with_address_constraint_not_flagged():
    source = b"""
#[derive(Accounts)]
pub struct ReadClock<'info> {
    #[account(address = sysvar::clock::ID)]
    pub clock: AccountInfo<'info>,
}
"""
    assert _run_rule(source) == []


def test_typed_accounts_not_flagged():
    source = b"""
#[derive(Accounts)]
pub struct Deposit<'info> {
    #[account(mut)]
    pub vault: Account<'info, Vault>,
    pub authority: Signer<'info>,
    pub system_program: Program<'info, System>,
}
"""
    assert _run_rule(source) == []
