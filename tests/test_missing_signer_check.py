"""Unit tests for the missing_signer_check rule."""

from pathlib import Path

from anchorscan.context import FileContext
from anchorscan.parser import create_parser, parse_bytes
from anchorscan.rules.missing_signer_check import MissingSignerCheckRule


def _run_rule(source: bytes, path: Path | None = None) -> list:
    """Parse source, build context, run MissingSignerCheckRule, return findings."""
    if path is None:
        path = Path("lib.rs")
    parser = create_parser()
    tree = parse_bytes(source, parser=parser)
    ctx = FileContext(path=path, source=source, tree=tree)
    rule = MissingSignerCheckRule()
    return rule.run(ctx, None)


def test_authority_account_info_flagged():
    """An authority typed as AccountInfo is reported on the accounts struct."""
    source = b"""
use anchor_lang::prelude::*;

#[derive(Accounts)]
pub struct UpdateConfig<'info> {
    #[account(mut)]
    pub config: Account<'info, Config>,
    pub authority: AccountInfo<'info>,
}
"""
    findings = _run_rule(source)
    assert len(findings) == 1
    f = findings[0]
    assert f.rule_id == "missing-signer-check"
    assert f.severity.value == "high"
    assert "UpdateConfig" in f.description
    assert f.location.start_line == 5
    assert f.snippet == "pub struct UpdateConfig<'info> {"


def test_authority_signer_not_flagged():
    source = b"""
#[derive(Accounts)]
pub struct UpdateConfig<'info> {
    #[account(mut)]
    pub config: Account<'info, Config>,
    pub authority: Signer<'info>,
}
"""
    assert _run_rule(source) == []


def test_struct_without_accounts_derive_ignored():
    source = b"""
#[account]
pub struct Config {
    pub authority: Pubkey,
}
"""
    assert _run_rule(source) == []


def test_payer_with_signer_constraint_not_flagged():
    source = b"""
#[derive(Accounts)]
pub struct Init<'info> {
    #[account(mut, signer)]
    pub payer: AccountInfo<'info>,
}
"""
    assert _run_rule(source) == []


def test_typed_accounts_with_authority_names_not_flagged():
    """Data accounts tied to the authority through constraints are not signer candidates."""
    source = b"""
#[derive(Accounts)]
pub struct Deposit<'info> {
    pub authority: Signer<'info>,
    #[account(mut, token::authority = authority)]
    pub user_token_account: Account<'info, TokenAccount>,
    #[account(mut, has_one = authority)]
    pub user_stats: Account<'info, UserStats>,
}
"""
    assert _run_rule(source) == []
