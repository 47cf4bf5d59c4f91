"""
Scanner configuration: which rules are enabled and how findings are shaped.

Config carries the rule instances plus the switches the CLI exposes
(ignored severities and rule ids, source context size, whether files with
syntax errors are analyzed). get_enabled_rules() is the single place that
decides which rules actually run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from anchorscan.findings.models import Severity
from anchorscan.rules.anchor_instructions import AnchorInstructionsRule
from anchorscan.rules.base import Rule
from anchorscan.rules.division_by_zero import DivisionByZeroRule
from anchorscan.rules.duplicate_mutable_accounts import DuplicateMutableAccountsRule
from anchorscan.rules.missing_error_handling import MissingErrorHandlingRule
from anchorscan.rules.missing_owner_check import MissingOwnerCheckRule
from anchorscan.rules.missing_signer_check import MissingSignerCheckRule
from anchorscan.rules.naming_convention import NamingConventionRule
from anchorscan.rules.owner_check import OwnerCheckRule
from anchorscan.rules.unsafe_code import UnsafeCodeRule

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """
    Scanner configuration.

    skip_parse_errors: tree-sitter always returns a (possibly partial)
    tree; when True, files whose tree contains ERROR nodes are not analyzed.
    """

    rules: Sequence[Rule] = field(default_factory=list)
    ignore_severities: set[Severity] = field(default_factory=set)
    ignore_rules: set[str] = field(default_factory=set)
    context_lines: int = 0
    skip_parse_errors: bool = False


def builtin_rules() -> List[Rule]:
    """One instance of every built-in rule, high severity first."""
    return [
        UnsafeCodeRule(),
        MissingSignerCheckRule(),
        MissingOwnerCheckRule(),
        DuplicateMutableAccountsRule(),
        DivisionByZeroRule(),
        OwnerCheckRule(),
        MissingErrorHandlingRule(),
        AnchorInstructionsRule(),
        NamingConventionRule(),
    ]


def get_default_config() -> Config:
    """Return the default configuration with all built-in rules."""
    return Config(rules=builtin_rules())


def parse_severities(value: str | None) -> set[Severity]:
    """Parse "low,medium" into severities; unknown names are logged and skipped."""
    severities: set[Severity] = set()
    if not value:
        return severities
    for raw in value.split(","):
        name = raw.strip().lower()
        if not name:
            continue
        try:
            severities.add(Severity(name))
        except ValueError:
            logger.warning("Unknown severity level: %s", raw.strip())
    return severities


def parse_rule_ids(value: str | None) -> set[str]:
    if not value:
        return set()
    return {part.strip() for part in value.split(",") if part.strip()}


def get_enabled_rules(config: Config | None = None) -> Sequence[Rule]:
    """
    Return the rules that should run under config (or the default config).

    Drops rules that are disabled, whose id is ignored, or whose severity
    is ignored.
    """
    if config is None:
        config = get_default_config()
    enabled: List[Rule] = []
    for rule in config.rules:
        if not rule.enabled:
            logger.debug("Rule %s is disabled", rule.id)
        elif rule.id in config.ignore_rules:
            logger.debug("Ignoring rule %s due to ID match", rule.id)
        elif rule.severity in config.ignore_severities:
            logger.debug("Ignoring rule %s due to severity %s", rule.id, rule.severity.value)
        else:
            enabled.append(rule)
    return enabled


def rule_recommendations(rules: Iterable[Rule]) -> dict[str, tuple[str, ...]]:
    """Map rule id -> recommendations, for the console reporter."""
    return {rule.id: rule.recommendations for rule in rules if rule.recommendations}
