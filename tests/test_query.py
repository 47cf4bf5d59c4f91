"""Tests for the AstQuery DSL: selectors, set algebra and finding assembly."""

import pytest

from anchorscan.dsl.node import AstNode
from anchorscan.dsl.query import AstQuery
from anchorscan.findings.models import Severity
from anchorscan.parser import parse_bytes
from anchorscan.span_utils import SpanExtractor

SOURCE = b"""\
fn alpha() {}
pub fn beta() -> Result<()> { Ok(()) }
struct Gamma {}
enum Delta { A }
impl Gamma {
    pub fn epsilon(&self) {}
}
mod inner {
    fn zeta() {}
}
"""


@pytest.fixture
def q():
    return AstQuery.new(parse_bytes(SOURCE))


def test_universe_covers_modules_and_impls(q):
    """Functions inside impl blocks and inline modules are part of the universe."""
    assert q.names() == ["alpha", "beta", "Gamma", "Delta", "epsilon", "zeta"]
    assert len(q.universe) == 6


def test_kind_selectors(q):
    assert q.functions().names() == ["alpha", "beta", "epsilon", "zeta"]
    assert q.structs().names() == ["Gamma"]
    assert q.enums().names() == ["Delta"]


def test_with_name(q):
    assert q.with_name("beta").count() == 1
    assert not q.with_name("missing").exists()


def test_where_uses_registered_filters(q):
    assert q.functions().where("is_public").names() == ["beta", "epsilon"]


def test_where_unknown_filter_raises(q):
    with pytest.raises(KeyError):
        q.where("no_such_filter")


def test_filter_with_plain_predicate(q):
    assert q.filter(lambda node: node.name.startswith("e")).names() == ["epsilon"]


def test_and_or_idempotent(q):
    fns = q.functions()
    assert (fns & fns) == fns
    assert (fns | fns) == fns
    assert (fns | fns).count() == fns.count()


def test_and_or_commutative(q):
    public = q.where("is_public")
    structs = q.structs()
    assert (public | structs) == (structs | public)
    assert (public & q.functions()) == (q.functions() & public)


def test_not_complements_against_whole_universe(q):
    """not_() of a narrowed query still draws from every captured node."""
    public = q.functions().where("is_public")
    assert (~public).names() == ["alpha", "Gamma", "Delta", "zeta"]


def test_double_negation_is_identity(q):
    public = q.functions().where("is_public")
    assert public.not_().not_() == public
    assert q.not_().not_() == q


def test_and_with_complement_is_empty(q):
    public = q.where("is_public")
    assert not (public & ~public).exists()
    assert (public | ~public) == q


def test_empty_file():
    empty = AstQuery.new(parse_bytes(b""))
    assert empty.count() == 0
    assert not empty.exists()
    assert empty.not_().count() == 0
    assert empty.collect() == []


def test_from_nodes_and_results_are_deduplicated():
    tree = parse_bytes(b"fn f() {}\n")
    node = AstNode.from_ts(tree.root_node.named_children[0])
    query = AstQuery.from_nodes([node, node])
    assert query.count() == 1
    assert query.results() == (node,)
    assert list(query) == [node]


def test_to_findings_with_name():
    tree = parse_bytes(SOURCE)
    extractor = SpanExtractor(SOURCE, "lib.rs")
    findings = AstQuery.new(tree).with_name("beta").to_findings(
        "test-rule", Severity.LOW, "Public function", "Check it.", extractor
    )
    assert len(findings) == 1
    f = findings[0]
    assert f.rule_id == "test-rule"
    assert f.severity is Severity.LOW
    assert f.title == "Public function"
    assert f.description == "Public function in 'beta'. Check it."
    assert f.location.file == "lib.rs"
    assert f.location.start_line == 2
    assert f.location.start_col == 1
    assert f.snippet == "pub fn beta() -> Result<()> { Ok(()) }"
    assert f.context is None


def test_to_findings_with_context_lines():
    tree = parse_bytes(SOURCE)
    extractor = SpanExtractor(SOURCE, "lib.rs")
    findings = AstQuery.new(tree).with_name("zeta").to_findings(
        "test-rule", Severity.LOW, "T", "D", extractor, context_lines=1
    )
    context = findings[0].context
    assert context.splitlines() == [
        "     8 | mod inner {",
        ">    9 |     fn zeta() {}",
        "    10 | }",
    ]
