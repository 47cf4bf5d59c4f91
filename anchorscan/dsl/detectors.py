# Pattern detectors: single-pass heuristics used as AstQuery filter predicates.
#
# Every detector takes an AstNode (plus optional parameters) and returns a
# bool. Node kinds a detector was not written for never match. Any state a
# detector needs lives in a local visitor created per call.

from __future__ import annotations

import logging
import re
from typing import Optional

from tree_sitter import Node as TSNode

from anchorscan.dsl.filters import register_filter
from anchorscan.dsl.node import (
    FUNCTION_KINDS,
    AstNode,
    FieldInfo,
    FunctionInfo,
    NodeKind,
    StructInfo,
    iter_descendants,
    node_text,
)

logger = logging.getLogger(__name__)

DIVISION_OPERATORS = frozenset({"/", "%"})
COMPOUND_DIVISION_OPERATORS = frozenset({"/=", "%="})
COMPARISON_OPERATORS = frozenset({"==", "!="})

OWNER_NAMES = frozenset({"owner"})

# Macros used to assert account relationships in Anchor and native programs
VERIFICATION_MACROS = frozenset(
    {
        "require",
        "require_eq",
        "require_neq",
        "require_keys_eq",
        "require_keys_neq",
        "assert",
        "assert_eq",
        "assert_ne",
    }
)

# Field name tokens that conventionally denote an account that must sign
SIGNER_NAME_HINTS = frozenset({"authority", "user", "owner", "admin", "signer", "payer"})

# Account types Anchor performs no owner validation on
UNCHECKED_ACCOUNT_TYPES = ("AccountInfo", "UncheckedAccount")

# Raw account types that could be a signer; typed data accounts and programs cannot
SIGNER_CANDIDATE_TYPES = frozenset({"AccountInfo", "UncheckedAccount", "SystemAccount"})

_REFERENCE_PREFIX_RE = re.compile(r"^&\s*(?:'\w+\s+)?(?:mut\s+)?")

# Wrappers that do not change which value ends up as a divisor or operand
_TRANSPARENT_TYPES = frozenset({"parenthesized_expression", "type_cast_expression"})

_INT_RE = re.compile(r"^(0[xX][0-9a-fA-F_]+|0[oO][0-7_]+|0[bB][01_]+|[0-9][0-9_]*)")
_FLOAT_RE = re.compile(r"^[0-9][0-9_]*(?:\.[0-9_]*)?(?:[eE][+-]?[0-9_]+)?")
_SIGNER_TYPE_RE = re.compile(r"^(?:\w+::)*Signer\b")


def _body(node: AstNode) -> Optional[TSNode]:
    """The subtree a statement-level detector should walk, if any."""
    if node.kind in FUNCTION_KINDS and isinstance(node.payload, FunctionInfo):
        return node.payload.body
    if node.kind is NodeKind.BLOCK:
        return node.ts_node
    return None


def _unwrap(expr: TSNode) -> TSNode:
    while expr.type in _TRANSPARENT_TYPES:
        inner = expr.child_by_field_name("value") if expr.type == "type_cast_expression" else None
        if inner is None:
            inner = expr.named_children[0] if expr.named_children else None
        if inner is None:
            break
        expr = inner
    return expr


def literal_value(expr: TSNode) -> Optional[float]:
    """Numeric value of an integer/float literal (suffixes like u64 ignored), else None."""
    text = node_text(expr).strip()
    if expr.type == "integer_literal":
        match = _INT_RE.match(text)
        if match is None:
            return None
        digits = match.group(1).replace("_", "")
        prefix = digits[:2].lower()
        try:
            if prefix == "0x":
                return float(int(digits[2:], 16))
            if prefix == "0o":
                return float(int(digits[2:], 8))
            if prefix == "0b":
                return float(int(digits[2:], 2))
            return float(int(digits, 10))
        except ValueError:
            return None
    if expr.type == "float_literal":
        match = _FLOAT_RE.match(text)
        if match is None:
            return None
        try:
            return float(match.group(0).replace("_", ""))
        except ValueError:
            return None
    return None


def _is_nonzero_literal(expr: Optional[TSNode]) -> bool:
    if expr is None:
        return False
    value = literal_value(_unwrap(expr))
    return value is not None and value != 0


def _callee_name(call: TSNode) -> Optional[str]:
    """Bare callee of a call_expression: foo(), path::foo(), x.foo(), foo::<T>()."""
    fn = call.child_by_field_name("function")
    if fn is not None and fn.type == "generic_function":
        fn = fn.child_by_field_name("function")
    if fn is None:
        return None
    if fn.type == "identifier":
        return node_text(fn)
    if fn.type == "scoped_identifier":
        return node_text(fn.child_by_field_name("name")) or None
    if fn.type == "field_expression":
        return node_text(fn.child_by_field_name("field")) or None
    return None


def _macro_name(invocation: TSNode) -> str:
    return node_text(invocation.child_by_field_name("macro")).rsplit("::", 1)[-1].strip()


def _operator(expr: TSNode) -> str:
    op = expr.child_by_field_name("operator")
    return op.type if op is not None else ""


# ---------------------------------------------------------------------------
# Unsafe divisions
# ---------------------------------------------------------------------------


class _DivisionFinder:
    """
    Walks one function body in source order.

    safe maps a locally bound name to True only while its most recent
    binding is a non-zero numeric literal. Every construct that binds
    names (let, for, closures, match arms, if let / while let) opens a
    scope; when the scope closes, names it declared revert to what they
    were before it. Plain assignments are not scoped: they update the
    visible binding in place.
    """

    def __init__(self) -> None:
        self.safe: dict[str, bool] = {}
        self.found = False
        # One dict per open scope: name -> status before the scope shadowed it (None: untracked)
        self._scopes: list[dict[str, Optional[bool]]] = []

    def visit(self, node: TSNode) -> None:
        if self.found:
            return
        handler = getattr(self, f"visit_{node.type}", None)
        if handler is not None:
            handler(node)
        else:
            self.generic_visit(node)

    def generic_visit(self, node: TSNode) -> None:
        for child in node.named_children:
            self.visit(child)

    def visit_function_item(self, node: TSNode) -> None:
        # Nested fn items are analyzed as their own candidates.
        return

    # -- scopes --------------------------------------------------------------

    def _push(self) -> None:
        self._scopes.append({})

    def _pop(self) -> None:
        for name, previous in self._scopes.pop().items():
            if previous is None:
                self.safe.pop(name, None)
            else:
                self.safe[name] = previous

    def _declare(self, name: str, safe: bool) -> None:
        if self._scopes and name not in self._scopes[-1]:
            self._scopes[-1][name] = self.safe.get(name)
        self.safe[name] = safe

    def _bind(self, pattern: Optional[TSNode], value: Optional[TSNode]) -> None:
        if pattern is None:
            return
        if pattern.type == "identifier":
            self._declare(node_text(pattern), _is_nonzero_literal(value))
            return
        # Destructuring: every introduced name loses its tracked status
        for ident in iter_descendants(pattern):
            if ident.type == "identifier":
                self._declare(node_text(ident), False)

    def _visit_scoped(self, node: TSNode) -> None:
        self._push()
        self.generic_visit(node)
        self._pop()

    visit_block = _visit_scoped
    visit_if_expression = _visit_scoped
    visit_while_expression = _visit_scoped

    def visit_let_declaration(self, node: TSNode) -> None:
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        alternative = node.child_by_field_name("alternative")
        if alternative is not None:
            self.visit(alternative)
        self._bind(node.child_by_field_name("pattern"), value)

    def visit_let_condition(self, node: TSNode) -> None:
        # `if let` / `while let`; the enclosing if/while owns the scope
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        self._bind(node.child_by_field_name("pattern"), None)

    def visit_if_let_expression(self, node: TSNode) -> None:
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        self._push()
        self._bind(node.child_by_field_name("pattern"), None)
        consequence = node.child_by_field_name("consequence")
        if consequence is not None:
            self.visit(consequence)
        self._pop()
        alternative = node.child_by_field_name("alternative")
        if alternative is not None:
            self.visit(alternative)

    def visit_while_let_expression(self, node: TSNode) -> None:
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        self._push()
        self._bind(node.child_by_field_name("pattern"), None)
        body = node.child_by_field_name("body")
        if body is not None:
            self.visit(body)
        self._pop()

    def visit_for_expression(self, node: TSNode) -> None:
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        self._push()
        self._bind(node.child_by_field_name("pattern"), None)
        body = node.child_by_field_name("body")
        if body is not None:
            self.visit(body)
        self._pop()

    def visit_closure_expression(self, node: TSNode) -> None:
        self._push()
        params = node.child_by_field_name("parameters")
        if params is not None:
            for ident in iter_descendants(params):
                if ident.type == "identifier":
                    self._declare(node_text(ident), False)
        body = node.child_by_field_name("body")
        if body is not None:
            self.visit(body)
        self._pop()

    def visit_match_arm(self, node: TSNode) -> None:
        self._push()
        self._bind(node.child_by_field_name("pattern"), None)
        # Guard (inside the pattern) and arm value both see the arm's bindings
        self.generic_visit(node)
        self._pop()

    def visit_const_item(self, node: TSNode) -> None:
        value = node.child_by_field_name("value")
        if value is not None:
            self.visit(value)
        self._bind(node.child_by_field_name("name"), value)

    visit_static_item = visit_const_item

    def visit_assignment_expression(self, node: TSNode) -> None:
        right = node.child_by_field_name("right")
        if right is not None:
            self.visit(right)
        left = node.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            self.safe[node_text(left)] = _is_nonzero_literal(right)
        elif left is not None:
            self.visit(left)

    def visit_compound_assignment_expr(self, node: TSNode) -> None:
        right = node.child_by_field_name("right")
        if right is not None:
            self.visit(right)
        if _operator(node) in COMPOUND_DIVISION_OPERATORS and right is not None and self.is_dangerous(right):
            logger.debug("Unchecked compound division at byte %d", node.start_byte)
            self.found = True
        left = node.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            self.safe[node_text(left)] = False
        elif left is not None:
            self.visit(left)

    def visit_binary_expression(self, node: TSNode) -> None:
        self.generic_visit(node)
        if _operator(node) not in DIVISION_OPERATORS:
            return
        right = node.child_by_field_name("right")
        if right is not None and self.is_dangerous(right):
            logger.debug("Unchecked division at byte %d", node.start_byte)
            self.found = True

    def is_dangerous(self, divisor: TSNode) -> bool:
        divisor = _unwrap(divisor)
        if divisor.type in ("integer_literal", "float_literal"):
            value = literal_value(divisor)
            return value is None or value == 0
        if divisor.type == "identifier":
            return not self.safe.get(node_text(divisor), False)
        # Calls, field accesses, arithmetic: unknown at this point
        return True


@register_filter("has_unsafe_divisions")
def has_unsafe_divisions(node: AstNode) -> bool:
    """Function (or block) with a / or % whose divisor may be zero."""
    body = _body(node)
    if body is None:
        return False
    finder = _DivisionFinder()
    finder.visit(body)
    if finder.found:
        logger.debug("Found unsafe division in %s", node.name)
    return finder.found


# ---------------------------------------------------------------------------
# Owner checks
# ---------------------------------------------------------------------------


def _references_owner(expr: TSNode) -> bool:
    """True if expr is an identifier or field chain ending in an owner name (method calls see through)."""
    while expr.type in ("parenthesized_expression", "unary_expression", "reference_expression", "try_expression"):
        inner = expr.child_by_field_name("value")
        if inner is None:
            inner = expr.named_children[-1] if expr.named_children else None
        if inner is None:
            return False
        expr = inner
    expr = _unwrap(expr)
    if expr.type in ("identifier", "field_identifier"):
        return node_text(expr) in OWNER_NAMES
    if expr.type == "field_expression":
        return node_text(expr.child_by_field_name("field")) in OWNER_NAMES
    if expr.type == "call_expression":
        fn = expr.child_by_field_name("function")
        if fn is not None and fn.type == "field_expression":
            if node_text(fn.child_by_field_name("field")) in OWNER_NAMES:
                return True
            receiver = fn.child_by_field_name("value")
            return receiver is not None and _references_owner(receiver)
    return False


def _macro_mentions_owner(invocation: TSNode) -> bool:
    for token in iter_descendants(invocation):
        if token is invocation:
            continue
        if token.type == "identifier" and token.parent is not None and token.parent.type != "macro_invocation":
            if node_text(token) in OWNER_NAMES:
                return True
    return False


@register_filter("has_owner_check")
def has_owner_check(node: AstNode) -> bool:
    """Function or block comparing something named owner, directly or via require!/assert!."""
    body = _body(node)
    if body is None:
        return False
    for child in iter_descendants(body):
        if child.type == "binary_expression" and _operator(child) in COMPARISON_OPERATORS:
            left = child.child_by_field_name("left")
            right = child.child_by_field_name("right")
            if (left is not None and _references_owner(left)) or (right is not None and _references_owner(right)):
                logger.debug("Found owner comparison in %s", node.name)
                return True
        elif child.type == "macro_invocation" and _macro_name(child) in VERIFICATION_MACROS:
            if _macro_mentions_owner(child):
                logger.debug("Found owner check in %s! within %s", _macro_name(child), node.name)
                return True
    return False


# ---------------------------------------------------------------------------
# Call sites
# ---------------------------------------------------------------------------


@register_filter("calls_to")
def calls_to(node: AstNode, target: str) -> bool:
    """Function or block with a direct or method call to target. Macros never match."""
    body = _body(node)
    if body is None:
        return False
    for child in iter_descendants(body):
        if child.type == "call_expression" and _callee_name(child) == target:
            return True
    return False


# ---------------------------------------------------------------------------
# Visibility, signatures, unsafe
# ---------------------------------------------------------------------------


@register_filter("is_public")
def is_public(node: AstNode) -> bool:
    return node.kind in FUNCTION_KINDS and isinstance(node.payload, FunctionInfo) and node.payload.is_public


@register_filter("returns_result")
def returns_result(node: AstNode) -> bool:
    if node.kind not in FUNCTION_KINDS or not isinstance(node.payload, FunctionInfo):
        return False
    return_type = node.payload.return_type
    return return_type is not None and "Result" in return_type


@register_filter("missing_error_handling")
def missing_error_handling(node: AstNode) -> bool:
    """Public function whose return type is not Result-shaped."""
    return is_public(node) and not returns_result(node)


@register_filter("is_anchor_instruction")
def is_anchor_instruction(node: AstNode) -> bool:
    """Public function taking an Anchor Context<...> parameter."""
    if not is_public(node):
        return False
    return any(re.search(r"\bContext\b", type_text) for _, type_text in node.payload.parameters)


@register_filter("uses_unsafe")
def uses_unsafe(node: AstNode) -> bool:
    if node.kind in FUNCTION_KINDS and isinstance(node.payload, FunctionInfo) and node.payload.is_unsafe:
        return True
    body = _body(node)
    if body is None:
        return False
    if body.type == "unsafe_block":
        return True
    return any(child.type == "unsafe_block" for child in iter_descendants(body))


# ---------------------------------------------------------------------------
# Anchor accounts structs
# ---------------------------------------------------------------------------


def _struct_fields(node: AstNode) -> tuple[FieldInfo, ...]:
    if node.kind is NodeKind.STRUCT and isinstance(node.payload, StructInfo):
        return node.payload.fields
    return ()


def _account_attrs(field: FieldInfo) -> list:
    return [a for a in field.attributes if a.name == "account"]


def base_type(type_text: str) -> str:
    """Bare type name: "&'a mut anchor_lang::AccountInfo<'info>" -> "AccountInfo"."""
    text = _REFERENCE_PREFIX_RE.sub("", type_text.strip())
    return text.split("<", 1)[0].rsplit("::", 1)[-1].strip()


def is_signer(field: FieldInfo) -> bool:
    """Typed Signer<'info> or annotated #[account(signer)]."""
    if _SIGNER_TYPE_RE.match(field.type_text.strip()):
        return True
    return any(attr.has_word("signer") for attr in _account_attrs(field))


def is_mutable(field: FieldInfo) -> bool:
    return any(attr.has_word("mut") for attr in _account_attrs(field))


def _has_owner_or_address(field: FieldInfo) -> bool:
    return any(attr.has_word("owner") or attr.has_word("address") for attr in _account_attrs(field))


@register_filter("derives_accounts")
def derives_accounts(node: AstNode) -> bool:
    """Struct carrying #[derive(..., Accounts, ...)]."""
    if node.kind is not NodeKind.STRUCT or not isinstance(node.payload, StructInfo):
        return False
    return any(attr.name == "derive" and attr.has_word("Accounts") for attr in node.payload.attributes)


@register_filter("has_missing_signer_checks")
def has_missing_signer_checks(node: AstNode) -> bool:
    """
    Accounts struct with an authority/user-like raw account (AccountInfo,
    UncheckedAccount, SystemAccount) that is not a signer.

    Account<'info, T>, AccountLoader and Program fields are never candidates:
    their data is typed, so passing them cannot impersonate an authority.
    """
    if not derives_accounts(node):
        return False
    for field in _struct_fields(node):
        if base_type(field.type_text) not in SIGNER_CANDIDATE_TYPES:
            continue
        tokens = set(field.name.lower().split("_"))
        if tokens & SIGNER_NAME_HINTS and not is_signer(field):
            logger.debug("Field %s.%s should be a signer but is %s", node.name, field.name, field.type_text)
            return True
    return False


@register_filter("has_duplicate_mutable_accounts")
def has_duplicate_mutable_accounts(node: AstNode) -> bool:
    """
    Accounts struct with two or more mutable accounts where at least one
    is not kept distinct from the others.

    A mutable field counts as protected when its own constraint pins it
    (seeds/bump, or a `!=` constraint) or when some `!=` constraint in the
    struct names it.
    """
    if not derives_accounts(node):
        return False
    fields = _struct_fields(node)
    uniqueness_constraints = [
        attr.args for field in fields for attr in _account_attrs(field) if "!=" in attr.args
    ]
    mutable = 0
    protected = 0
    for field in fields:
        if not is_mutable(field):
            continue
        mutable += 1
        attrs = _account_attrs(field)
        pinned = any(attr.has_word("seeds") or attr.has_word("bump") or "!=" in attr.args for attr in attrs)
        named = any(re.search(rf"\b{re.escape(field.name)}\b", c) for c in uniqueness_constraints)
        if pinned or named:
            protected += 1
        else:
            logger.debug("Mutable account %s.%s has no uniqueness constraint", node.name, field.name)
    return mutable >= 2 and protected != mutable


@register_filter("has_owner_constraint")
def has_owner_constraint(node: AstNode) -> bool:
    """Struct with a field constrained by owner = / address = (or a constraint naming owner)."""
    return any(_has_owner_or_address(field) for field in _struct_fields(node))


@register_filter("has_unchecked_account_without_owner")
def has_unchecked_account_without_owner(node: AstNode) -> bool:
    """Accounts struct with a raw AccountInfo/UncheckedAccount that no owner or address constraint covers."""
    if not derives_accounts(node):
        return False
    for field in _struct_fields(node):
        if base_type(field.type_text) not in UNCHECKED_ACCOUNT_TYPES:
            continue
        if is_signer(field) or _has_owner_or_address(field):
            continue
        logger.debug("Unchecked account %s.%s has no owner check", node.name, field.name)
        return True
    return False


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


def is_snake_case(name: str) -> bool:
    return not any(c.isupper() for c in name) and "-" not in name


def is_pascal_case(name: str) -> bool:
    return bool(name) and name[0].isupper() and "_" not in name and "-" not in name


@register_filter("violates_naming_convention")
def violates_naming_convention(node: AstNode) -> bool:
    if node.raw_name is None:
        return False
    if node.kind in FUNCTION_KINDS:
        return not is_snake_case(node.raw_name)
    if node.kind in (NodeKind.STRUCT, NodeKind.ENUM):
        return not is_pascal_case(node.raw_name)
    return False
