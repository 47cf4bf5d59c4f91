"""
Named filter registry for the query DSL.

Detectors register themselves here under a stable name so rule authors can
write AstQuery.where("calls_to", "invoke") instead of importing each
predicate. A filter is a plain function (node, *args) -> bool.
"""

from __future__ import annotations

import logging
from typing import Callable

from anchorscan.dsl.node import AstNode

logger = logging.getLogger(__name__)

FilterFn = Callable[..., bool]

FILTERS: dict[str, FilterFn] = {}


def register_filter(name: str) -> Callable[[FilterFn], FilterFn]:
    """Decorator: register fn under name (later registrations replace earlier ones)."""

    def decorator(fn: FilterFn) -> FilterFn:
        if name in FILTERS and FILTERS[name] is not fn:
            logger.debug("Replacing registered filter %s", name)
        FILTERS[name] = fn
        return fn

    return decorator


def get_filter(name: str) -> FilterFn:
    """Return the filter registered under name; KeyError lists what is known."""
    try:
        return FILTERS[name]
    except KeyError:
        raise KeyError(f"Unknown filter {name!r}; available: {', '.join(available_filters())}") from None


def available_filters() -> list[str]:
    return sorted(FILTERS)


def bind(name: str, *args: object) -> Callable[[AstNode], bool]:
    """Return a single-argument predicate for the named filter with args applied."""
    fn = get_filter(name)
    return lambda node: fn(node, *args)
