"""Facet validation.

One pure predicate per facet, plus ``validate_facets`` which turns
``RawFacets`` into ``BuildFacets`` or raises with every failure listed.
"""

import re

from ..models import (
    BuildFacets,
    ChangeType,
    Environment,
    RawFacets,
    Stability,
    Track,
    Version,
)
from .branching import TagReferenceError, parse_tag_reference
from .errors import InputValidationError

VERSION_PATTERN = re.compile(r"^[0-9]+(\.[0-9]+)?$")

_TRACKS = frozenset(t.value for t in Track)
_ENVIRONMENTS = frozenset(e.value for e in Environment)
_STABILITIES = frozenset(s.value for s in Stability)
_CHANGE_TYPES = frozenset(c.value for c in ChangeType)


def is_valid_track(value: str) -> bool:
    return value in _TRACKS


def is_valid_version(value: str) -> bool:
    return VERSION_PATTERN.fullmatch(value) is not None


def is_valid_environment(value: str) -> bool:
    return value in _ENVIRONMENTS


def is_valid_stability(value: str) -> bool:
    return value in _STABILITIES


def is_valid_change_type(value: str) -> bool:
    return value in _CHANGE_TYPES


def is_valid_parent(value: str) -> bool:
    """Empty parent is valid; otherwise it must start with ``{letter}{major}``."""
    if not value:
        return True
    if any(c.isspace() for c in value):
        return False
    try:
        parse_tag_reference(value)
    except TagReferenceError:
        return False
    return True


_CHECKS = (
    ("track", is_valid_track, "expected one of A, B, R"),
    ("version", is_valid_version, "expected major or major.minor (e.g. 10.3)"),
    ("environment", is_valid_environment, "expected one of F, W, B, T, M"),
    ("stability", is_valid_stability, "expected one of s, t, e, p, d, x"),
    ("change_type", is_valid_change_type, "expected one of + * % ! ~ = ?"),
    ("parent", is_valid_parent, "expected a tag such as A9.1"),
)


def validate_facets(raw: RawFacets) -> BuildFacets:
    """Validate every facet and build the structured form.

    Raises:
        InputValidationError: Listing each facet that failed its grammar
    """
    failures: dict[str, str] = {}
    for name, check, hint in _CHECKS:
        value = getattr(raw, name)
        if not check(value):
            failures[name] = f"invalid {name.replace('_', '-')} {value!r}: {hint}"

    if failures:
        raise InputValidationError("; ".join(failures.values()), failures)

    return BuildFacets(
        track=Track(raw.track),
        version=Version.parse(raw.version),
        environment=Environment(raw.environment),
        stability=Stability(raw.stability),
        change_type=ChangeType(raw.change_type),
        parent=raw.parent or None,
    )
