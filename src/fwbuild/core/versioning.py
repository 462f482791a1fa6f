"""Version suggestion, tag composition and parent extraction."""

from ..models import BracketStyle, BuildFacets, VersionTag, unwrap_parent
from ..models.version_tag import PARENT_SEPARATOR
from .validation import is_valid_version

INITIAL_VERSION = "1.0"


def suggest_next_version(last_version: str) -> str:
    """Suggest the next version after ``last_version``.

    Only the minor number is ever incremented; major bumps are an explicit
    user decision. A single leading track letter is ignored, and anything
    that is not a version afterwards yields ``"1.0"``.

    >>> suggest_next_version("A9.1")
    '9.2'
    >>> suggest_next_version("B3")
    '3.1'
    """
    if not last_version:
        return INITIAL_VERSION
    candidate = last_version[1:] if last_version[0].isalpha() else last_version
    if not is_valid_version(candidate):
        return INITIAL_VERSION
    major, _, minor = candidate.partition(".")
    return f"{int(major)}.{int(minor or 0) + 1}"


def compose_tag(facets: BuildFacets, style: BracketStyle = BracketStyle.UNICODE) -> VersionTag:
    """Combine validated facets into the canonical tag."""
    return VersionTag(facets=facets, bracket_style=style)


def extract_parent(tag: str) -> str | None:
    """Return the parent reference embedded in a tag string, verbatim.

    Works for both bracket styles; returns None when the tag has no parent.
    """
    _, sep, wrapped = tag.partition(PARENT_SEPARATOR)
    if not sep:
        return None
    _, parent = unwrap_parent(wrapped)
    return parent
