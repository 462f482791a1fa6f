"""Canonical version tag model.

The string form ``{track}{major}.{minor}[{env}|{stability}|{change}]``
optionally followed by ``::⟪{parent}⟫`` (or ``::<<{parent}>>``) is a
serialization boundary only; everything else works on ``VersionTag``.
"""

import re

from pydantic import BaseModel, ConfigDict

from .facets import BracketStyle, BuildFacets, ChangeType, Environment, Stability, Track, Version

PARENT_SEPARATOR = "::"

_HEAD_PATTERN = re.compile(
    r"^(?P<track>[ABR])(?P<major>\d+)\.(?P<minor>\d+)"
    r"\[(?P<env>[FWBTM])\|(?P<stability>[stepdx])\|(?P<change>[+*%!~=?])\]$"
)


class TagParseError(ValueError):
    """String is not a canonical version tag."""


class VersionTag(BaseModel):
    """Structured identity of a build."""

    model_config = ConfigDict(frozen=True)

    facets: BuildFacets
    bracket_style: BracketStyle = BracketStyle.UNICODE

    @property
    def head(self) -> str:
        f = self.facets
        return (
            f"{f.track.value}{f.version}"
            f"[{f.environment.value}|{f.stability.value}|{f.change_type.value}]"
        )

    @property
    def parent(self) -> str | None:
        return self.facets.parent

    @property
    def name(self) -> str:
        """Git tag name, e.g. ``vA10.3``."""
        return f"v{self.facets.base}"

    def __str__(self) -> str:
        if not self.parent:
            return self.head
        opening, closing = self.bracket_style.delimiters
        return f"{self.head}{PARENT_SEPARATOR}{opening}{self.parent}{closing}"

    @classmethod
    def parse(cls, text: str) -> "VersionTag":
        """Parse a canonical tag string written in either bracket style."""
        head, sep, wrapped = text.partition(PARENT_SEPARATOR)
        match = _HEAD_PATTERN.match(head)
        if not match:
            raise TagParseError(f"Not a version tag: {text!r}")

        parent = None
        style = BracketStyle.UNICODE
        if sep:
            style, parent = unwrap_parent(wrapped)

        facets = BuildFacets(
            track=Track(match["track"]),
            version=Version(major=int(match["major"]), minor=int(match["minor"])),
            environment=Environment(match["env"]),
            stability=Stability(match["stability"]),
            change_type=ChangeType(match["change"]),
            parent=parent or None,
        )
        return cls(facets=facets, bracket_style=style)


def unwrap_parent(wrapped: str) -> tuple[BracketStyle, str]:
    """Strip the parent delimiters, returning the style used and the inner text."""
    for style in BracketStyle:
        opening, closing = style.delimiters
        if (
            wrapped.startswith(opening)
            and wrapped.endswith(closing)
            and len(wrapped) >= len(opening) + len(closing)
        ):
            return style, wrapped[len(opening) : len(wrapped) - len(closing)]
    raise TagParseError(f"Malformed parent reference: {wrapped!r}")
