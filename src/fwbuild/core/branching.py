"""Major-branch resolution.

All minor versions sharing a track and major number live on one branch
named ``{track}{major}``.
"""

import re

from ..models import Track, VersionTag

_REFERENCE_PATTERN = re.compile(r"^(?P<track>[A-Za-z])(?P<major>\d+)(?=$|[.\[:])")


class TagReferenceError(ValueError):
    """String does not start with a track letter followed by a major number."""


def branch_for(track: Track | str, major: int) -> str:
    """Return the branch name for a track and major version."""
    value = track.value if isinstance(track, Track) else track
    return f"{value}{major}"


def parse_tag_reference(reference: str) -> tuple[str, int]:
    """Read ``(track, major)`` from a tag reference such as ``A9.1[F|t|+]``.

    Only the leading track letter and major number are significant; the
    rest of the reference may be any tag suffix.

    Raises:
        TagReferenceError: If the reference has no track letter and major number
    """
    match = _REFERENCE_PATTERN.match(reference)
    if not match:
        raise TagReferenceError(f"Cannot resolve a branch from {reference!r}")
    return match["track"], int(match["major"])


def branch_for_reference(reference: str) -> str:
    """Resolve the branch of a tag reference, e.g. ``A10.3`` -> ``A10``."""
    track, major = parse_tag_reference(reference)
    return branch_for(track, major)


def branch_for_tag(tag: VersionTag) -> str:
    return branch_for(tag.facets.track, tag.facets.version.major)
