"""Build facet models.

A build attempt is described by six independent facets. The raw,
user-supplied strings are held in ``RawFacets`` until they pass
validation and become a ``BuildFacets``.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Track(str, Enum):
    """Top-level build lineage."""

    ACTIVE = "A"
    BETA = "B"
    RELEASE = "R"


class Environment(str, Enum):
    """Target environment of the build."""

    FIRMWARE = "F"
    WEB = "W"
    BACKEND = "B"
    TOOLS = "T"
    MULTI = "M"


class Stability(str, Enum):
    """Declared stability of the build."""

    STABLE = "s"
    TEST = "t"
    EXPERIMENTAL = "e"
    PROTOTYPE = "p"
    DEBUG = "d"
    BROKEN = "x"


class ChangeType(str, Enum):
    """Kind of change the build introduces."""

    ADDITION = "+"
    IMPROVEMENT = "*"
    REFACTOR = "%"
    FIX = "!"
    TWEAK = "~"
    NO_CHANGE = "="
    UNKNOWN = "?"


class BracketStyle(str, Enum):
    """Delimiters used to wrap a parent reference inside a tag."""

    UNICODE = "unicode"
    ASCII = "ascii"

    @property
    def delimiters(self) -> tuple[str, str]:
        if self is BracketStyle.ASCII:
            return "<<", ">>"
        return "⟪", "⟫"


class Version(BaseModel):
    """A ``major.minor`` version pair."""

    model_config = ConfigDict(frozen=True)

    major: int = Field(ge=0)
    minor: int = Field(default=0, ge=0)

    @classmethod
    def parse(cls, text: str) -> "Version":
        """Parse ``"10"`` or ``"10.3"``. Grammar is checked by the validator."""
        major, _, minor = text.partition(".")
        return cls(major=int(major), minor=int(minor) if minor else 0)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"


class RawFacets(BaseModel):
    """Unvalidated facet strings as collected from flags or prompts."""

    model_config = ConfigDict(frozen=True)

    track: str = ""
    version: str = ""
    environment: str = ""
    stability: str = ""
    change_type: str = ""
    parent: str = ""


class BuildFacets(BaseModel):
    """Validated input to a build attempt.

    Attributes:
        track: Build lineage (A/B/R).
        version: Major and minor version numbers.
        environment: Target environment (F/W/B/T/M).
        stability: Declared stability (s/t/e/p/d/x).
        change_type: Change classifier (+ * % ! ~ = ?).
        parent: Optional tag string of the build this one derives from.
    """

    model_config = ConfigDict(frozen=True)

    track: Track
    version: Version
    environment: Environment
    stability: Stability
    change_type: ChangeType
    parent: str | None = None

    @property
    def base(self) -> str:
        """Track and version without facets, e.g. ``A10.3``."""
        return f"{self.track.value}{self.version}"
