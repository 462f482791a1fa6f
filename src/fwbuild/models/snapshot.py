"""Snapshot model for pre-build rollback points."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Snapshot(BaseModel):
    """Repository position captured before a risky operation.

    Attributes:
        branch: Branch checked out at capture time ("HEAD" when detached).
        commit: Full commit SHA at capture time.
        taken_at: Capture time.
    """

    model_config = ConfigDict(frozen=True)

    branch: str = Field(description="Branch at capture time")
    commit: str = Field(description="Commit SHA at capture time")
    taken_at: datetime = Field(default_factory=datetime.now)

    @property
    def detached(self) -> bool:
        return self.branch == "HEAD"

    @property
    def ref(self) -> str:
        """What to check out to return here: the branch, or the commit when detached."""
        return self.commit if self.detached else self.branch
