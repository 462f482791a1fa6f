"""Snapshot and rollback of the repository position.

The manager is either clean (no snapshot) or armed (one snapshot). A new
snapshot replaces the previous one; rollback consumes it.
"""

import logging

from ..models import Snapshot
from ..services.git import GitError
from .ports import GitPort

logger = logging.getLogger(__name__)


class SnapshotManager:
    """Holds the single live rollback point of a build attempt."""

    def __init__(self, git: GitPort):
        self._git = git
        self._snapshot: Snapshot | None = None

    @property
    def armed(self) -> bool:
        return self._snapshot is not None

    @property
    def current(self) -> Snapshot | None:
        return self._snapshot

    def snapshot(self) -> Snapshot:
        """Capture the current branch and commit, superseding any previous snapshot."""
        snap = Snapshot(branch=self._git.current_branch(), commit=self._git.head_sha())
        if self._snapshot is not None:
            logger.debug(f"Replacing snapshot {self._snapshot.branch}@{self._snapshot.commit[:8]}")
        self._snapshot = snap
        logger.info(f"Snapshot: branch={snap.branch} commit={snap.commit[:8]}")
        return snap

    def rollback(self) -> bool:
        """Check out the snapshot branch, then reset it to the snapshot commit.

        Only the branch named by the snapshot is ever reset; if it cannot be
        checked out, nothing is reset.

        Returns:
            True if the snapshot position was restored, False otherwise
        """
        snap = self._snapshot
        if snap is None:
            logger.warning("Rollback requested but no snapshot is available")
            return False

        self._snapshot = None
        logger.warning(f"Rolling back {snap.branch} to {snap.commit[:8]}")
        try:
            self._git.checkout(snap.ref)
        except GitError as e:
            logger.error(f"Checkout of {snap.branch} failed, nothing reset: {e}")
            return False
        try:
            self._git.reset_hard(snap.commit)
        except GitError as e:
            logger.error(f"Reset to {snap.commit[:8]} failed: {e}")
            return False
        return True
