"""Finds and removes stale lock files left behind by crashed git processes."""

import time
from pathlib import Path
from typing import Callable, List, Optional

from src.config.logging import get_logger
from src.config.settings import DEFAULT_LOCK_MAX_AGE
from src.schemas import LockArtifact

logger = get_logger("locks")

# Locks git takes directly under its control directory
TOP_LEVEL_LOCKS = ("index.lock", "HEAD.lock", "packed-refs.lock", "shallow.lock")

# Ref namespaces where fetch and branch updates take per-ref locks
REF_LOCK_NAMESPACES = ("refs/heads", "refs/remotes", "refs/tags")

LOCK_SUFFIX = ".lock"

StalenessPolicy = Callable[[LockArtifact], bool]


class AgeStalenessPolicy:
    """Treat a lock as stale once it is old enough and nothing claims it.

    Args:
        max_age: Minimum age in seconds before a lock counts as stale.
        clock: Returns the current time as a POSIX timestamp.
        liveness_probe: Optional check returning True while a live process
            still holds the lock. A held lock is never stale.
    """

    def __init__(
        self,
        max_age: float = DEFAULT_LOCK_MAX_AGE,
        clock: Callable[[], float] = time.time,
        liveness_probe: Optional[Callable[[LockArtifact], bool]] = None,
    ):
        self.max_age = max_age
        self.clock = clock
        self.liveness_probe = liveness_probe

    def __call__(self, lock: LockArtifact) -> bool:
        age = lock.age(self.clock())
        if age < self.max_age:
            logger.debug(
                f"Lock {lock.path} is {age:.1f}s old (< {self.max_age:.1f}s), keeping it"
            )
            return False
        if self.liveness_probe is not None and self.liveness_probe(lock):
            logger.debug(f"Lock {lock.path} is still held, keeping it")
            return False
        return True


class LockCleaner:
    """Removes stale lock artifacts from a git control directory."""

    def __init__(self, staleness_policy: StalenessPolicy):
        self.staleness_policy = staleness_policy

    def find_locks(self, git_dir: Path) -> List[LockArtifact]:
        """List lock artifacts under git_dir, ordered by path."""
        git_dir = Path(git_dir)
        candidates = [git_dir / name for name in TOP_LEVEL_LOCKS]
        for namespace in REF_LOCK_NAMESPACES:
            root = git_dir / namespace
            if root.is_dir():
                candidates.extend(root.rglob(f"*{LOCK_SUFFIX}"))

        locks = []
        for path in sorted(set(candidates)):
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            if path.is_file():
                locks.append(LockArtifact(path=path, mtime=stat.st_mtime))
        return locks

    def clean(self, git_dir: Path) -> List[LockArtifact]:
        """Delete every stale lock under git_dir and return the removed ones.

        Deletion is best-effort: a lock that vanished or was taken again in
        the meantime is skipped and an unremovable lock is logged, never raised.
        """
        removed = []
        for lock in self.find_locks(git_dir):
            if not self.staleness_policy(lock):
                continue
            # Another process may have released or re-taken it since the scan
            try:
                current = lock.path.stat()
            except FileNotFoundError:
                logger.debug(f"Lock already gone: {lock.path}")
                continue
            if current.st_mtime != lock.mtime:
                logger.debug(f"Lock {lock.path} was taken again since the scan, keeping it")
                continue
            try:
                lock.path.unlink()
            except FileNotFoundError:
                logger.debug(f"Lock already gone: {lock.path}")
                continue
            except OSError as e:
                logger.warning(f"Failed to remove stale lock {lock.path}: {e}")
                continue
            logger.info(f"Removed stale lock: {lock.path}")
            removed.append(lock)
        return removed
