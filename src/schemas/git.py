from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class ChangeKind(str, Enum):
    """Enum for file change kinds, using git's diff-filter letters."""

    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    TYPE_CHANGED = "T"


class RevisionRole(str, Enum):
    """Which side of the comparison a revision sits on."""

    OLD = "old"
    NEW = "new"


class FileChange(BaseModel):
    """Represents a file change between two revisions."""

    model_config = ConfigDict(frozen=True)

    path: str
    kind: ChangeKind
    old_path: Optional[str] = None  # For renamed and copied files


class LockArtifact(BaseModel):
    """A lock file found under a repository's git directory."""

    model_config = ConfigDict(frozen=True)

    path: Path
    mtime: float

    def age(self, now: float) -> float:
        return max(0.0, now - self.mtime)


class FetchAttempt(BaseModel):
    """One try of a fetch from the remote."""

    attempt: int
    success: bool
    kind: str = "bulk"  # 'bulk' (all tags and branches) or 'targeted'
    ref: Optional[str] = None  # Revision name for targeted fetches
    error: Optional[str] = None


class DiffResult(BaseModel):
    """Filtered, path-ordered changes between two resolved revisions."""

    model_config = ConfigDict(frozen=True)

    old_rev: str
    new_rev: str
    old_sha: str
    new_sha: str
    filter_kinds: FrozenSet[ChangeKind]
    changes: Tuple[FileChange, ...] = ()
    fetch_attempts: Tuple[FetchAttempt, ...] = ()

    def pairs(self) -> List[Tuple[str, ChangeKind]]:
        return [(change.path, change.kind) for change in self.changes]

    def summary(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for change in self.changes:
            counts[change.kind.value] = counts.get(change.kind.value, 0) + 1
        return counts
