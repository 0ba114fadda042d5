"""Schemas for the application."""

from .git import (
    ChangeKind,
    DiffResult,
    FetchAttempt,
    FileChange,
    LockArtifact,
    RevisionRole,
)

__all__ = [
    "ChangeKind",
    "DiffResult",
    "FetchAttempt",
    "FileChange",
    "LockArtifact",
    "RevisionRole",
]
