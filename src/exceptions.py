"""Typed failures raised while resolving a diff between two revisions.

Each failure kind carries its own process exit code so a pipeline can tell
lock or network trouble apart from a revision that really does not exist.
"""

from typing import Dict, List, Optional

from src.schemas import FetchAttempt, RevisionRole


class RefResolverError(Exception):
    """Base class for all resolve-diff failures."""

    exit_code = 1


class MissingInputError(RefResolverError):
    """A revision argument was empty or absent."""

    exit_code = 50

    def __init__(self, missing: List[RevisionRole]):
        self.missing = list(missing)
        names = " and ".join(f"{role.value} revision" for role in self.missing)
        super().__init__(f"Missing input: {names} must be a non-empty string")


class DiffOperationError(RefResolverError):
    """The diff between the two revisions could not be computed."""

    exit_code = 51


class RepositoryNotFoundError(RefResolverError):
    """The working directory is missing or is not a git repository."""

    exit_code = 52

    def __init__(self, repo_path: str, reason: str = ""):
        self.repo_path = repo_path
        message = f"Not a git repository: {repo_path}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class FetchExhaustedError(RefResolverError):
    """Every fetch attempt failed."""

    exit_code = 53

    def __init__(self, remote: str, attempts: List[FetchAttempt]):
        self.remote = remote
        self.attempts = list(attempts)
        last_error: Optional[str] = self.attempts[-1].error if self.attempts else None
        super().__init__(
            f"Fetch from '{remote}' failed after {len(self.attempts)} attempt(s)"
            + (f": {last_error}" if last_error else "")
        )


class RevisionNotFoundError(RefResolverError):
    """A revision did not resolve, even after a targeted fetch."""

    role = RevisionRole.OLD

    def __init__(self, missing: Dict[RevisionRole, str]):
        self.missing = dict(missing)
        self.revision = self.missing.get(self.role, "")
        names = ", ".join(
            f"{role.value} revision '{rev}'" for role, rev in self.missing.items()
        )
        super().__init__(f"Revision not found: {names}")


class OldRevisionNotFoundError(RevisionNotFoundError):
    exit_code = 54
    role = RevisionRole.OLD


class NewRevisionNotFoundError(RevisionNotFoundError):
    exit_code = 55
    role = RevisionRole.NEW
