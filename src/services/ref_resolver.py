import os
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from git import Repo
from git.exc import BadName, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from src.config.logging import get_logger
from src.exceptions import (
    DiffOperationError,
    FetchExhaustedError,
    MissingInputError,
    NewRevisionNotFoundError,
    OldRevisionNotFoundError,
    RepositoryNotFoundError,
)
from src.schemas import ChangeKind, DiffResult, FetchAttempt, FileChange, RevisionRole

from .lock_cleaner import AgeStalenessPolicy, LockCleaner

logger = get_logger("resolver")


class RefResolver:
    """Turns two revision names into a diff, repairing lock and fetch trouble on the way."""

    def __init__(
        self,
        remote_name: str = "origin",
        max_retries: int = 3,
        backoff_base: float = 2.0,
        backoff_factor: float = 2.0,
        fetch_timeout: float = 120.0,
        lock_cleaner: Optional[LockCleaner] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self.remote_name = remote_name
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.backoff_factor = backoff_factor
        self.fetch_timeout = fetch_timeout
        self.lock_cleaner = lock_cleaner or LockCleaner(AgeStalenessPolicy())
        self.sleep = sleep

    def resolve_diff(
        self,
        repo_path: str,
        old_rev: Optional[str],
        new_rev: Optional[str],
        filter_kinds: Iterable[str],
    ) -> DiffResult:
        """Clean locks, fetch, validate both revisions and diff them.

        Raises:
            MissingInputError: old_rev or new_rev is empty.
            RepositoryNotFoundError: repo_path is not a git working directory.
            FetchExhaustedError: every bulk fetch attempt failed.
            OldRevisionNotFoundError: old_rev is unresolvable (new_rev may be too).
            NewRevisionNotFoundError: only new_rev is unresolvable.
            DiffOperationError: the comparison itself failed.
        """
        old_rev, new_rev = self.validate_inputs(old_rev, new_rev)
        kinds = self.parse_filter_kinds(filter_kinds)

        repo = self.open_repository(repo_path)
        git_dir = Path(repo.git_dir)

        self.lock_cleaner.clean(git_dir)
        attempts = self.fetch_with_retry(repo, git_dir)
        old_sha, new_sha = self.validate_revisions(repo, old_rev, new_rev, attempts)
        changes = self.compute_diff(repo, old_sha, new_sha, kinds)

        logger.info(f"{len(changes)} change(s) between {old_rev} and {new_rev}")
        return DiffResult(
            old_rev=old_rev,
            new_rev=new_rev,
            old_sha=old_sha,
            new_sha=new_sha,
            filter_kinds=kinds,
            changes=tuple(changes),
            fetch_attempts=tuple(attempts),
        )

    @staticmethod
    def validate_inputs(
        old_rev: Optional[str], new_rev: Optional[str]
    ) -> Tuple[str, str]:
        missing = [
            role
            for role, rev in ((RevisionRole.OLD, old_rev), (RevisionRole.NEW, new_rev))
            if not isinstance(rev, str) or not rev.strip()
        ]
        if missing:
            raise MissingInputError(missing)
        return old_rev.strip(), new_rev.strip()

    @staticmethod
    def parse_filter_kinds(filter_kinds: Iterable[str]) -> frozenset:
        kinds = set()
        for kind in filter_kinds:
            try:
                kinds.add(ChangeKind(kind))
            except ValueError:
                raise DiffOperationError(f"Unknown change kind: {kind!r}") from None
        return frozenset(kinds)

    @staticmethod
    def open_repository(repo_path: str) -> Repo:
        """Open an existing repository; never creates one."""
        path = Path(repo_path)
        if not path.is_dir():
            raise RepositoryNotFoundError(str(repo_path), "directory does not exist")
        if not os.access(path, os.R_OK | os.X_OK):
            raise RepositoryNotFoundError(str(repo_path), "directory is not readable")
        try:
            return Repo(path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryNotFoundError(
                str(repo_path), "no git control directory"
            ) from e

    def backoff_delay(self, retry: int) -> float:
        """Delay before the given retry (1 for the first retry)."""
        return self.backoff_base * self.backoff_factor ** (retry - 1)

    def fetch_with_retry(self, repo: Repo, git_dir: Path) -> List[FetchAttempt]:
        """Fetch all tags and branches, retrying with exponential backoff."""
        attempts: List[FetchAttempt] = []
        for number in range(1, self.max_retries + 1):
            if number > 1:
                delay = self.backoff_delay(number - 1)
                logger.info(
                    f"Retrying fetch in {delay:.1f}s "
                    f"(attempt {number}/{self.max_retries})"
                )
                self.sleep(delay)
                # A failed or killed fetch can leave its own locks behind
                self.lock_cleaner.clean(git_dir)

            attempt = self._fetch(repo, number)
            attempts.append(attempt)
            if attempt.success:
                return attempts
            logger.warning(
                f"Fetch attempt {number}/{self.max_retries} failed: {attempt.error}"
            )

        raise FetchExhaustedError(self.remote_name, attempts)

    def _fetch(self, repo: Repo, number: int) -> FetchAttempt:
        try:
            remote = repo.remote(self.remote_name)
            remote.fetch(tags=True, force=True, kill_after_timeout=self.fetch_timeout)
        except (GitCommandError, ValueError) as e:
            return FetchAttempt(attempt=number, success=False, error=str(e).strip())
        logger.info(f"Fetched tags and branches from '{self.remote_name}'")
        return FetchAttempt(attempt=number, success=True)

    def targeted_refspecs(self, rev: str) -> List[str]:
        """Refspecs tried, in order, to fetch one revision by name."""
        refspecs = [
            f"+refs/tags/{rev}:refs/tags/{rev}",
            f"+refs/heads/{rev}:refs/remotes/{self.remote_name}/{rev}",
        ]
        if not rev.startswith("-"):
            refspecs.append(rev)
        return refspecs

    def targeted_fetch(self, repo: Repo, rev: str, number: int) -> FetchAttempt:
        """Fetch a single revision the bulk fetch did not bring in."""
        error = None
        try:
            remote = repo.remote(self.remote_name)
        except ValueError as e:
            return FetchAttempt(
                attempt=number,
                success=False,
                kind="targeted",
                ref=rev,
                error=str(e).strip(),
            )

        for refspec in self.targeted_refspecs(rev):
            try:
                remote.fetch(refspec, kill_after_timeout=self.fetch_timeout)
            except GitCommandError as e:
                error = str(e).strip()
                logger.debug(f"Targeted fetch of {refspec} failed: {error}")
                continue
            logger.info(f"Fetched '{rev}' from '{self.remote_name}' using {refspec}")
            return FetchAttempt(attempt=number, success=True, kind="targeted", ref=rev)

        return FetchAttempt(
            attempt=number,
            success=False,
            kind="targeted",
            ref=rev,
            error=error,
        )

    def revision_candidates(self, rev: str) -> List[str]:
        """Names tried, in order, when resolving rev after a fetch.

        Local branches are never moved by the fetch, so the remote-tracking
        ref is preferred over a bare name that may match a stale local branch.
        """
        return [f"refs/tags/{rev}", f"refs/remotes/{self.remote_name}/{rev}", rev]

    def resolve_revision(self, repo: Repo, rev: str) -> Optional[str]:
        """Return the commit id rev names, or None when it does not resolve."""
        # A leading dash would be parsed as an option
        if rev.startswith("-"):
            return None
        for candidate in self.revision_candidates(rev):
            try:
                sha = repo.git.rev_parse("--verify", "--quiet", f"{candidate}^{{commit}}")
            except GitCommandError:
                continue
            if sha:
                return sha.strip()
        return None

    def validate_revisions(
        self, repo: Repo, old_rev: str, new_rev: str, attempts: List[FetchAttempt]
    ) -> Tuple[str, str]:
        """Resolve both revisions, falling back to one targeted fetch each."""
        resolved: Dict[RevisionRole, str] = {}
        missing: Dict[RevisionRole, str] = {}

        for role, rev in ((RevisionRole.OLD, old_rev), (RevisionRole.NEW, new_rev)):
            sha = self.resolve_revision(repo, rev)
            if sha is None:
                logger.warning(
                    f"{role.value.capitalize()} revision '{rev}' not found after fetch, "
                    "trying a targeted fetch"
                )
                attempts.append(self.targeted_fetch(repo, rev, len(attempts) + 1))
                sha = self.resolve_revision(repo, rev)

            if sha is None:
                missing[role] = rev
            else:
                logger.debug(f"{role.value} revision '{rev}' resolved to {sha}")
                resolved[role] = sha

        if RevisionRole.OLD in missing:
            raise OldRevisionNotFoundError(missing)
        if RevisionRole.NEW in missing:
            raise NewRevisionNotFoundError(missing)
        return resolved[RevisionRole.OLD], resolved[RevisionRole.NEW]

    def compute_diff(
        self, repo: Repo, old_sha: str, new_sha: str, kinds: frozenset
    ) -> List[FileChange]:
        """Diff old against new, keeping only the requested change kinds."""
        if not old_sha or not new_sha:
            raise DiffOperationError("Both revisions must resolve before diffing")

        try:
            old_commit = repo.commit(old_sha)
            new_commit = repo.commit(new_sha)
            diff_items = old_commit.diff(new_commit)
        except (BadName, GitCommandError, ValueError) as e:
            raise DiffOperationError(
                f"Failed to diff {old_sha}..{new_sha}: {e}"
            ) from e

        changes = []
        for item in diff_items:
            try:
                kind = ChangeKind(item.change_type)
            except ValueError:
                logger.debug(f"Skipping change of unknown type {item.change_type!r}")
                continue
            if kind not in kinds:
                continue

            path = item.a_path if kind == ChangeKind.DELETED else item.b_path
            old_path = (
                item.a_path if kind in (ChangeKind.RENAMED, ChangeKind.COPIED) else None
            )
            changes.append(FileChange(path=path, kind=kind, old_path=old_path))

        return sorted(changes, key=lambda change: (change.path, change.kind.value))
