"""RefResolver protocol interface."""

from typing import Iterable, Optional, Protocol, runtime_checkable

from ..schemas import DiffResult


@runtime_checkable
class RefResolverProtocol(Protocol):
    """Protocol for resolving a filtered diff between two revisions."""

    @property
    def remote_name(self) -> str:
        """Remote that tags and branches are fetched from."""
        ...

    @property
    def max_retries(self) -> int:
        """Total number of bulk fetch attempts."""
        ...

    def resolve_diff(
        self,
        repo_path: str,
        old_rev: Optional[str],
        new_rev: Optional[str],
        filter_kinds: Iterable[str],
    ) -> DiffResult:
        """Return the diff between old_rev and new_rev or raise a RefResolverError."""
        ...
