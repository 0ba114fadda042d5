"""Factory for creating RefResolver instances from settings."""

import time
from typing import Callable

from ..config.settings import DEFAULT_LOCK_MAX_AGE, Settings
from ..protocols.ref_resolver_protocol import RefResolverProtocol
from .lock_cleaner import AgeStalenessPolicy, LockCleaner
from .ref_resolver import RefResolver


def create_ref_resolver(
    remote_name: str = "origin",
    max_retries: int = 3,
    backoff_base: float = 2.0,
    backoff_factor: float = 2.0,
    fetch_timeout: float = 120.0,
    lock_max_age: float = DEFAULT_LOCK_MAX_AGE,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.time,
) -> RefResolverProtocol:
    """
    Create a RefResolver with an age-based lock staleness policy.

    Args:
        remote_name: Remote to fetch tags and branches from
        max_retries: Total number of bulk fetch attempts
        backoff_base: Delay in seconds before the first retry
        backoff_factor: Multiplier applied to the delay for each further retry
        fetch_timeout: Seconds after which a single fetch attempt is killed
        lock_max_age: Minimum age in seconds for a lock file to count as stale
        sleep: Called with each backoff delay
        clock: Wall clock used to age lock files

    Returns:
        RefResolverProtocol implementation
    """
    lock_cleaner = LockCleaner(AgeStalenessPolicy(lock_max_age, clock=clock))
    return RefResolver(
        remote_name=remote_name,
        max_retries=max_retries,
        backoff_base=backoff_base,
        backoff_factor=backoff_factor,
        fetch_timeout=fetch_timeout,
        lock_cleaner=lock_cleaner,
        sleep=sleep,
    )


def create_ref_resolver_from_settings(settings: Settings) -> RefResolverProtocol:
    """
    Create a RefResolver using application settings.

    Args:
        settings: Application settings

    Returns:
        RefResolverProtocol implementation
    """
    return create_ref_resolver(
        remote_name=settings.GIT_REMOTE_NAME,
        max_retries=settings.FETCH_MAX_RETRIES,
        backoff_base=settings.FETCH_BACKOFF_BASE,
        backoff_factor=settings.FETCH_BACKOFF_FACTOR,
        fetch_timeout=settings.FETCH_TIMEOUT,
        lock_max_age=settings.LOCK_MAX_AGE,
    )
