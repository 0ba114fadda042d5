"""Services for the application."""

from .lock_cleaner import AgeStalenessPolicy, LockCleaner
from .ref_resolver import RefResolver
from .ref_resolver_factory import (
    create_ref_resolver,
    create_ref_resolver_from_settings,
)

__all__ = [
    "AgeStalenessPolicy",
    "LockCleaner",
    "RefResolver",
    "create_ref_resolver",
    "create_ref_resolver_from_settings",
]
