"""Linked identity management use cases."""

from .bulk_unlink import BulkUnlinkUseCase
from .check_conflict import CheckConflictUseCase
from .get_provider_status import GetProviderStatusUseCase
from .list_providers import ListProvidersUseCase
from .unlink_provider import UnlinkProviderUseCase

__all__ = [
    "BulkUnlinkUseCase",
    "CheckConflictUseCase",
    "GetProviderStatusUseCase",
    "ListProvidersUseCase",
    "UnlinkProviderUseCase",
]
