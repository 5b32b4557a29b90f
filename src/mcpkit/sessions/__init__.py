"""Browser context persistence: domain to reusable profile mapping."""

from .providers import (
    BrowserbaseClient,
    BrowserbaseProvisioner,
    ContextProvisioner,
    LocalProfileProvisioner,
    RemoteSession,
    is_local_context,
)
from .store import ContextStore, get_default_contexts_file

__all__ = [
    "BrowserbaseClient",
    "BrowserbaseProvisioner",
    "ContextProvisioner",
    "ContextStore",
    "LocalProfileProvisioner",
    "RemoteSession",
    "get_default_contexts_file",
    "is_local_context",
]
