"""Action discovery subsystem.

The exploration agent walks the (authenticated) site and answers with a JSON
catalog of actions. The catalog is validated as a unit before anything
downstream sees it.
"""

from .discoverer import ActionDiscoverer, parse_discovery_response, strip_code_fences
from .models import ActionCatalog, ActionDescriptor, ActionParameter, PlaceholderIssue, extract_placeholders

__all__ = [
    # Models
    "ActionCatalog",
    "ActionDescriptor",
    "ActionParameter",
    "PlaceholderIssue",
    # Components
    "ActionDiscoverer",
    "extract_placeholders",
    "parse_discovery_response",
    "strip_code_fences",
]
