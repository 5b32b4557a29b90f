"""Generate MCP servers for websites with browser automation."""

from .config import settings
from .exceptions import AuthenticationError, BrowserError, DiscoveryError, LLMProviderError, MCPKitError
from .pipeline import PipelineResult, create_mcp_server
from .providers import get_llm

__all__ = [
    "create_mcp_server",
    "PipelineResult",
    "settings",
    "get_llm",
    "MCPKitError",
    "AuthenticationError",
    "BrowserError",
    "DiscoveryError",
    "LLMProviderError",
]
