"""Custom exceptions for mcpkit."""


class MCPKitError(Exception):
    """Base exception for mcpkit errors."""

    pass


class InvalidUrlFormat(MCPKitError, ValueError):
    """Raised when user input cannot be turned into an absolute http(s) URL."""

    pass


class LLMProviderError(MCPKitError):
    """Raised when LLM provider configuration is invalid."""

    pass


class UnsupportedModelProvider(LLMProviderError):
    """Raised when the configured model does not start with a known provider prefix."""

    pass


class BrowserError(MCPKitError):
    """Raised when browser operations fail."""

    pass


class SessionProvisioningFailed(MCPKitError):
    """Raised when a new browser context could not be created for a domain."""

    pass


class CredentialLookupFailed(MCPKitError):
    """Raised by vault backends; always absorbed into "no credentials"."""

    pass


class AuthenticationError(MCPKitError):
    """Base class for fatal authentication outcomes."""

    pass


class AuthenticationIncomplete(AuthenticationError):
    """Raised when the page still requires sign-in after the operator finished."""

    pass


class AuthenticationAborted(AuthenticationError):
    """Raised when the operator aborts the manual login step."""

    pass


class DiscoveryError(MCPKitError):
    """Raised when action discovery fails."""

    pass


class MalformedDiscoveryResponse(DiscoveryError):
    """Raised when the agent's final message is not parseable JSON."""

    pass


class SchemaValidationFailed(DiscoveryError):
    """Raised when the parsed discovery response does not match the catalog schema."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path
