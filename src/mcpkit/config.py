"""Configuration management using Pydantic settings with optional file persistence."""

import json
import os
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import UnsupportedModelProvider

# --- Paths ---

APP_NAME = "mcpkit"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/mcpkit)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / ".config")).expanduser()
    else:
        base = Path("~/.config").expanduser()

    path = base / APP_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


CONFIG_FILE = get_config_dir() / "config.json"


def load_config_file() -> dict[str, Any]:
    """Load settings from the JSON config file if it exists."""
    if not CONFIG_FILE.exists():
        return {}

    try:
        text = CONFIG_FILE.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        return json.loads(text)
    except (OSError, json.JSONDecodeError):
        return {}


def save_config_file(config_data: dict[str, Any]) -> None:
    """Save settings to the JSON config file."""
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(config_data, indent=2), encoding="utf-8")


# Standard environment variable names for API keys, first match wins
STANDARD_ENV_VAR_NAMES: dict[str, str | list[str]] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": ["GEMINI_API_KEY", "GOOGLE_API_KEY", "GOOGLE_GENERATIVE_AI_API_KEY"],
    "xai": "XAI_API_KEY",
}

ProviderType = Literal["openai", "anthropic", "google", "xai"]

SUPPORTED_PROVIDERS: tuple[str, ...] = ("openai", "anthropic", "google", "xai")


def parse_model_reference(reference: str) -> tuple[str, str]:
    """Split a ``<provider>/<model>`` reference into its parts.

    Raises:
        UnsupportedModelProvider: If the prefix is not one of the supported providers
            or the model part is empty.
    """
    provider, sep, model = reference.strip().partition("/")
    if not sep or provider not in SUPPORTED_PROVIDERS or not model:
        prefixes = ", ".join(f"{p}/" for p in SUPPORTED_PROVIDERS)
        raise UnsupportedModelProvider(f"Unsupported model provider: {reference}. Must start with {prefixes}")
    return provider, model


def resolve_api_key(provider: str, override: SecretStr | None = None) -> Optional[str]:
    """Resolve API key with priority: generic override > standard env var(s)."""
    if override:
        return override.get_secret_value()

    standard_vars = STANDARD_ENV_VAR_NAMES.get(provider)
    if standard_vars:
        if isinstance(standard_vars, str):
            standard_vars = [standard_vars]
        for var_name in standard_vars:
            key = os.environ.get(var_name)
            if key:
                return key
    return None


class LLMSettings(BaseSettings):
    """LLM provider configuration."""

    model_config = SettingsConfigDict(env_prefix="MCPKIT_LLM_")

    model: str = Field(default="google/gemini-2.5-flash", description="<provider>/<model>, e.g. openai/gpt-4o")
    api_key: Optional[SecretStr] = Field(default=None, description="Generic API key override (highest priority)")

    @property
    def provider(self) -> str:
        return parse_model_reference(self.model)[0]

    @property
    def model_name(self) -> str:
        return parse_model_reference(self.model)[1]

    def get_api_key_for_provider(self) -> Optional[str]:
        """Resolve API key for the configured provider.

        Priority order:
        1. MCPKIT_LLM_API_KEY (generic override, applies to any provider)
        2. <PROVIDER>_API_KEY (standard name, e.g., OPENAI_API_KEY, GEMINI_API_KEY)
        """
        return resolve_api_key(self.provider, self.api_key)


class AgentSettings(BaseSettings):
    """Exploration agent configuration."""

    model_config = SettingsConfigDict(env_prefix="MCPKIT_AGENT_")

    max_steps: int = Field(default=20)
    use_vision: bool = Field(default=True)
    discovery_model: Optional[str] = Field(default=None, description="Separate <provider>/<model> for site exploration")
    action_max_steps: int = Field(default=5, description="Step budget for single natural-language actions")


class BrowserbaseSettings(BaseSettings):
    """Remote browser (Browserbase) configuration. Local Chromium is used without an API key."""

    model_config = SettingsConfigDict(env_prefix="BROWSERBASE_")

    api_key: Optional[SecretStr] = Field(default=None)
    project_id: Optional[str] = Field(default=None)
    region: str = Field(default="us-east-1")
    proxies: bool = Field(default=True)
    base_url: str = Field(default="https://api.browserbase.com")
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")

    @property
    def enabled(self) -> bool:
        return self.api_key is not None

    def get_api_key(self) -> Optional[str]:
        return self.api_key.get_secret_value() if self.api_key else None


class BrowserSettings(BaseSettings):
    """Browser configuration."""

    model_config = SettingsConfigDict(env_prefix="MCPKIT_BROWSER_")

    headless: bool = Field(default=False, description="Local browser must be visible for manual login")
    persist_context: bool = Field(default=True, description="Reuse a saved browser context per domain")
    profiles_dir: Optional[str] = Field(default=None, description="Directory for local browser profiles")


class VaultSettings(BaseSettings):
    """Credential vault (1Password CLI) configuration."""

    model_config = SettingsConfigDict(env_prefix="MCPKIT_VAULT_")

    enabled: bool = Field(default=True)
    op_path: str = Field(default="op", description="Path to the 1Password CLI binary")
    timeout: float = Field(default=10.0, description="Timeout per CLI call in seconds")


TransportType = Literal["stdio", "streamable-http", "sse"]


class ServerSettings(BaseSettings):
    """Server and output configuration."""

    model_config = SettingsConfigDict(env_prefix="MCPKIT_SERVER_")

    logging_level: str = Field(default="INFO")
    output_dir: Optional[str] = Field(default=None, description="Directory for generated catalogs (default: cwd)")
    transport: TransportType = Field(default="stdio", description="MCP transport: stdio, streamable-http, or sse")
    host: str = Field(default="127.0.0.1", description="Host for HTTP transports")
    port: int = Field(default=8383, description="Port for HTTP transports")


class AppSettings(BaseSettings):
    """Root application settings.

    Priority: Environment Variables > Config File > Defaults
    """

    model_config = SettingsConfigDict(env_prefix="MCPKIT_", extra="ignore")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    agent: AgentSettings = Field(default_factory=AgentSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    browserbase: BrowserbaseSettings = Field(default_factory=BrowserbaseSettings)
    vault: VaultSettings = Field(default_factory=VaultSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    def save(self) -> Path:
        """Save current configuration to file (excluding secrets)."""
        data = self.model_dump(mode="json", exclude_none=True)
        data.get("llm", {}).pop("api_key", None)
        data.get("browserbase", {}).pop("api_key", None)
        save_config_file(data)
        return CONFIG_FILE

    def get_output_dir(self) -> Path:
        """Get the output directory, creating if needed."""
        path = Path(self.server.output_dir).expanduser() if self.server.output_dir else Path.cwd()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def get_profiles_dir(self) -> Path:
        """Get the directory holding local browser profiles."""
        if self.browser.profiles_dir:
            return Path(self.browser.profiles_dir).expanduser()
        return get_config_dir() / "profiles"


def _load_settings() -> AppSettings:
    """Load settings with file config as base, env vars overlay."""
    file_data = load_config_file()
    return AppSettings(**file_data)


settings = _load_settings()
