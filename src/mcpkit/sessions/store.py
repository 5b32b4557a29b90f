"""Per-domain browser context mapping persisted as a YAML file.

The file holds one ``domain: context_id`` entry per line. It is read on every
call so it stays the single source of truth across runs. A file that cannot be
read or parsed is never overwritten. There is no locking: two processes
creating a context for the same domain at the same time may race.
"""

import logging
from pathlib import Path

import yaml

from ..config import get_config_dir
from ..exceptions import SessionProvisioningFailed
from ..utils import atomic_write_text
from .providers import ContextProvisioner

logger = logging.getLogger(__name__)


def get_default_contexts_file() -> Path:
    """Get the default context mapping file."""
    return get_config_dir() / "contexts.yaml"


def _normalize_domain(domain: str) -> str:
    key = domain.strip().lower()
    if not key:
        raise ValueError("Domain must be non-empty")
    return key


class ContextStore:
    """Maps domains to reusable browser context ids."""

    def __init__(self, provisioner: ContextProvisioner | None = None, path: str | Path | None = None):
        """Initialize context store.

        Args:
            provisioner: Backend used to create new contexts. Required by get_or_create only.
            path: Mapping file. If None, uses ~/.config/mcpkit/contexts.yaml.
        """
        self.provisioner = provisioner
        self.path = Path(path).expanduser() if path else get_default_contexts_file()

    def _read(self) -> dict[str, str]:
        """Load the mapping.

        Raises:
            SessionProvisioningFailed: If the file exists but cannot be read or is not a mapping.
        """
        if not self.path.exists():
            return {}

        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise SessionProvisioningFailed(f"Cannot read context file {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise SessionProvisioningFailed(f"Invalid YAML in context file {self.path}: {e}") from e

        if not data:
            return {}
        if not isinstance(data, dict):
            raise SessionProvisioningFailed(f"Context file {self.path} does not contain a mapping")
        return {str(k): str(v) for k, v in data.items() if v}

    def _write(self, mapping: dict[str, str]) -> None:
        content = yaml.safe_dump(dict(sorted(mapping.items())), default_flow_style=False, allow_unicode=True)
        try:
            atomic_write_text(self.path, content)
        except OSError as e:
            raise SessionProvisioningFailed(f"Cannot write context file {self.path}: {e}") from e

    def get(self, domain: str) -> str | None:
        """Return the saved context id for a domain, if any."""
        return self._read().get(_normalize_domain(domain))

    def set(self, domain: str, context_id: str) -> None:
        """Persist a context id for a domain, keeping all other entries."""
        mapping = self._read()
        mapping[_normalize_domain(domain)] = context_id
        self._write(mapping)

    def delete(self, domain: str) -> bool:
        """Remove the mapping for a domain.

        Returns:
            True if deleted, False if not found
        """
        key = _normalize_domain(domain)
        mapping = self._read()
        if key not in mapping:
            return False

        del mapping[key]
        self._write(mapping)
        logger.info(f"Deleted context mapping for {key}")
        return True

    def list(self) -> list[str]:
        """List all domains with a saved context."""
        return sorted(self._read())

    async def get_or_create(self, domain: str) -> str:
        """Return the saved context id for a domain, creating one on first use.

        A new context that cannot be saved is still returned, for use in this run only.

        Raises:
            SessionProvisioningFailed: If the mapping file is unreadable, or no context is
                saved and a new one could not be created.
        """
        key = _normalize_domain(domain)
        existing = self.get(key)
        if existing:
            logger.info(f"Reusing context {existing} for {key}")
            return existing

        if self.provisioner is None:
            raise SessionProvisioningFailed("No context provisioner configured")

        context_id = await self.provisioner.create_context()
        try:
            self.set(key, context_id)
        except SessionProvisioningFailed as e:
            logger.warning(f"Context {context_id} for {key} will not be reused: {e}")
            return context_id
        logger.info(f"Saved new context {context_id} for {key}")
        return context_id
