"""Read-only credential lookup from an external vault.

Absence of credentials is a normal outcome: every vault failure is logged and
resolved to ``None`` so that authentication falls back to the manual path.
"""

import asyncio
import json
import logging
from typing import Protocol

from pydantic import BaseModel, SecretStr

from .config import VaultSettings
from .exceptions import CredentialLookupFailed

logger = logging.getLogger(__name__)


class Credentials(BaseModel):
    """Username/password pair for a domain."""

    username: str
    password: SecretStr


class CredentialVault(Protocol):
    """Looks up stored credentials for a domain."""

    async def lookup(self, domain: str) -> Credentials | None: ...


class NullVault:
    """Vault that never has credentials."""

    async def lookup(self, domain: str) -> Credentials | None:
        return None


class OnePasswordVault:
    """Credential lookup through the 1Password CLI (``op``)."""

    def __init__(self, op_path: str = "op", timeout: float = 10.0):
        self.op_path = op_path
        self.timeout = timeout

    async def lookup(self, domain: str) -> Credentials | None:
        try:
            credentials = await self._fetch(domain)
        except CredentialLookupFailed as e:
            logger.info(f"No credentials from 1Password for {domain}: {e}")
            return None

        logger.info(f"Found 1Password credentials for {domain}")
        return credentials

    async def _fetch(self, domain: str) -> Credentials:
        stdout = await self._run_op("item", "get", domain, "--fields", "label=username,label=password", "--reveal", "--format", "json")
        return self._parse_fields(stdout)

    async def _run_op(self, *args: str) -> bytes:
        try:
            process = await asyncio.create_subprocess_exec(
                self.op_path,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CredentialLookupFailed(f"could not run {self.op_path}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise CredentialLookupFailed(f"{self.op_path} timed out after {self.timeout}s") from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip() or f"exit code {process.returncode}"
            raise CredentialLookupFailed(message)
        return stdout

    @staticmethod
    def _parse_fields(stdout: bytes) -> Credentials:
        """Parse ``op item get --fields ... --format json`` output.

        The CLI prints a single object for one field and a list for several.
        """
        try:
            data = json.loads(stdout)
        except ValueError as e:
            raise CredentialLookupFailed(f"malformed op output: {e}") from e

        fields = data if isinstance(data, list) else [data]
        values: dict[str, str] = {}
        for field in fields:
            if not isinstance(field, dict):
                continue
            label = str(field.get("label") or field.get("id") or "").lower()
            value = field.get("value")
            if label and isinstance(value, str) and value:
                values[label] = value

        username = values.get("username")
        password = values.get("password")
        if not username or not password:
            raise CredentialLookupFailed("item has no username/password fields")
        return Credentials(username=username, password=SecretStr(password))


def get_vault(vault_settings: VaultSettings) -> CredentialVault:
    """Build the configured vault."""
    if not vault_settings.enabled:
        return NullVault()
    return OnePasswordVault(op_path=vault_settings.op_path, timeout=vault_settings.timeout)
