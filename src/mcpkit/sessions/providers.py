"""Context provisioning backends.

A context is an opaque identifier for a persistent browser profile. Remote
contexts live in Browserbase; local contexts name a Chromium ``user_data_dir``.
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import httpx

from ..config import BrowserbaseSettings
from ..exceptions import SessionProvisioningFailed

logger = logging.getLogger(__name__)

LOCAL_CONTEXT_PREFIX = "local-"


class ContextProvisioner(Protocol):
    """Creates new browser contexts."""

    async def create_context(self) -> str: ...


@dataclass
class RemoteSession:
    """A running Browserbase session."""

    id: str
    connect_url: str


class BrowserbaseClient:
    """Minimal async client for the Browserbase REST API."""

    def __init__(self, settings: BrowserbaseSettings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        api_key = self.settings.get_api_key()
        if not api_key:
            raise SessionProvisioningFailed("BROWSERBASE_API_KEY is not set")
        return httpx.AsyncClient(
            base_url=self.settings.base_url,
            headers={"X-BB-API-Key": api_key, "Content-Type": "application/json"},
            timeout=self.settings.timeout,
            transport=self._transport,
        )

    def _project_id(self) -> str:
        if not self.settings.project_id:
            raise SessionProvisioningFailed("Missing BROWSERBASE_PROJECT_ID in environment variables")
        return self.settings.project_id

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.post(path, json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise SessionProvisioningFailed(f"Browserbase {path} returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise SessionProvisioningFailed(f"Browserbase {path} failed: {e}") from e
        if not isinstance(data, dict):
            raise SessionProvisioningFailed(f"Browserbase {path} returned unexpected payload")
        return data

    async def create_context(self) -> str:
        """Create a persistent context and return its id."""
        data = await self._post("/v1/contexts", {"projectId": self._project_id()})
        context_id = data.get("id")
        if not isinstance(context_id, str) or not context_id:
            raise SessionProvisioningFailed("Browserbase context response has no id")
        logger.info(f"Created Browserbase context {context_id}")
        return context_id

    async def create_session(self, context_id: str | None = None) -> RemoteSession:
        """Start a remote browser, attached to ``context_id`` when given."""
        payload: dict[str, Any] = {
            "projectId": self._project_id(),
            "proxies": self.settings.proxies,
            "region": self.settings.region,
        }
        if context_id:
            payload["browserSettings"] = {"context": {"id": context_id, "persist": True}}

        data = await self._post("/v1/sessions", payload)
        session_id = data.get("id")
        connect_url = data.get("connectUrl")
        if not session_id or not connect_url:
            raise SessionProvisioningFailed("Browserbase session response is missing id or connectUrl")
        logger.info(f"Started Browserbase session {session_id}")
        return RemoteSession(id=session_id, connect_url=connect_url)

    async def get_debug_url(self, session_id: str) -> str:
        """Live viewer URL for a session; falls back to the dashboard page."""
        fallback = f"https://browserbase.com/sessions/{session_id}"
        try:
            async with self._client() as client:
                response = await client.get(f"/v1/sessions/{session_id}/debug")
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError, SessionProvisioningFailed) as e:
            logger.warning(f"Could not fetch debugger URL for {session_id}: {e}")
            return fallback
        return data.get("debuggerFullscreenUrl") or fallback

    async def release_session(self, session_id: str) -> None:
        """Ask Browserbase to end a session; failures are logged only."""
        try:
            await self._post(f"/v1/sessions/{session_id}", {"projectId": self._project_id(), "status": "REQUEST_RELEASE"})
        except SessionProvisioningFailed as e:
            logger.warning(f"Failed to release Browserbase session {session_id}: {e}")


class BrowserbaseProvisioner:
    """Provision contexts in Browserbase."""

    def __init__(self, client: BrowserbaseClient):
        self.client = client

    async def create_context(self) -> str:
        return await self.client.create_context()


class LocalProfileProvisioner:
    """Provision contexts as local Chromium profile directories."""

    def __init__(self, profiles_dir: Path):
        self.profiles_dir = profiles_dir

    async def create_context(self) -> str:
        context_id = f"{LOCAL_CONTEXT_PREFIX}{uuid.uuid4().hex}"
        try:
            self.profile_path(context_id).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SessionProvisioningFailed(f"Could not create local profile directory: {e}") from e
        logger.info(f"Created local browser profile {context_id}")
        return context_id

    def profile_path(self, context_id: str) -> Path:
        return self.profiles_dir / context_id


def is_local_context(context_id: str) -> bool:
    return context_id.startswith(LOCAL_CONTEXT_PREFIX)
