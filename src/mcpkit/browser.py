"""Explicitly owned automation handle over one browser-use session.

The handle bundles the browser session with the LLM used for natural-language
actions and structured extraction. It is created by ``open_browser()`` and is
only valid inside that ``async with`` block; the browser (and the remote
Browserbase session, if any) is shut down on every exit path.

Page-level operations use session-scoped CDP commands, as browser-use's own
watchdogs can interfere with unscoped navigation.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, TypeVar

import anyio
from browser_use import Agent, BrowserProfile, BrowserSession
from pydantic import BaseModel

from .config import AppSettings
from .exceptions import BrowserError, SessionProvisioningFailed
from .sessions import BrowserbaseClient, RemoteSession, is_local_context

if TYPE_CHECKING:
    from browser_use.browser.session import CDPSession
    from browser_use.llm.base import BaseChatModel

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

PAGE_TEXT_LIMIT = 20_000

EXTRACTION_SYSTEM_PROMPT = """You extract structured information from the current web page.
Answer strictly from the page content and URL you are given. If something is not visible
on the page, leave the corresponding optional field empty instead of guessing."""

# Resolves once the document is loaded and no new resources appeared for `quietMs`.
_NETWORK_QUIET_JS = """
new Promise((resolve) => {
  const quietMs = %d;
  let last = performance.getEntriesByType('resource').length;
  let stableSince = Date.now();
  const tick = () => {
    const now = performance.getEntriesByType('resource').length;
    if (now !== last) { last = now; stableSince = Date.now(); }
    if (document.readyState === 'complete' && Date.now() - stableSince >= quietMs) { resolve(true); return; }
    setTimeout(tick, 100);
  };
  tick();
})
"""


class BrowserHandle:
    """Navigate, act, extract and explore on one live browser session."""

    def __init__(
        self,
        session: BrowserSession,
        llm: "BaseChatModel",
        *,
        agent_llm: "BaseChatModel | None" = None,
        viewer_url: str | None = None,
        action_max_steps: int = 5,
        use_vision: bool = True,
    ):
        self.session = session
        self.llm = llm
        self.agent_llm = agent_llm or llm
        self.viewer_url = viewer_url
        self.action_max_steps = action_max_steps
        self.use_vision = use_vision

    async def _cdp(self) -> "CDPSession":
        """Get a CDP session with the Page and Runtime domains enabled."""
        cdp_session = await self.session.get_or_create_cdp_session()

        try:
            await self.session.cdp_client.send.Page.enable(session_id=cdp_session.session_id)
        except Exception as e:
            # May already be enabled by session manager
            logger.debug(f"Page.enable: {e}")

        try:
            await self.session.cdp_client.send.Runtime.enable(session_id=cdp_session.session_id)
        except Exception as e:
            logger.debug(f"Runtime.enable: {e}")

        return cdp_session

    async def evaluate(self, expression: str, timeout: float = 30.0) -> Any:
        """Evaluate a JavaScript expression in the page and return its value."""
        cdp_session = await self._cdp()
        result = await self.session.cdp_client.send.Runtime.evaluate(
            params={
                "expression": expression,
                "awaitPromise": True,
                "returnByValue": True,
                "timeout": int(timeout * 1000),
            },
            session_id=cdp_session.session_id,
        )
        if result.get("exceptionDetails"):
            raise BrowserError(f"Page script failed: {result['exceptionDetails'].get('text', 'unknown error')}")
        return result.get("result", {}).get("value")

    async def goto(self, url: str) -> None:
        """Navigate the active tab to `url` and wait briefly for it to load."""
        cdp_session = await self._cdp()
        logger.debug(f"Navigating to {url}")
        nav_result = await self.session.cdp_client.send.Page.navigate(
            params={"url": url, "transitionType": "address_bar"},
            session_id=cdp_session.session_id,
        )
        if nav_result.get("errorText"):
            raise BrowserError(f"Navigation to {url} failed: {nav_result['errorText']}")
        await self.wait_for_network_idle(timeout=10.0)

    async def current_url(self) -> str:
        """Current URL of the active tab, or an empty string if unknown."""
        try:
            cdp_session = await self._cdp()
            result = await self.session.cdp_client.send.Page.getFrameTree(session_id=cdp_session.session_id)
        except Exception as e:
            logger.debug(f"Could not get frame tree: {e}")
            return ""
        return result.get("frameTree", {}).get("frame", {}).get("url", "") or ""

    async def page_text(self, limit: int = PAGE_TEXT_LIMIT) -> str:
        """Visible text of the page, truncated to `limit` characters."""
        text = await self.evaluate("document.body ? document.body.innerText : ''")
        return str(text or "")[:limit]

    async def wait_for_network_idle(self, timeout: float, quiet_ms: int = 500) -> None:
        """Wait until the page looks idle. Best effort: timeouts and errors are swallowed."""
        try:
            with anyio.fail_after(timeout):
                await self.evaluate(_NETWORK_QUIET_JS % quiet_ms, timeout=timeout)
        except TimeoutError:
            logger.debug(f"Network idle wait timed out after {timeout}s")
        except Exception as e:
            logger.debug(f"Network idle wait failed: {e}")

    async def act(self, instruction: str, sensitive_data: dict[str, str] | None = None) -> None:
        """Perform one natural-language action on the current page.

        Values in `sensitive_data` are referenced as ``<secret>name</secret>`` in the
        instruction and are substituted by browser-use without reaching the model.

        Raises:
            BrowserError: If the agent did not complete the action.
        """
        logger.info(f"Acting: {instruction}")
        try:
            agent = Agent(
                task=instruction,
                llm=self.llm,
                browser_session=self.session,
                use_vision=self.use_vision,
                sensitive_data=sensitive_data,
            )
            history = await agent.run(max_steps=self.action_max_steps)
        except Exception as e:
            raise BrowserError(f"Action failed: {e}") from e

        if not history.is_done():
            raise BrowserError(f"Action did not complete within {self.action_max_steps} steps: {instruction}")

    async def extract(self, instruction: str, schema: type[T]) -> T:
        """Ask the LLM to extract `schema` from the current page.

        Raises:
            BrowserError: If the page could not be read.
            ValidationError: If the model output does not match the schema.
        """
        from browser_use.llm.messages import SystemMessage, UserMessage

        url = await self.current_url()
        text = await self.page_text()
        prompt = f"""{instruction}

PAGE URL:
{url}

PAGE CONTENT:
{text}
"""
        response = await self.llm.ainvoke(
            [SystemMessage(content=EXTRACTION_SYSTEM_PROMPT), UserMessage(content=prompt)],
            output_format=schema,
        )
        completion = response.completion
        if isinstance(completion, schema):
            return completion
        if isinstance(completion, str):
            return schema.model_validate_json(completion)
        return schema.model_validate(completion)

    async def run_agent(
        self,
        task: str,
        *,
        max_steps: int,
        system_message: str | None = None,
    ) -> str | None:
        """Run an autonomous multi-step agent and return its final message."""
        agent = Agent(
            task=task,
            llm=self.agent_llm,
            browser_session=self.session,
            extend_system_message=system_message,
            use_vision=self.use_vision,
        )
        history = await agent.run(max_steps=max_steps)
        return history.final_result()


async def _start_remote(client: BrowserbaseClient, context_id: str | None) -> tuple[RemoteSession, str]:
    try:
        remote = await client.create_session(context_id)
    except SessionProvisioningFailed as e:
        raise BrowserError(f"Could not start remote browser: {e}") from e
    viewer_url = await client.get_debug_url(remote.id)
    return remote, viewer_url


@asynccontextmanager
async def open_browser(
    app_settings: AppSettings,
    llm: "BaseChatModel",
    *,
    agent_llm: "BaseChatModel | None" = None,
    context_id: str | None = None,
    browserbase: BrowserbaseClient | None = None,
) -> AsyncIterator[BrowserHandle]:
    """Start a browser attached to `context_id` and yield a handle to it.

    Remote (Browserbase) when an API key is configured, local Chromium otherwise.
    Local context ids map to a persistent ``user_data_dir``.

    Raises:
        BrowserError: If the browser could not be started.
    """
    remote: RemoteSession | None = None
    viewer_url: str | None = None
    client: BrowserbaseClient | None = None

    if app_settings.browserbase.enabled and not (context_id and is_local_context(context_id)):
        client = browserbase or BrowserbaseClient(app_settings.browserbase)
        remote, viewer_url = await _start_remote(client, context_id)
        profile = BrowserProfile(cdp_url=remote.connect_url, keep_alive=True)
    else:
        user_data_dir = None
        if context_id and is_local_context(context_id):
            user_data_dir = app_settings.get_profiles_dir() / context_id
        elif context_id:
            logger.warning(f"Context {context_id} needs Browserbase; starting without it")
        profile = BrowserProfile(headless=app_settings.browser.headless, user_data_dir=user_data_dir, keep_alive=True)

    session = BrowserSession(browser_profile=profile)
    try:
        await session.start()
    except Exception as e:
        if client and remote:
            await client.release_session(remote.id)
        raise BrowserError(f"Failed to start browser: {e}") from e

    handle = BrowserHandle(
        session,
        llm,
        agent_llm=agent_llm,
        viewer_url=viewer_url,
        action_max_steps=app_settings.agent.action_max_steps,
        use_vision=app_settings.agent.use_vision,
    )
    try:
        yield handle
    finally:
        try:
            await session.kill()
        except Exception as e:
            logger.warning(f"Error while closing browser: {e}")
        if client and remote:
            await client.release_session(remote.id)
