"""Generation pipeline: URL -> context -> authentication -> discovery -> catalog.

The coordinator owns the automation handle for the whole run and releases it
on every exit path. Authentication always completes (or is skipped) before
discovery starts, and discovery before anything is generated.
"""

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .auth import AuthOrchestrator, AuthResult, ConsoleOperator, OperatorChannel
from .browser import open_browser
from .config import AppSettings, settings
from .credentials import CredentialVault, get_vault
from .discovery import ActionCatalog, ActionDiscoverer
from .exceptions import SessionProvisioningFailed
from .generator import CatalogGenerator, CatalogWriter
from .observability import bind_run_context, clear_run_context, get_run_logger
from .providers import get_llm, get_llm_for_reference
from .sessions import BrowserbaseClient, BrowserbaseProvisioner, ContextStore, LocalProfileProvisioner
from .url import domain_of, normalize_url

if TYPE_CHECKING:
    from browser_use.llm.base import BaseChatModel

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one successful pipeline run."""

    url: str
    domain: str
    catalog: ActionCatalog
    auth: AuthResult | None  # None when authentication was skipped by flag
    context_id: str | None = None
    output_path: Path | None = None


def build_context_store(app_settings: AppSettings, browserbase: BrowserbaseClient | None = None) -> ContextStore:
    """Context store backed by Browserbase when configured, local profiles otherwise."""
    if app_settings.browserbase.enabled:
        client = browserbase or BrowserbaseClient(app_settings.browserbase)
        return ContextStore(provisioner=BrowserbaseProvisioner(client))
    return ContextStore(provisioner=LocalProfileProvisioner(app_settings.get_profiles_dir()))


def _resolve_llms(app_settings: AppSettings) -> tuple["BaseChatModel", "BaseChatModel | None"]:
    llm_settings = app_settings.llm
    llm = get_llm(llm_settings.provider, llm_settings.model_name, api_key=llm_settings.get_api_key_for_provider())
    agent_llm = None
    if app_settings.agent.discovery_model:
        agent_llm = get_llm_for_reference(app_settings.agent.discovery_model, llm_settings)
    return llm, agent_llm


async def _resolve_context(store: ContextStore, domain: str) -> str | None:
    try:
        return await store.get_or_create(domain)
    except SessionProvisioningFailed as e:
        logger.warning(f"Failed to create browser context for {domain}, continuing without a persistent context: {e}")
        return None


async def create_mcp_server(
    url: str,
    *,
    skip_auth: bool = False,
    output_dir: str | Path | None = None,
    app_settings: AppSettings | None = None,
    store: ContextStore | None = None,
    vault: CredentialVault | None = None,
    operator: OperatorChannel | None = None,
    generator: CatalogGenerator | None = None,
    browser_factory: Callable[..., Any] = open_browser,
) -> PipelineResult:
    """Run the full generation pipeline for one site.

    Args:
        url: Site URL in any accepted form (https://example.com, www.example.com, example.com)
        skip_auth: Bypass authentication entirely
        output_dir: Where to write the catalog (default: configured output dir)
        app_settings: Settings override (default: global settings)
        store: Context store (default: built from settings)
        vault: Credential vault (default: built from settings)
        operator: Human-in-the-loop channel (default: console)
        generator: Catalog consumer (default: CatalogWriter)
        browser_factory: Async context manager factory yielding a BrowserHandle

    Returns:
        PipelineResult with catalog, auth outcome and output path

    Raises:
        UnsupportedModelProvider / LLMProviderError: Model configuration is invalid
        InvalidUrlFormat: URL could not be normalized
        BrowserError: Browser could not be started
        AuthenticationError: Authentication failed or was aborted
        DiscoveryError: No valid catalog could be obtained
    """
    app_settings = app_settings or settings

    # Fail on model configuration before any session work
    llm, agent_llm = _resolve_llms(app_settings)

    normalized = str(normalize_url(url))
    domain = domain_of(normalized)

    run_id = str(uuid.uuid4())
    bind_run_context(run_id, domain)
    run_logger = get_run_logger()
    run_logger.info("pipeline_started", url=normalized, skip_auth=skip_auth)

    browserbase = BrowserbaseClient(app_settings.browserbase) if app_settings.browserbase.enabled else None

    try:
        context_id = None
        if app_settings.browser.persist_context:
            store = store or build_context_store(app_settings, browserbase)
            context_id = await _resolve_context(store, domain)

        async with browser_factory(app_settings, llm, agent_llm=agent_llm, context_id=context_id, browserbase=browserbase) as browser:
            auth_result = None
            if skip_auth:
                logger.info("Skipping authentication")
                await browser.goto(normalized)
            else:
                orchestrator = AuthOrchestrator(browser, vault or get_vault(app_settings.vault), operator or ConsoleOperator())
                auth_result = await orchestrator.authenticate(normalized, domain)
                run_logger.info("auth_completed", outcome=auth_result.outcome.value)

            discoverer = ActionDiscoverer(browser, max_steps=app_settings.agent.max_steps)
            catalog = await discoverer.discover(domain)

        run_logger.info("discovery_completed", actions=len(catalog.actions))
        for action in catalog.actions:
            logger.info(f"{action.name} - {action.description}")

        generator = generator or CatalogWriter(output_dir or app_settings.get_output_dir())
        output_path = generator.write(domain, normalized, catalog)

        return PipelineResult(
            url=normalized,
            domain=domain,
            catalog=catalog,
            auth=auth_result,
            context_id=context_id,
            output_path=output_path,
        )

    except Exception as e:
        run_logger.error("pipeline_failed", error=str(e), error_type=type(e).__name__)
        raise

    finally:
        clear_run_context()
