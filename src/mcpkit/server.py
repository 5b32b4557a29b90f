"""MCP server exposing a site's discovered actions as tools.

Each catalog action becomes one tool. A call renders the action's steps with
the given arguments and runs them with a browser-use agent on a fresh browser
attached to the domain's saved context, so the login from ``mcpkit create``
is reused.
"""

import inspect
import json
import keyword
import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .browser import open_browser
from .config import AppSettings, settings
from .discovery.models import PLACEHOLDER_PATTERN, ActionCatalog, ActionDescriptor, ActionParameter
from .exceptions import SessionProvisioningFailed
from .generator import load_catalog
from .observability import setup_structured_logging
from .providers import get_llm
from .sessions import ContextStore
from .utils import domain_slug

logger = logging.getLogger(__name__)

PARAMETER_TYPES: dict[str, type] = {
    "string": str,
    "number": float,
    "boolean": bool,
}


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_steps(action: ActionDescriptor, arguments: dict[str, Any]) -> list[str]:
    """Substitute ``{param}`` placeholders in the action's steps.

    Placeholders without a provided value are left as they are.
    """

    def substitute(match: re.Match[str]) -> str:
        value = arguments.get(match.group(1).strip())
        if value is None:
            return match.group(0)
        return _format_value(value)

    return [PLACEHOLDER_PATTERN.sub(substitute, step) for step in action.steps]


def build_task(action: ActionDescriptor, url: str, arguments: dict[str, Any]) -> str:
    """Agent task for one tool call."""
    steps = render_steps(action, arguments)
    lines = [
        f"Start at {url}.",
        f'Perform the action "{action.name}": {action.description}',
        "",
        "Steps:",
    ]
    lines.extend(f"{i}. {step}" for i, step in enumerate(steps, 1))

    missing = [p.name for p in action.parameters if arguments.get(p.name) is None]
    if missing:
        names = ", ".join(f"{{{name}}}" for name in missing)
        lines += ["", f"No value was provided for {names}; skip the parts of the steps that need them."]

    if action.extraction_schema:
        lines += [
            "",
            "When done, return the extracted data as JSON with this structure:",
            json.dumps(action.extraction_schema, indent=2),
        ]
    else:
        lines += ["", "When done, briefly describe the result."]
    return "\n".join(lines)


def _is_exposable(parameter: ActionParameter) -> bool:
    return parameter.name.isidentifier() and not keyword.iskeyword(parameter.name)


def _tool_signature(action: ActionDescriptor) -> tuple[inspect.Signature, dict[str, Any]]:
    # Required parameters listed first
    ordered = sorted(action.parameters, key=lambda p: not p.is_required)
    params = []
    annotations: dict[str, Any] = {}
    for p in ordered:
        annotation: Any = PARAMETER_TYPES[p.type]
        default: Any = inspect.Parameter.empty
        if not p.is_required:
            annotation = annotation | None
            default = None
        params.append(inspect.Parameter(p.name, inspect.Parameter.KEYWORD_ONLY, default=default, annotation=annotation))
        annotations[p.name] = annotation
    annotations["return"] = str
    return inspect.Signature(params, return_annotation=str), annotations


def _tool_description(action: ActionDescriptor) -> str:
    lines = [action.description]
    if action.parameters:
        lines.append("")
        lines.append("Args:")
        lines.extend(f"    {p.name}: {p.description}" for p in action.parameters)
    return "\n".join(lines)


def build_server(
    domain: str,
    url: str,
    catalog: ActionCatalog,
    *,
    context_id: str | None = None,
    app_settings: AppSettings | None = None,
    browser_factory: Callable[..., Any] = open_browser,
) -> FastMCP:
    """Create an MCP server with one tool per catalog action."""
    app_settings = app_settings or settings
    server = FastMCP(f"{domain_slug(domain)}_mcp_server")

    async def run_action(action: ActionDescriptor, arguments: dict[str, Any]) -> str:
        logger.info(f"Running {action.name} on {domain}")
        try:
            llm = get_llm(
                provider=app_settings.llm.provider,
                model=app_settings.llm.model_name,
                api_key=app_settings.llm.get_api_key_for_provider(),
            )
            async with browser_factory(app_settings, llm, context_id=context_id) as browser:
                await browser.goto(url)
                result = await browser.run_agent(build_task(action, url, arguments), max_steps=app_settings.agent.max_steps)
        except Exception as e:
            logger.error(f"Action {action.name} failed: {e}")
            return f"Error: {e}"
        return result or "Action completed without explicit result."

    def make_tool(action: ActionDescriptor) -> Callable[..., Any]:
        async def tool(**kwargs: Any) -> str:
            return await run_action(action, kwargs)

        signature, annotations = _tool_signature(action)
        tool.__name__ = action.name
        tool.__signature__ = signature  # type: ignore[attr-defined]
        tool.__annotations__ = annotations
        return tool

    registered = 0
    for action in catalog.actions:
        unusable = [p.name for p in action.parameters if not _is_exposable(p)]
        if unusable:
            logger.warning(f"Skipping {action.name}: parameter names {unusable} are not valid identifiers")
            continue
        server.tool(name=action.name, description=_tool_description(action))(make_tool(action))
        registered += 1

    logger.info(f"Registered {registered} actions for {domain}")
    return server


def serve_catalog(path: str | Path, app_settings: AppSettings | None = None) -> FastMCP:
    """Load a catalog file and build its server, reusing the domain's saved context."""
    app_settings = app_settings or settings
    domain, url, catalog = load_catalog(path)
    context_id = None
    if app_settings.browser.persist_context:
        try:
            context_id = ContextStore().get(domain)
        except SessionProvisioningFailed as e:
            logger.warning(f"Ignoring saved contexts: {e}")
    if context_id:
        logger.info(f"Using saved context {context_id} for {domain}")
    return build_server(domain, url, catalog, context_id=context_id, app_settings=app_settings)


def run_server(server: FastMCP, app_settings: AppSettings | None = None) -> None:
    """Run `server` on the configured transport."""
    app_settings = app_settings or settings
    transport = app_settings.server.transport

    if transport == "stdio":
        server.run(transport="stdio")
    elif transport in ("streamable-http", "sse"):
        logger.info(f"HTTP server at http://{app_settings.server.host}:{app_settings.server.port}/mcp")
        server.run(transport=transport, host=app_settings.server.host, port=app_settings.server.port)
    else:
        raise ValueError(f"Unknown transport: {transport}")


def main() -> None:
    """Entry point: serve the catalog in the current directory."""
    setup_structured_logging(settings.server.logging_level)
    run_server(serve_catalog(Path.cwd()))


if __name__ == "__main__":
    main()
