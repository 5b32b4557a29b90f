"""CLI interface for mcpkit."""

import asyncio
from pathlib import Path
from typing import NoReturn, Optional

import typer

from .config import CONFIG_FILE, settings
from .exceptions import MCPKitError
from .observability import setup_structured_logging
from .pipeline import PipelineResult, build_context_store, create_mcp_server
from .url import domain_of, normalize_url

app = typer.Typer(help="Generate MCP servers for websites with browser automation")
contexts_app = typer.Typer(help="Manage saved browser contexts per domain")
app.add_typer(contexts_app, name="contexts")

TRANSPORTS = ("stdio", "streamable-http", "sse")


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1)


def _domain_arg(value: str) -> str:
    return domain_of(normalize_url(value))


def _print_result(result: PipelineResult) -> None:
    typer.echo("")
    typer.echo(f"Discovered {len(result.catalog.actions)} actions on {result.domain}:")
    for action in result.catalog.actions:
        typer.echo(f"  - {action.name} - {action.description}")
    for issue in result.catalog.placeholder_issues():
        typer.echo(f"  ! {issue}")
    if result.auth is not None:
        typer.echo(f"Authentication: {result.auth.outcome.value}")
    if result.context_id:
        typer.echo(f"Browser context: {result.context_id}")
    if result.output_path:
        typer.echo(f"Catalog written to {result.output_path}")
        typer.echo(f"Run it with: mcpkit serve {result.output_path.parent}")


@app.callback()
def main_callback() -> None:
    setup_structured_logging(settings.server.logging_level)


@app.command()
def create(
    url: str = typer.Argument(..., help="Website URL (https://example.com, www.example.com or example.com)"),
    skip_auth: bool = typer.Option(False, "--skip-auth", help="Skip authentication entirely"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for the generated server"),
) -> None:
    """Explore a website and generate an MCP server catalog for it."""
    try:
        result = asyncio.run(create_mcp_server(url, skip_auth=skip_auth, output_dir=output_dir))
    except MCPKitError as e:
        _fail(e)
    else:
        _print_result(result)


@contexts_app.command("list")
def contexts_list() -> None:
    """List domains with a saved browser context."""
    store = build_context_store(settings)
    try:
        entries = [(domain, store.get(domain)) for domain in store.list()]
    except MCPKitError as e:
        _fail(e)

    if not entries:
        typer.echo("No saved contexts.")
        return
    for domain, context_id in entries:
        typer.echo(f"{domain}: {context_id}")


@contexts_app.command("show")
def contexts_show(domain: str = typer.Argument(..., help="Domain or URL")) -> None:
    """Show the saved context id for a domain."""
    try:
        key = _domain_arg(domain)
        context_id = build_context_store(settings).get(key)
    except MCPKitError as e:
        _fail(e)

    if context_id is None:
        _fail(MCPKitError(f"No saved context for {key}"))
    typer.echo(context_id)


@contexts_app.command("create")
def contexts_create(domain: str = typer.Argument(..., help="Domain or URL")) -> None:
    """Create (or reuse) a browser context for a domain."""
    try:
        key = _domain_arg(domain)
        context_id = asyncio.run(build_context_store(settings).get_or_create(key))
    except MCPKitError as e:
        _fail(e)
    typer.echo(f"{key}: {context_id}")


@contexts_app.command("delete")
def contexts_delete(domain: str = typer.Argument(..., help="Domain or URL")) -> None:
    """Forget the saved context for a domain."""
    try:
        key = _domain_arg(domain)
        deleted = build_context_store(settings).delete(key)
    except MCPKitError as e:
        _fail(e)

    if not deleted:
        _fail(MCPKitError(f"No saved context for {key}"))
    typer.echo(f"Deleted context for {key}")


@app.command()
def serve(
    path: Path = typer.Argument(Path("."), help="Catalog file or generated server directory"),
    transport: Optional[str] = typer.Option(None, "--transport", "-t", help="stdio, streamable-http or sse"),
) -> None:
    """Serve a generated catalog as an MCP server."""
    from .server import run_server, serve_catalog

    app_settings = settings
    if transport:
        if transport not in TRANSPORTS:
            _fail(MCPKitError(f"Unknown transport: {transport}. Use one of: {', '.join(TRANSPORTS)}"))
        app_settings = settings.model_copy(update={"server": settings.server.model_copy(update={"transport": transport})})

    try:
        server = serve_catalog(path, app_settings)
    except FileNotFoundError:
        _fail(MCPKitError(f"No catalog found at {path}"))
    except MCPKitError as e:
        _fail(e)

    run_server(server, app_settings)


@app.command()
def config() -> None:
    """Show current configuration."""
    typer.echo(f"Config file: {CONFIG_FILE}")
    typer.echo(f"Model: {settings.llm.model}")
    try:
        api_key = settings.llm.get_api_key_for_provider()
    except MCPKitError as e:
        _fail(e)
    typer.echo(f"API key: {'set' if api_key else '(missing)'}")
    typer.echo(f"Discovery model: {settings.agent.discovery_model or '(same)'}")
    typer.echo(f"Max Steps: {settings.agent.max_steps}")
    typer.echo(f"Browser: {'Browserbase' if settings.browserbase.enabled else 'local Chromium'}")
    typer.echo(f"Headless: {settings.browser.headless}")
    typer.echo(f"Persist context: {settings.browser.persist_context}")
    typer.echo(f"1Password: {'enabled' if settings.vault.enabled else 'disabled'}")
    typer.echo(f"Output dir: {settings.server.output_dir or '(cwd)'}")
    typer.echo(f"Transport: {settings.server.transport}")


if __name__ == "__main__":
    app()
