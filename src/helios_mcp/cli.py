"""Command-line entry point for the Helios-9 MCP server."""
import asyncio
import logging
from typing import Annotated, Optional

import typer

from .config import Settings
from .errors import DuplicateToolError, RemoteFailure, UnauthorizedError
from .gateway import HeliosGateway
from .server import configure_logging, run_stdio

logger = logging.getLogger("helios-mcp.cli")

app = typer.Typer(help="Helios-9 MCP server: projects, tasks and documents for AI assistants.")


def _settings(**overrides) -> Settings:
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


async def _serve(gateway: HeliosGateway) -> None:
    try:
        context = await gateway.authenticate()
    except UnauthorizedError as e:
        logger.error(f"Authentication failed at startup: {e.message}")
        await gateway.aclose()
        raise typer.Exit(code=1) from e
    except RemoteFailure as e:
        logger.warning(f"Could not verify API key at startup ({e.message}); retrying on first tool call")
    else:
        if context.provisional:
            logger.info("Service key accepted; identity will be verified on first data call")
        else:
            logger.info(f"Authenticated as user {context.subject_id}")

    logger.info("MCP Server started on stdio")
    await run_stdio(gateway)


ApiKeyOption = Annotated[Optional[str], typer.Option(help="Helios-9 API key. Defaults to HELIOS_API_KEY.")]
ApiUrlOption = Annotated[Optional[str], typer.Option(help="Helios-9 API base URL. Defaults to HELIOS_API_URL.")]
LogLevelOption = Annotated[Optional[str], typer.Option(help="Logging level (DEBUG, INFO, WARNING, ERROR).")]
LazyServiceKeysOption = Annotated[
    Optional[bool],
    typer.Option(
        "--lazy-service-keys/--eager-service-keys",
        help="Accept service keys without a network check until the first data call.",
    ),
]


@app.callback(invoke_without_command=True)
def default(
    ctx: typer.Context,
    api_key: ApiKeyOption = None,
    api_url: ApiUrlOption = None,
    log_level: LogLevelOption = None,
    lazy_service_keys: LazyServiceKeysOption = None,
) -> None:
    """Run the stdio server when no command is given."""
    # options given before a subcommand act as defaults for it
    ctx.obj = {"api_key": api_key, "api_url": api_url, "log_level": log_level, "lazy_service_keys": lazy_service_keys}
    if ctx.invoked_subcommand is None:
        serve(ctx)


@app.command()
def serve(
    ctx: typer.Context,
    api_key: ApiKeyOption = None,
    api_url: ApiUrlOption = None,
    log_level: LogLevelOption = None,
    lazy_service_keys: LazyServiceKeysOption = None,
) -> None:
    """Serve MCP over stdio."""
    options = {"api_key": api_key, "api_url": api_url, "log_level": log_level, "lazy_service_keys": lazy_service_keys}
    overrides = {**(ctx.obj or {}), **{key: value for key, value in options.items() if value is not None}}
    settings = _settings(**overrides)
    configure_logging(settings.log_level)

    if not settings.api_key:
        logger.error("HELIOS_API_KEY is required. Set it in the environment or pass --api-key.")
        raise typer.Exit(code=1)

    try:
        gateway = HeliosGateway.create(settings)
    except DuplicateToolError as e:
        logger.error(f"Invalid tool catalogue: {e.message}")
        raise typer.Exit(code=1) from e

    logger.info(f"MCP Server starting with API URL: {settings.api_url}")
    asyncio.run(_serve(gateway))


@app.command()
def tools() -> None:
    """List the tools this server exposes."""
    gateway = HeliosGateway.create(_settings())
    try:
        for tool in gateway.list_tools():
            typer.echo(f"{tool.name:32} {tool.description.split('. ')[0]}")
    finally:
        asyncio.run(gateway.aclose())


def main() -> None:
    app()
