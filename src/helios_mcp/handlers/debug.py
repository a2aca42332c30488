"""Environment diagnostics."""
import logging
import os
import platform

from .. import __version__
from ..api_client import RemoteDataClient
from ..errors import GatewayError
from ..models import utc_now
from ..schemas import NoArguments

logger = logging.getLogger("helios-mcp.handlers.debug")

KEY_PREFIX_LENGTH = 8


def mask_key(api_key):
    """First few characters of a key followed by an ellipsis, or ``NOT SET``."""
    if not api_key:
        return "NOT SET"
    return api_key[:KEY_PREFIX_LENGTH] + "..."


async def handle_debug_environment(args: NoArguments, client: RemoteDataClient) -> dict:
    settings = client.session.settings
    environment = {
        "api_url": settings.api_url,
        "api_key_prefix": mask_key(settings.api_key),
        "api_key_length": len(settings.api_key or ""),
        "service_key": settings.is_service_key(settings.api_key),
        "lazy_service_keys": settings.lazy_service_keys,
        "request_timeout": settings.request_timeout,
        "log_level": settings.log_level,
        "cwd": os.getcwd(),
        "python_version": platform.python_version(),
        "server_version": __version__,
    }

    try:
        projects = await client.list_projects(limit=1)
    except GatewayError as e:
        api_test = f"{e.kind}: {e.message}"
    else:
        api_test = f"OK - {len(projects)} project(s) returned"

    logger.info(f"Debug environment API check: {api_test}")
    return {"environment": environment, "api_test": api_test, "timestamp": utc_now()}
