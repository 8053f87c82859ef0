"""Client lookup and installation detection."""

import logging
from typing import Dict, List, Optional, Type, Union

from mcp_keeper.clients.base import ClientHandler
from mcp_keeper.clients.handlers import (
    ClaudeDesktopHandler,
    CursorHandler,
    VSCodeHandler,
    WindsurfHandler,
)
from mcp_keeper.config import config
from mcp_keeper.errors import UnknownClientError
from mcp_keeper.models import ClientType

logger = logging.getLogger(__name__)

HANDLERS: Dict[ClientType, Type[ClientHandler]] = {
    ClientType.CLAUDE_DESKTOP: ClaudeDesktopHandler,
    ClientType.CURSOR: CursorHandler,
    ClientType.VSCODE: VSCodeHandler,
    ClientType.WINDSURF: WindsurfHandler,
}


def get_all_client_types() -> List[ClientType]:
    """All supported client types."""
    return list(HANDLERS)


def parse_client_type(name: Union[str, ClientType]) -> ClientType:
    try:
        return ClientType(name)
    except ValueError:
        raise UnknownClientError(str(name)) from None


def get_client(client: Union[str, ClientType]) -> ClientHandler:
    """Handler instance for one client type."""
    return HANDLERS[parse_client_type(client)]()


def get_installed_clients(preferred: Optional[List[str]] = None) -> List[ClientHandler]:
    """Handlers for the clients that appear to be installed on this machine."""
    wanted = preferred if preferred is not None else config.discovery.preferred_clients
    handlers = []
    for client_type in get_all_client_types():
        if client_type.value not in wanted:
            continue
        handler = get_client(client_type)
        if handler.is_installed():
            handlers.append(handler)
        else:
            logger.debug(f"{handler.display_name} not detected at {handler.get_config_path()}")
    return handlers
