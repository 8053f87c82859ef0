"""Load client configs and apply sync actions to them."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from mcp_keeper.clients import ClientHandler, get_installed_clients
from mcp_keeper.errors import KeeperError
from mcp_keeper.models import ClientConfig, ClientType, SyncAction, SyncActionType

logger = logging.getLogger(__name__)


@dataclass
class ClientSnapshot:
    """Configs that could be read, plus the clients that were skipped."""
    configs: Dict[ClientType, ClientConfig] = field(default_factory=dict)
    handlers: Dict[ClientType, ClientHandler] = field(default_factory=dict)
    skipped: Dict[ClientType, str] = field(default_factory=dict)

    @property
    def partial(self) -> bool:
        return bool(self.skipped)


@dataclass
class SyncError:
    server: str
    client: ClientType
    error: str


@dataclass
class ApplyResult:
    """Outcome of applying a batch of sync actions."""
    applied: int = 0
    removed: int = 0
    updated: int = 0
    failed: int = 0
    errors: List[SyncError] = field(default_factory=list)


def get_client_configs(handlers: Optional[Iterable[ClientHandler]] = None) -> ClientSnapshot:
    """
    Read the config of every installed client.

    A client whose config cannot be read is left out of ``configs`` and
    recorded in ``skipped``; it does not stop the others from loading.
    """
    snapshot = ClientSnapshot()
    if handlers is None:
        handlers = get_installed_clients()

    for handler in handlers:
        try:
            snapshot.configs[handler.type] = handler.read_config()
            snapshot.handlers[handler.type] = handler
        except KeeperError as e:
            logger.warning(f"Could not read config for {handler.display_name}: {e}")
            snapshot.skipped[handler.type] = str(e)

    return snapshot


def apply_sync_actions(
    actions: Iterable[SyncAction],
    handlers: Mapping[ClientType, ClientHandler],
    update_changed: bool = False,
) -> ApplyResult:
    """
    Write ``add`` and ``remove`` actions to client configs.

    ``ok`` and ``extra`` actions are informational and never written;
    ``changed`` entries are overwritten only when ``update_changed`` is set.
    A failure on one client is recorded and the remaining actions still run.
    """
    result = ApplyResult()

    for action in actions:
        if action.action == SyncActionType.CHANGED and not update_changed:
            continue
        if action.action not in (SyncActionType.ADD, SyncActionType.REMOVE, SyncActionType.CHANGED):
            continue

        handler = handlers.get(action.client)
        if handler is None:
            result.failed += 1
            result.errors.append(SyncError(action.server, action.client, "No handler available for client"))
            continue

        try:
            if action.action == SyncActionType.REMOVE:
                handler.remove_server(action.server)
                result.removed += 1
            elif action.entry is None:
                result.failed += 1
                result.errors.append(SyncError(action.server, action.client, "Action has no entry to write"))
            else:
                handler.add_server(action.server, action.entry)
                if action.action == SyncActionType.ADD:
                    result.applied += 1
                else:
                    result.updated += 1
        except (KeeperError, OSError) as e:
            logger.warning(f"Failed to sync '{action.server}' on {handler.display_name}: {e}")
            result.failed += 1
            result.errors.append(SyncError(action.server, action.client, str(e)))

    return result
