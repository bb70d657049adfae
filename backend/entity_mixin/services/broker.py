"""
In-process service broker.

Services register under a name and are called with "<service>.<action>".
Every call gets a Context that carries the caller metadata, so a handler can
call sibling services on behalf of the same caller.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol

from entity_mixin.core.errors import ActionNotFoundError
from entity_mixin.core.security import permission_granted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParamRule:
    """Declared parameter of an action."""
    type: str = "any"
    optional: bool = False


@dataclass
class ActionSchema:
    """Name, parameters and permission tag of an action."""
    name: str
    params: dict[str, ParamRule] = field(default_factory=dict)
    permission: Optional[str] = None


class Service(Protocol):
    name: str
    broker: Optional["ServiceBroker"]

    def action_schema(self, action_name: str) -> ActionSchema: ...

    async def call_action(self, action_name: str, ctx: "Context") -> Any: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...


class Context:
    """Execution context of one action call."""

    def __init__(
        self,
        broker: "ServiceBroker",
        action: Optional[ActionSchema] = None,
        params: Optional[dict] = None,
        meta: Optional[dict] = None,
    ):
        self.broker = broker
        self.action = action
        self.params = params if params is not None else {}
        self.meta = meta if meta is not None else {}

    @property
    def permissions(self) -> Optional[list[str]]:
        """Granted permission tags. None marks a trusted internal call."""
        return self.meta.get("permissions")

    def has_permission(self, tag: str) -> bool:
        if self.permissions is None:
            return True
        return permission_granted(self.permissions, tag)

    async def call(self, action_name: str, params: Optional[dict] = None) -> Any:
        """Call another action with this caller's metadata."""
        return await self.broker.call(action_name, params, meta=self.meta)


class ServiceBroker:
    """Registry and dispatcher for local services."""

    def __init__(self):
        self.services: dict[str, Service] = {}
        self.started = False

    def register(self, service: Service) -> Service:
        if service.name in self.services:
            raise ValueError(f"Service '{service.name}' is already registered")
        service.broker = self
        self.services[service.name] = service
        return service

    def get_service(self, name: str) -> Service:
        try:
            return self.services[name]
        except KeyError:
            raise ActionNotFoundError(name) from None

    async def call(
        self,
        action_name: str,
        params: Optional[dict] = None,
        meta: Optional[dict] = None,
    ) -> Any:
        """
        Dispatch "<service>.<action>" to the owning service.

        Args:
            action_name: Fully qualified action name
            params: Action parameters
            meta: Caller metadata, e.g. {"permissions": [...]}. Calls without
                meta are trusted internal calls.
        """
        service_name, _, action = action_name.rpartition(".")
        if not service_name:
            raise ActionNotFoundError(action_name)
        service = self.get_service(service_name)
        ctx = Context(
            broker=self,
            action=service.action_schema(action),
            params=dict(params or {}),
            meta=meta,
        )
        return await service.call_action(action, ctx)

    async def start(self) -> None:
        """Start services in registration order."""
        for service in self.services.values():
            await service.start()
        self.started = True
        logger.info(f"Broker started with {len(self.services)} services")

    async def stop(self) -> None:
        """Stop services in reverse registration order."""
        for service in reversed(list(self.services.values())):
            await service.stop()
        self.started = False
