"""Action registration and dispatch."""
import logging
from types import MappingProxyType
from typing import Any, Dict, Mapping

from app.actions.types import ActionContext, ActionHandler
from app.core.errors import UnknownActionError

logger = logging.getLogger(__name__)


class ActionRegistry:
    """
    Mutable builder for the action table.

    Used once at startup; ``freeze()`` produces the read-only dispatcher that
    request handling receives.
    """

    def __init__(self):
        self._handlers: Dict[str, ActionHandler] = {}

    def register(self, key: str, handler: ActionHandler) -> None:
        if key in self._handlers:
            logger.debug("Replacing handler for action %s", key)
        self._handlers[key] = handler

    def freeze(self) -> "ActionDispatcher":
        return ActionDispatcher(dict(self._handlers))


class ActionDispatcher:
    """Immutable map from action key to handler."""

    def __init__(self, handlers: Mapping[str, ActionHandler]):
        self._handlers = MappingProxyType(dict(handlers))

    @property
    def keys(self) -> frozenset:
        return frozenset(self._handlers)

    def has(self, key: str) -> bool:
        return key in self._handlers

    def dispatch(self, key: str, payload: Any, ctx: ActionContext) -> Any:
        """
        Invoke the handler registered for ``key``.

        Raises:
            UnknownActionError: If no handler is registered
        """
        handler = self._handlers.get(key)
        if handler is None:
            raise UnknownActionError(key)
        return handler(payload, ctx)
