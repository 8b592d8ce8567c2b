"""Event declarations.

An interface declares an event with ``event(HandlerType)``. The catalog turns
each event into two operations, ``add_<name>`` and ``remove_<name>``. On a
concrete class the same declaration gives every instance its own
``EventHook``; on an anonymous proxy the attribute is an ``EventAccessor``
that routes subscriptions through the dispatcher.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, Any

from anonymous.signature import UNSPECIFIED, ParameterDescriptor, ParameterMode, Signature

if TYPE_CHECKING:
    from anonymous.catalog import Operation
    from anonymous.dispatch import CallDispatcher

Handler = Callable[..., Any]


class event:  # noqa: N801 - used like ``property``
    """Declare an event carrying handlers of ``handler_type``."""

    def __init__(self, handler_type: Any = UNSPECIFIED, doc: str | None = None) -> None:
        self.handler_type = handler_type
        self.name: str | None = None
        self.owner: type | None = None
        self.__doc__ = doc

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name
        self.owner = owner

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        hook = EventHook(self.name or "event")
        # Non-data descriptor: the instance attribute shadows us from now on.
        instance.__dict__[self.name] = hook
        return hook

    @property
    def handler_signature(self) -> Signature:
        """Signature shared by the add and remove operations."""
        return Signature(
            parameters=(
                ParameterDescriptor(
                    name="handler", type=self.handler_type, mode=ParameterMode.IN
                ),
            ),
            return_type=type(None),
        )

    def __repr__(self) -> str:
        owner = self.owner.__qualname__ if self.owner else "?"
        return f"<event {owner}.{self.name}>"


class EventHook:
    """Per-instance handler list for a concrete event."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        # Removing an unknown handler is a no-op, like multicast delegates.
        if handler in self._handlers:
            self._handlers.remove(handler)

    def fire(self, *args: Any, **kwargs: Any) -> None:
        """Call every subscribed handler in subscription order."""
        for handler in list(self._handlers):
            handler(*args, **kwargs)

    def __iadd__(self, handler: Handler) -> EventHook:
        self.subscribe(handler)
        return self

    def __isub__(self, handler: Handler) -> EventHook:
        self.unsubscribe(handler)
        return self

    def __len__(self) -> int:
        return len(self._handlers)

    def __iter__(self) -> Iterator[Handler]:
        return iter(list(self._handlers))

    def __contains__(self, handler: object) -> bool:
        return handler in self._handlers

    def __repr__(self) -> str:
        return f"<EventHook {self.name} handlers={len(self._handlers)}>"


class EventAccessor:
    """Event surface of an anonymous proxy."""

    def __init__(
        self,
        dispatcher: CallDispatcher,
        name: str,
        add: Operation | None,
        remove: Operation | None,
    ) -> None:
        self.name = name
        self._dispatcher = dispatcher
        self._add = add
        self._remove = remove

    def subscribe(self, handler: Handler) -> None:
        if self._add is None:
            raise AttributeError(f"event {self.name} does not support subscription")
        self._dispatcher.invoke(self._add, (handler,))

    def unsubscribe(self, handler: Handler) -> None:
        if self._remove is None:
            raise AttributeError(f"event {self.name} does not support unsubscription")
        self._dispatcher.invoke(self._remove, (handler,))

    def __iadd__(self, handler: Handler) -> EventAccessor:
        self.subscribe(handler)
        return self

    def __isub__(self, handler: Handler) -> EventAccessor:
        self.unsubscribe(handler)
        return self

    def __repr__(self) -> str:
        return f"<EventAccessor {self.name}>"
