"""Lifecycle notifications published by the capture session."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, List, Type, TypeVar, Union, cast


@dataclass(slots=True)
class CaptureEvent:
    """Base class for capture session notifications."""


@dataclass(slots=True)
class AudioChunkEvent(CaptureEvent):
    """One chunk of captured audio (``audio``)."""

    buffer: bytes
    timestamp: float


@dataclass(slots=True)
class CaptureErrorEvent(CaptureEvent):
    """A capture failure (``error``)."""

    error: Exception


@dataclass(slots=True)
class CaptureStoppedEvent(CaptureEvent):
    """The session went from active to idle (``stopped``)."""


EVENT_TYPES: dict[str, Type[CaptureEvent]] = {
    "audio": AudioChunkEvent,
    "error": CaptureErrorEvent,
    "stopped": CaptureStoppedEvent,
}

E = TypeVar("E", bound=CaptureEvent)
EventHandler = Callable[[E], Any]
EventKey = Union[str, Type[CaptureEvent]]


def resolve_event_type(event: EventKey) -> Type[CaptureEvent]:
    """Map an event name (``"audio"``, ``"error"``, ``"stopped"``) or class to its class."""

    if isinstance(event, str):
        try:
            return EVENT_TYPES[event]
        except KeyError:
            valid = ", ".join(sorted(EVENT_TYPES))
            raise KeyError(f"Unknown capture event {event!r}; expected one of: {valid}") from None
    # emit() dispatches on the exact event class, so only concrete events can be subscribed.
    if event in EVENT_TYPES.values():
        return event
    raise TypeError(f"Expected an event name or one of the capture event classes, got {event!r}")


class _Subscription:
    __slots__ = ("handler",)

    def __init__(self, handler: EventHandler[Any]):
        self.handler = handler


class Unsubscribe:
    """Callable token returned by :meth:`CaptureEventEmitter.subscribe`."""

    def __init__(
        self,
        emitter: CaptureEventEmitter,
        event_type: Type[CaptureEvent],
        subscription: _Subscription,
    ):
        self._emitter = emitter
        self._event_type = event_type
        self._subscription = subscription
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def __call__(self) -> bool:
        if not self._active:
            return False
        self._active = False
        return self._emitter._remove(self._event_type, self._subscription)


class CaptureEventEmitter:
    """Synchronous observer registry; handlers run in registration order."""

    def __init__(self) -> None:
        self._subscribers: DefaultDict[Type[CaptureEvent], List[_Subscription]] = defaultdict(
            list
        )
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event: EventKey, handler: EventHandler[E]) -> Unsubscribe:
        """Register ``handler`` to run whenever ``event`` is emitted."""

        event_type = resolve_event_type(event)
        subscription = _Subscription(cast(EventHandler[Any], handler))
        self._subscribers[event_type].append(subscription)
        return Unsubscribe(self, event_type, subscription)

    def unsubscribe(self, event: EventKey, handler: EventHandler[E]) -> bool:
        """Remove the earliest registration of ``handler``; return False when absent."""

        event_type = resolve_event_type(event)
        for subscription in self._subscribers.get(event_type, ()):
            if subscription.handler == handler:
                return self._remove(event_type, subscription)
        return False

    def emit(self, event: CaptureEvent) -> int:
        """Deliver ``event`` to every current subscriber and return how many ran."""

        subscriptions = list(self._subscribers.get(type(event), ()))
        for subscription in subscriptions:
            try:
                subscription.handler(event)
            except Exception:
                self._logger.exception(
                    "CaptureEventEmitter handler %s raised while processing %s",
                    getattr(subscription.handler, "__qualname__", repr(subscription.handler)),
                    type(event).__name__,
                )
        return len(subscriptions)

    def listener_count(self, event: EventKey) -> int:
        return len(self._subscribers.get(resolve_event_type(event), ()))

    def clear(self) -> None:
        self._subscribers.clear()

    def _remove(self, event_type: Type[CaptureEvent], subscription: _Subscription) -> bool:
        subscriptions = self._subscribers.get(event_type)
        if not subscriptions:
            return False
        for index, candidate in enumerate(subscriptions):
            if candidate is subscription:
                del subscriptions[index]
                return True
        return False


__all__ = [
    "AudioChunkEvent",
    "CaptureErrorEvent",
    "CaptureEvent",
    "CaptureEventEmitter",
    "CaptureStoppedEvent",
    "EVENT_TYPES",
    "EventHandler",
    "EventKey",
    "Unsubscribe",
    "resolve_event_type",
]
