# src/recordalchemy/core/notifier.py
"""
RecordAlchemy Change Notification

Boundary between the relationship engine and whatever reactivity system
observes records. The engine calls ``notify(record, key)`` once per changed
relationship after a mutation completes and never looks at what happens next.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Protocol, runtime_checkable


class ChangeNotifier(Protocol):
    """Receives membership change signals from the engine."""

    def notify(self, record: Any, key: str) -> None:
        ...


@runtime_checkable
class SupportsChangeNotification(Protocol):
    """Capability implemented by records that accept property change signals."""

    def notify_property_change(self, key: str) -> None:
        ...


class NullNotifier:
    """Discards every notification."""

    def notify(self, record: Any, key: str) -> None:
        pass


class RecordChangeNotifier:
    """Forwards notifications to records supporting change notification."""

    def notify(self, record: Any, key: str) -> None:
        if isinstance(record, SupportsChangeNotification):
            record.notify_property_change(key)


class CallbackNotifier:
    """Forwards notifications to a plain callable."""

    def __init__(self, callback: Callable[[Any, str], None]):
        self.callback = callback

    def notify(self, record: Any, key: str) -> None:
        self.callback(record, key)


class CompositeNotifier:
    """Fans a notification out to several notifiers, in order."""

    def __init__(self, notifiers: Iterable[ChangeNotifier]):
        self.notifiers: List[ChangeNotifier] = list(notifiers)

    def notify(self, record: Any, key: str) -> None:
        for notifier in self.notifiers:
            notifier.notify(record, key)
