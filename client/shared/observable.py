"""Change notification for state read by the renderer.

Phase components expose plain attributes. The renderer subscribes once and
is told the name of every field that changed, then reads the new value.
"""

import logging
from collections.abc import Callable
from typing import Any, ClassVar

logger = logging.getLogger(__name__)

# Callback type: (source, field_name) -> None
ChangeCallback = Callable[[Any, str], None]


class Observable:
    """Base class for state objects that notify subscribers on mutation.

    derived_fields maps a stored field to computed properties that depend on
    it; a change to the stored field also notifies those names.
    """

    derived_fields: ClassVar[dict[str, tuple[str, ...]]] = {}

    def __init__(self) -> None:
        self._subscribers: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a change callback. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, *names: str) -> None:
        expanded: list[str] = []
        for name in names:
            for item in (name, *self.derived_fields.get(name, ())):
                if item not in expanded:
                    expanded.append(item)
        for name in expanded:
            for callback in list(self._subscribers):
                try:
                    callback(self, name)
                except Exception:
                    # A broken renderer must not corrupt protocol state.
                    logger.exception("change subscriber failed for %s.%s", type(self).__name__, name)


class ObservableField:
    """Descriptor storing a value on the instance and notifying on change.

    Assigning an equal value is not a mutation and emits nothing.
    """

    def __init__(self, default: Any) -> None:
        self._default = default
        self._name = ""
        self._attr = ""

    def __set_name__(self, owner: type, name: str) -> None:
        self._name = name
        self._attr = f"_{name}"

    def __get__(self, instance: Observable | None, owner: type) -> Any:
        if instance is None:
            return self
        return instance.__dict__.get(self._attr, self._default)

    def __set__(self, instance: Observable, value: Any) -> None:
        if instance.__dict__.get(self._attr, self._default) == value:
            return
        instance.__dict__[self._attr] = value
        instance.notify(self._name)
