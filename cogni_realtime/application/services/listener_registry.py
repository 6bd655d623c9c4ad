"""Listener registry: typed pub/sub for events and connection status."""

import asyncio
import inspect
import itertools
import logging
from typing import Any, Callable, Dict, List

from ...domain.value_objects import ConnectionState, EventKind

_LOGGER = logging.getLogger(__name__)

EventCallback = Callable[[Any], Any]
StatusCallback = Callable[[ConnectionState], Any]


class ListenerRegistry:
    """Maps event kinds to subscriber callbacks, plus status subscribers.

    Behaviour:
    - Registration and removal are O(1) amortized
    - A callback registered twice is invoked twice (no implicit dedup)
    - ``off`` removes every registration of that callback for the kind
    - Dispatch runs in registration order over a snapshot, so callbacks may
      subscribe/unsubscribe from inside a dispatch; a callback removed
      during a dispatch is not invoked for the rest of it
    - Exceptions in callbacks are logged, never propagated
    - Coroutine callbacks are scheduled on the running loop

    Example:
        >>> registry = ListenerRegistry()
        >>> registry.on(EventKind.NEW_MESSAGE, print)
        >>> registry.dispatch(EventKind.NEW_MESSAGE, message)
    """

    def __init__(self):
        """Initialize empty registry."""
        self._ids = itertools.count(1)
        # kind -> {subscription id -> callback}; dicts keep insertion order
        self._subscriptions: Dict[EventKind, Dict[int, EventCallback]] = {}
        # kind -> {callback -> [subscription ids]}
        self._index: Dict[EventKind, Dict[EventCallback, List[int]]] = {}
        self._status_callbacks: Dict[int, StatusCallback] = {}
        self._status_index: Dict[StatusCallback, List[int]] = {}
        self._pending: set = set()

    # ------------------------------------------------------------------
    # Event subscriptions
    # ------------------------------------------------------------------

    def on(self, kind: EventKind, callback: EventCallback) -> Callable[[], None]:
        """Register ``callback`` for ``kind``.

        Returns:
            Zero-argument function removing exactly this registration
        """
        sub_id = next(self._ids)
        self._subscriptions.setdefault(kind, {})[sub_id] = callback
        self._index.setdefault(kind, {}).setdefault(callback, []).append(sub_id)

        def unsubscribe() -> None:
            self._remove_one(kind, callback, sub_id)

        return unsubscribe

    def off(self, kind: EventKind, callback: EventCallback) -> None:
        """Remove every registration of ``callback`` for ``kind``."""
        sub_ids = self._index.get(kind, {}).pop(callback, [])
        subs = self._subscriptions.get(kind, {})
        for sub_id in sub_ids:
            subs.pop(sub_id, None)

    def _remove_one(self, kind: EventKind, callback: EventCallback, sub_id: int):
        self._subscriptions.get(kind, {}).pop(sub_id, None)
        ids = self._index.get(kind, {}).get(callback)
        if ids and sub_id in ids:
            ids.remove(sub_id)
            if not ids:
                del self._index[kind][callback]

    def listener_count(self, kind: EventKind) -> int:
        """Number of registrations for ``kind``."""
        return len(self._subscriptions.get(kind, {}))

    def clear(self) -> None:
        """Remove all event and status subscriptions."""
        self._subscriptions.clear()
        self._index.clear()
        self._status_callbacks.clear()
        self._status_index.clear()

    def dispatch(self, kind: EventKind, payload: Any) -> int:
        """Invoke every callback registered for ``kind``.

        Returns:
            Number of callbacks invoked
        """
        subs = self._subscriptions.get(kind)
        if not subs:
            _LOGGER.debug("No listeners for %s", kind.value)
            return 0

        invoked = 0
        for sub_id, callback in list(subs.items()):
            # Removed by an earlier callback in this same dispatch
            if sub_id not in subs:
                continue
            invoked += 1
            self._invoke(callback, payload, f"listener for {kind.value}")
        return invoked

    # ------------------------------------------------------------------
    # Status subscriptions
    # ------------------------------------------------------------------

    def on_status_change(
        self, callback: StatusCallback, current: ConnectionState
    ) -> Callable[[], None]:
        """Register a status callback and invoke it once with ``current``."""
        sub_id = next(self._ids)
        self._status_callbacks[sub_id] = callback
        self._status_index.setdefault(callback, []).append(sub_id)
        self._invoke(callback, current, "status listener")

        def unsubscribe() -> None:
            self._status_callbacks.pop(sub_id, None)
            ids = self._status_index.get(callback)
            if ids and sub_id in ids:
                ids.remove(sub_id)
                if not ids:
                    del self._status_index[callback]

        return unsubscribe

    def off_status_change(self, callback: StatusCallback) -> None:
        """Remove every registration of a status callback."""
        for sub_id in self._status_index.pop(callback, []):
            self._status_callbacks.pop(sub_id, None)

    def notify_status(self, state: ConnectionState) -> None:
        """Invoke every status callback with ``state``."""
        callbacks = self._status_callbacks
        for sub_id, callback in list(callbacks.items()):
            if sub_id not in callbacks:
                continue
            self._invoke(callback, state, "status listener")

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _invoke(self, callback: Callable, argument: Any, description: str) -> None:
        try:
            result = callback(argument)
        except Exception as err:  # pylint: disable=broad-exception-caught
            _LOGGER.error("Error in %s: %s", description, err, exc_info=True)
            return

        if inspect.isawaitable(result):
            self._schedule(result, description)

    def _schedule(self, awaitable, description: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _LOGGER.error("Cannot schedule async %s: no running event loop", description)
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._pending.add(task)

        def _done(done: asyncio.Future) -> None:
            self._pending.discard(done)
            if done.cancelled():
                return
            err = done.exception()
            if err is not None:
                _LOGGER.error(
                    "Error in async %s: %s", description, err, exc_info=err
                )

        task.add_done_callback(_done)
