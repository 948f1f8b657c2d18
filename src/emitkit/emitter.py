"""Emitter — named events with cross-object subscription bookkeeping.

An Emitter keeps, for every event name, the ordered list of callbacks
registered on it. It also remembers every callback it registered on *other*
emitters via listen_to(), so stop_listening() can remove them in bulk.

Both sides of a subscription point at the same registration record: the
remote's event list holds it, and so does the listener's bookkeeping for that
remote. Every removal path takes it out of both.

Dispatch runs over a snapshot of the event's list, so callbacks may register,
unregister or detach themselves (and others) while an event is being fired.

State is private and created on first use, so classes that pick up the
Emitter members through with_emitter() or a subclass need not call any
initializer. A class may instead embed an Emitter, forward the API to it and
expose it as ``emitter_delegate``; other emitters then subscribe on the
embedded one.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from emitkit.mix import mix
from emitkit.uid import uid

logger = logging.getLogger("emitkit.emitter")

Callback = Callable[..., Any]
T = TypeVar("T", bound=type)


@runtime_checkable
class EmitterCapable(Protocol):
    """Anything exposing the emitter API."""

    def on(self, event_name: str, callback: Callback) -> None: ...

    def off(self, event_name: str, callback: Callback) -> None: ...

    def fire(self, event_name: str, *args: Any) -> None: ...

    def listen_to(self, emitter: EmitterCapable, event_name: str, callback: Callback) -> None: ...

    def stop_listening(
        self,
        emitter: EmitterCapable | None = None,
        event_name: str | None = None,
        callback: Callback | None = None,
    ) -> None: ...


class EmitterEvent:
    """Token handed to each callback as its first argument.

    A callback may call stop() to end the current dispatch after it returns,
    and off() to unregister itself for future fires. Both only concern the
    dispatch in progress.
    """

    __slots__ = ("_name", "_stopped", "_detached")

    def __init__(self, name: str) -> None:
        self._name = name
        self._stopped = False
        self._detached = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def detached(self) -> bool:
        return self._detached

    def stop(self) -> None:
        """Skip the remaining callbacks of this dispatch."""
        self._stopped = True

    def off(self) -> None:
        """Unregister the current callback once it returns."""
        self._detached = True

    def __repr__(self) -> str:
        return f"EmitterEvent({self._name!r})"


class _Registration:
    """One listen_to() call. Compared by identity."""

    __slots__ = ("owner", "event_name", "callback")

    def __init__(self, owner: EmitterCapable, event_name: str, callback: Callback) -> None:
        self.owner = owner
        self.event_name = event_name
        self.callback = callback


class _Registry:
    """Private per-emitter state."""

    __slots__ = ("uid", "events", "subscribed_to")

    def __init__(self) -> None:
        self.uid = uid()
        # event name -> registrations made on this emitter, in order
        self.events: dict[str, list[_Registration]] = {}
        # id(remote) -> (remote, registrations this emitter made on it)
        self.subscribed_to: dict[int, tuple[EmitterCapable, list[_Registration]]] = {}


class Emitter:
    """Registers named-event callbacks and dispatches them synchronously.

    Usage:
        button = Emitter()
        panel = Emitter()

        panel.listen_to(button, "click", lambda event, x, y: print(x, y))
        button.fire("click", 10, 20)  # prints "10 20"

        panel.stop_listening(button)
        button.fire("click", 10, 20)  # nothing
    """

    def __registry(self) -> _Registry:
        try:
            return self.__state
        except AttributeError:
            self.__state = _Registry()
            return self.__state

    def on(self, event_name: str, callback: Callback) -> None:
        """Register callback for this emitter's own event."""
        self.listen_to(self, event_name, callback)

    def off(self, event_name: str, callback: Callback) -> None:
        """Unregister one registration of callback for this emitter's own event."""
        self.stop_listening(self, event_name, callback)

    def fire(self, event_name: str, *args: Any) -> None:
        """Call every callback registered for event_name, in registration order.

        Each callback receives a fresh EmitterEvent followed by args.
        """
        live = self.__registry().events.get(event_name)
        if not live:
            return

        for registration in list(live):
            event = EmitterEvent(event_name)
            registration.callback(event, *args)

            if event.detached:
                logger.debug("%r: callback detached from %r", self, event_name)
                registration.owner.__unregister(self, registration)

            if event.stopped:
                break

    def listen_to(self, emitter: EmitterCapable, event_name: str, callback: Callback) -> None:
        """Register callback on another emitter's event, remembering it for stop_listening().

        Raises TypeError if emitter has no backing Emitter (see emitter_of()).
        """
        remote = emitter_of(emitter)
        if remote is None:
            raise TypeError(
                f"cannot listen to {emitter!r}: it neither is an Emitter nor names one in emitter_delegate"
            )
        registration = _Registration(self, event_name, callback)

        subscribed_to = self.__registry().subscribed_to
        key = id(remote)
        if key not in subscribed_to:
            subscribed_to[key] = (remote, [])
        subscribed_to[key][1].append(registration)

        remote.__registry().events.setdefault(event_name, []).append(registration)

    def stop_listening(
        self,
        emitter: EmitterCapable | None = None,
        event_name: str | None = None,
        callback: Callback | None = None,
    ) -> None:
        """Remove registrations this emitter made.

        stop_listening()                       -> everything, on every emitter
        stop_listening(emitter)                -> everything on emitter
        stop_listening(emitter, name)          -> every callback for name on emitter
        stop_listening(emitter, name, cb)      -> the first registration of cb

        Removing something that is not registered does nothing.
        """
        subscribed_to = self.__registry().subscribed_to

        if emitter is None:
            for remote, _ in list(subscribed_to.values()):
                self.stop_listening(remote, event_name, callback)
            return

        remote = emitter_of(emitter)
        entry = subscribed_to.get(id(remote)) if remote is not None else None
        if entry is None:
            return
        emitter, registrations = entry

        if event_name is None:
            names = dict.fromkeys(r.event_name for r in registrations)
            for name in names:
                self.stop_listening(emitter, name, callback)
            return

        if callback is None:
            for registration in [r for r in registrations if r.event_name == event_name]:
                self.stop_listening(emitter, event_name, registration.callback)
            return

        for registration in registrations:
            if registration.event_name == event_name and registration.callback == callback:
                self.__unregister(emitter, registration)
                return

    def __unregister(self, emitter: EmitterCapable, registration: _Registration) -> None:
        """Take one registration out of both emitter's event list and this emitter's bookkeeping."""
        subscribed_to = self.__registry().subscribed_to
        key = id(emitter)
        entry = subscribed_to.get(key)
        if entry is not None and registration in entry[1]:
            entry[1].remove(registration)
            if not entry[1]:
                del subscribed_to[key]

        events = emitter.__registry().events
        callbacks = events.get(registration.event_name)
        if callbacks is not None and registration in callbacks:
            callbacks.remove(registration)
            if not callbacks:
                del events[registration.event_name]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.__registry().uid}>"


def _has_registry(obj: object) -> bool:
    return callable(getattr(type(obj), "_Emitter__registry", None))


def emitter_of(obj: object) -> EmitterCapable | None:
    """The emitter that stores obj's events, or None if there is none.

    That is obj itself when its class carries the Emitter members (a subclass,
    or a class decorated with with_emitter()). A host that embeds an Emitter
    and forwards the API to it names that Emitter as ``emitter_delegate``.
    """
    if _has_registry(obj):
        return obj
    delegate = getattr(obj, "emitter_delegate", None)
    if delegate is not None and _has_registry(delegate):
        return delegate
    return None


def with_emitter(cls: T) -> T:
    """Class decorator: give cls the emitter API without changing its bases.

    Members cls already defines win over the Emitter ones.

    Usage:
        @with_emitter
        class Document:
            def save(self):
                self.fire("saved")
    """
    return mix(cls, Emitter)
