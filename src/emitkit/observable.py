"""Observable — reactive properties and one-way data binding on top of Emitter.

Properties become observable on their first set(). After that, writing
through set() or plain attribute assignment fires ``change:<name>`` with
``(new_value, old_value)`` whenever the value actually changed.

bind(callback).to(source, "prop", ...) makes callback depend on any number of
(source, property) pairs. Whenever one of them changes, callback is re-invoked
with the current values of *all* its pairs, in the order it declared them.

Bindings are multiplexed: however many callbacks depend on a given
(source, property) pair, this observable holds exactly one ``change:<prop>``
listener on that source. The link is torn down when its last dependent is
unbound.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Protocol, TypeVar, runtime_checkable

from emitkit.emitter import Emitter, EmitterCapable, emitter_of

logger = logging.getLogger("emitkit.observable")

Target = Callable[..., Any]
Pairs = tuple[tuple["ObservableCapable", str], ...]
T = TypeVar("T", bound=type)

# Values of these types compare by value; everything else by identity.
_SCALARS = (str, bytes, int, float, complex, bool, type(None))

# Name-mangled state of Emitter and Observable.
_PRIVATE_PREFIXES = ("_Emitter__", "_Observable__")


class BindingError(Exception):
    """Base class for binding errors."""


class InvalidSourceDefinitionError(BindingError, ValueError):
    """Binder.to() got a malformed (observable, property) sequence."""


class DuplicateBindingError(BindingError, ValueError):
    """The callback is already bound on this observable."""


@runtime_checkable
class ObservableCapable(EmitterCapable, Protocol):
    """Anything exposing the observable API (and therefore the emitter API)."""

    def get(self, name: str) -> Any: ...

    def set(self, name: str, value: Any) -> None: ...

    def bind(self, target: Target) -> Binder: ...

    def unbind(self, target: Target) -> None: ...


def _same(old: Any, new: Any) -> bool:
    """Strict equality: identity, or equal scalars of exactly the same type.

    NaN never equals itself, even when the very same object is set again.
    """
    if old is new:
        return not (isinstance(old, (float, complex)) and old != old)
    return type(old) is type(new) and isinstance(old, _SCALARS) and old == new


class _Link:
    """The single change listener for one (source, property) pair and its dependents."""

    __slots__ = ("listener", "targets")

    def __init__(self) -> None:
        self.listener: Callable[..., None] | None = None
        # Insertion-ordered set of dependent targets.
        self.targets: dict[Target, None] = {}


class _SourceLinks:
    __slots__ = ("source", "properties")

    def __init__(self, source: ObservableCapable) -> None:
        self.source = source
        self.properties: dict[str, _Link] = {}


class Binder:
    """Returned by Observable.bind(); call to() to declare the sources."""

    __slots__ = ("_observable", "_target")

    def __init__(self, observable: Observable, target: Target) -> None:
        self._observable = observable
        self._target = target

    def to(self, *sources_and_properties: Any) -> None:
        """Bind to (observable, property) pairs given as a flat sequence.

        Usage:
            view.bind(render).to(model, "title", model, "body")
        """
        self._observable._connect(self._target, sources_and_properties)


class Observable(Emitter):
    """An Emitter with observable properties and data binding.

    Usage:
        model = Observable()
        model.set("title", "Draft")

        view = Observable()
        view.bind(lambda title: print(title)).to(model, "title")  # prints "Draft"

        model.title = "Final"  # prints "Final"
    """

    def __values(self) -> dict[str, Any]:
        try:
            return self.__dict__["_Observable__value_store"]
        except KeyError:
            values: dict[str, Any] = {}
            object.__setattr__(self, "_Observable__value_store", values)
            return values

    def __graph(self) -> tuple[dict[Target, Pairs], dict[int, _SourceLinks]]:
        try:
            return self.__bindings, self.__listener_index
        except AttributeError:
            # target -> its (source, property) pairs, in declared order
            self.__bindings = {}
            # id(source) -> property -> link
            self.__listener_index = {}
            return self.__bindings, self.__listener_index

    # --- Observable properties ---

    def get(self, name: str) -> Any:
        """Current value of property name, None if it was never set."""
        return self.__values().get(name)

    def set(self, name: str, value: Any) -> None:
        """Make name observable (on first use) and write value to it."""
        values = self.__values()
        if name not in values:
            if name.startswith(_PRIVATE_PREFIXES):
                raise AttributeError(f"cannot make {name!r} observable: it names private emitter state")
            if hasattr(type(self), name):
                raise AttributeError(
                    f"cannot make {name!r} observable: it would shadow "
                    f"{type(self).__name__}.{name}"
                )
            # A plain attribute of the same name would hide the stored value.
            self.__dict__.pop(name, None)
            values[name] = None
        self.__write(name, value)

    def __write(self, name: str, value: Any) -> None:
        values = self.__values()
        old = values[name]
        if not _same(old, value):
            values[name] = value
            self.fire("change:" + name, value, old)

    def __getattr__(self, name: str) -> Any:
        values = self.__dict__.get("_Observable__value_store")
        if values is not None and name in values:
            return values[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        values = self.__dict__.get("_Observable__value_store")
        if values is not None and name in values:
            self.__write(name, value)
        else:
            super().__setattr__(name, value)

    # --- Binding ---

    def bind(self, target: Target) -> Binder:
        """Start binding target; finish with .to(source, "property", ...)."""
        bindings, _ = self.__graph()
        if target in bindings:
            raise DuplicateBindingError("Cannot bind the same callback twice.")
        return Binder(self, target)

    def _connect(self, target: Target, sources_and_properties: tuple[Any, ...]) -> None:
        """Commit a binding. Called by Binder.to()."""
        pairs = _parse_sources(sources_and_properties)
        bindings, index = self.__graph()
        if target in bindings:
            raise DuplicateBindingError("Cannot bind the same callback twice.")

        try:
            for source, prop in pairs:
                links = index.get(id(source))
                if links is None:
                    links = index[id(source)] = _SourceLinks(source)
                link = links.properties.get(prop)
                if link is None:
                    link = links.properties[prop] = _Link()
                    link.listener = self.__make_listener(link)
                    self.listen_to(source, "change:" + prop, link.listener)
                link.targets[target] = None
        except Exception:
            self.__release(target, pairs)
            raise

        bindings[target] = pairs
        logger.debug("%r: bound %r to %d source properties", self, target, len(pairs))
        target(*_collect(pairs))

    def __make_listener(self, link: _Link) -> Callable[..., None]:
        bindings, _ = self.__graph()

        def on_change(event, new_value, old_value) -> None:
            for target in list(link.targets):
                pairs = bindings.get(target)
                # Unbound by an earlier target during this same change.
                if pairs is None:
                    continue
                target(*_collect(pairs))

        return on_change

    def unbind(self, target: Target) -> None:
        """Remove target's binding. Does nothing if target is not bound."""
        bindings, _ = self.__graph()
        pairs = bindings.get(target)
        if pairs is None:
            return

        self.__release(target, pairs)
        del bindings[target]
        logger.debug("%r: unbound %r", self, target)

    def __release(self, target: Target, pairs: Pairs) -> None:
        """Drop target from the links of pairs, tearing down links left without dependents."""
        _, index = self.__graph()
        for source, prop in pairs:
            links = index.get(id(source))
            if links is None:
                continue
            link = links.properties.get(prop)
            if link is None:
                continue
            link.targets.pop(target, None)
            if not link.targets:
                del links.properties[prop]
                if link.listener is not None:
                    self.stop_listening(source, "change:" + prop, link.listener)
                    logger.debug("%r: dropped change:%s listener on %r", self, prop, source)
                if not links.properties:
                    del index[id(source)]


def _parse_sources(items: tuple[Any, ...]) -> Pairs:
    """Validate a flat (observable, property, ...) sequence into unique pairs.

    Order is kept; repeated pairs collapse to their first occurrence. A source
    must expose the observable API and have an Emitter to subscribe on (see
    emitter_of()).
    """
    if len(items) < 2 or len(items) % 2:
        raise InvalidSourceDefinitionError(
            f"Invalid source definition. Expected (observable, property) pairs, got {len(items)} items."
        )

    pairs: dict[tuple[int, str], tuple[ObservableCapable, str]] = {}
    for i in range(0, len(items), 2):
        source, prop = items[i], items[i + 1]
        if isinstance(source, str) or not isinstance(source, ObservableCapable):
            raise InvalidSourceDefinitionError(
                f"Invalid source definition. Item {i} is not observable: {source!r}"
            )
        if emitter_of(source) is None:
            raise InvalidSourceDefinitionError(
                f"Invalid source definition. Item {i} has no Emitter to subscribe on: {source!r}"
            )
        if not isinstance(prop, str):
            raise InvalidSourceDefinitionError(
                f"Invalid source definition. Item {i + 1} is not a property name: {prop!r}"
            )
        pairs.setdefault((id(source), prop), (source, prop))
    return tuple(pairs.values())


def _collect(pairs: Pairs) -> list[Any]:
    return [source.get(prop) for source, prop in pairs]


def observable(cls: T) -> T:
    """Class decorator: return a subclass of cls that is also an Observable.

    Members cls defines win over the Observable ones.

    Usage:
        @observable
        class Settings:
            pass

        settings = Settings()
        settings.set("theme", "dark")
    """
    if issubclass(cls, Observable):
        return cls
    namespace = {
        "__module__": cls.__module__,
        "__qualname__": cls.__qualname__,
        "__doc__": cls.__doc__,
    }
    return type(cls.__name__, (cls, Observable), namespace)
