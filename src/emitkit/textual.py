"""Textual integration for emitkit. Opt-in — requires textual.

Bindings and listeners that drive widgets must not fire while the widget tree
is being replaced or before the app runs, and a query for a widget that is
gone should not take the whole change notification down with it. The
wrappers here enforce both, so callsites stay plain.

Delivery stays synchronous on the caller's thread.
"""

from contextlib import contextmanager

from textual.css.query import NoMatches

# id(app) of every app currently inside pause().
_paused: set[int] = set()


@contextmanager
def pause(app):
    """Hold back bound and listening widget callbacks while app swaps widgets.

    Changes made inside the block are not replayed afterwards; the next change
    of a bound property delivers all current values again.
    """
    _paused.add(id(app))
    try:
        yield
    finally:
        _paused.discard(id(app))


def is_safe(app) -> bool:
    """True when guarded callbacks for app may touch its widgets."""
    return app.is_running and id(app) not in _paused


def _guard(app, fn):
    def _guarded(*args):
        if not is_safe(app):
            return
        try:
            fn(*args)
        except NoMatches:
            pass

    _guarded.__wrapped__ = fn
    return _guarded


def bind(app, observable, callback, *sources_and_properties):
    """observable.bind(callback).to(...) that only reaches widgets when safe.

    Returns the guarded callback; pass it to observable.unbind() to undo.
    The initial call made by the binding is guarded too.
    """
    guarded = _guard(app, callback)
    observable.bind(guarded).to(*sources_and_properties)
    return guarded


def listen_to(app, listener, emitter, event_name, callback):
    """listener.listen_to(emitter, event_name, callback), guarded like bind().

    Returns the guarded callback; pass it to listener.stop_listening() to undo.
    """
    guarded = _guard(app, callback)
    listener.listen_to(emitter, event_name, guarded)
    return guarded
