"""Tests for emitkit.textual — Textual integration layer."""

import pytest
from textual.css.query import NoMatches

from emitkit import Emitter, Observable
from emitkit import textual as etx


class _MockApp:
    """Minimal mock matching the Textual App interface etx needs."""

    def __init__(self, *, is_running=True):
        self.is_running = is_running


@pytest.fixture
def model():
    m = Observable()
    m.set("title", "draft")
    return m


@pytest.fixture
def view():
    return Observable()


class TestBind:
    def test_fires_when_safe(self, model, view):
        app = _MockApp()
        titles = []
        etx.bind(app, view, titles.append, model, "title")
        model.title = "final"
        assert titles == ["draft", "final"]

    def test_skips_when_not_running(self, model, view):
        app = _MockApp(is_running=False)
        titles = []
        etx.bind(app, view, titles.append, model, "title")
        model.title = "final"
        assert titles == []

    def test_skips_during_pause(self, model, view):
        app = _MockApp()
        titles = []
        etx.bind(app, view, titles.append, model, "title")
        with etx.pause(app):
            model.title = "paused"
        model.title = "final"
        assert titles == ["draft", "final"]

    def test_catches_nomatch(self, model, view):
        """NoMatches from widget queries are silently swallowed."""
        app = _MockApp()

        def _raise_nomatch(title):
            raise NoMatches("StatusFooter")

        etx.bind(app, view, _raise_nomatch, model, "title")
        model.title = "final"  # should not raise

    def test_other_errors_propagate(self, model, view):
        app = _MockApp()

        def _raise(title):
            if title == "final":
                raise RuntimeError("boom")

        etx.bind(app, view, _raise, model, "title")
        with pytest.raises(RuntimeError, match="boom"):
            model.title = "final"

    def test_unbind_with_returned_wrapper(self, model, view):
        app = _MockApp()
        titles = []
        guarded = etx.bind(app, view, titles.append, model, "title")
        view.unbind(guarded)
        model.title = "final"
        assert titles == ["draft"]

    def test_wrapper_exposes_callback(self, model, view):
        callback = lambda title: None
        guarded = etx.bind(_MockApp(), view, callback, model, "title")
        assert guarded.__wrapped__ is callback


class TestListenTo:
    def test_guarded_listener(self):
        app = _MockApp()
        source, listener = Emitter(), Emitter()
        seen = []
        guarded = etx.listen_to(app, listener, source, "saved", lambda event, path: seen.append(path))

        source.fire("saved", "a.txt")
        with etx.pause(app):
            source.fire("saved", "b.txt")
        assert seen == ["a.txt"]

        listener.stop_listening(source, "saved", guarded)
        source.fire("saved", "c.txt")
        assert seen == ["a.txt"]


class TestPause:
    def test_is_safe(self):
        app = _MockApp()
        assert etx.is_safe(app)
        with etx.pause(app):
            assert not etx.is_safe(app)
        assert etx.is_safe(app)

    def test_pause_is_per_app(self):
        a, b = _MockApp(), _MockApp()
        with etx.pause(a):
            assert etx.is_safe(b)

    def test_not_running_is_unsafe(self):
        assert not etx.is_safe(_MockApp(is_running=False))

    def test_pause_released_on_error(self):
        app = _MockApp()
        with pytest.raises(ValueError):
            with etx.pause(app):
                raise ValueError
        assert etx.is_safe(app)
