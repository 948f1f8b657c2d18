"""mix() — copy members of mixin classes onto a target class.

Only the mixin's own members are copied, and only those the target does not
already define (directly or through its bases). Dunder names are never copied,
so the target keeps its own construction and protocol behaviour. Descriptors
(property, staticmethod, classmethod) are copied as-is, so getter/setter pairs
travel together.
"""

from __future__ import annotations

from typing import TypeVar

T = TypeVar("T", bound=type)


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def mix(target: T, *mixins: type) -> T:
    """Copy members of each mixin onto target. Returns target.

    Usage:
        class Greeter:
            def greet(self):
                return "hi"

        class Person:
            pass

        mix(Person, Greeter)
        Person().greet()  # "hi"
    """
    for mixin in mixins:
        for name, member in vars(mixin).items():
            if _is_dunder(name) or hasattr(target, name):
                continue
            setattr(target, name, member)
    return target
