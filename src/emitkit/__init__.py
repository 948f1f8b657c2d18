"""emitkit: synchronous event emitters and observable properties with data binding."""

from importlib.metadata import version as _version

__version__ = _version("emitkit")

from emitkit.emitter import Emitter, EmitterCapable, EmitterEvent, emitter_of, with_emitter
from emitkit.observable import (
    Binder,
    BindingError,
    DuplicateBindingError,
    InvalidSourceDefinitionError,
    Observable,
    ObservableCapable,
    observable,
)
from emitkit.mix import mix
from emitkit.uid import uid
# textual NOT auto-imported — opt-in only

__all__ = [
    "Emitter",
    "EmitterCapable",
    "EmitterEvent",
    "with_emitter",
    "emitter_of",
    "Observable",
    "ObservableCapable",
    "Binder",
    "observable",
    "BindingError",
    "InvalidSourceDefinitionError",
    "DuplicateBindingError",
    "mix",
    "uid",
]
