"""
Flagship loader: the single entry point of the materialization engine.

    load(config, defaults, arguments, parsers=...)

runs, in order and within one call:
1. walk(config)                                   → schema (schema faults abort here)
2. defaults_for(config, defaults)                  → defaults per flag-path
3. bind(arguments, schema, registry)              → bound parsers + first binding fault
4. fill(config, defaults, bound)                  → config mutated in place
5. the binding fault, if any, is raised *after* filling, so the caller can still show the
   partially materialized configuration next to the error.

Nothing is shared across calls except the registry, which is only read.
"""
import logging
import shlex
import sys

from .binder import *
from .filler import *
from .parsers import *
from .schema import *
from .snapshot import *
from .utils import *

logger = logging.getLogger(__name__)


def _tokens(arguments):
    if arguments is Unset:
        return sys.argv[1:]
    if isinstance(arguments, str):
        return shlex.split(arguments)
    try:
        tokens = list(arguments)
    except TypeError:
        raise TypeError("load() arguments must be a string or an iterable of strings") from None
    if not all(isinstance(token, str) for token in tokens):
        raise TypeError("load() arguments must be a string or an iterable of strings")
    return tokens


def registry(parsers=Unset, /):
    """
    Return a Registry for the given parsers (a Registry is returned as-is).
    """
    return parsers if isinstance(parsers, Registry) else Registry(parsers)


def defaults_for(config, defaults=None, /):
    """
    Build the default snapshot load() uses for a target.

    - With a separate template, the target is the baseline: its current leaves are the
      defaults, and the template only contributes optional sub-values.
    - With defaults=None, the target is its own template and its detached clone is the baseline.
    """
    template = config if defaults is None else defaults
    if type(template) is not type(config):
        raise TypeError(
            "load() defaults must be a %r instance (got %r)" % (type(config).__name__, type(template).__name__)
        )
    return snapshot(detach_optionals(config) if defaults is None else config, template)


def load(config, defaults=None, arguments=Unset, /, parsers=Unset):
    """
    Materialize a configuration from defaults and command-line arguments.

    Parameters
    - config: dataclass instance, mutated in place.
    - defaults: template of the same type, supplying the content of optional fields.
      Leaves always default to config's current values. None uses config itself as the
      template, so its optional fields act only as default content.
      Either way an optional field stays None unless activated.
    - arguments:
      • Unset: sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: used as-is.
    - parsers: Registry, or a mapping of custom parsers layered over the built-ins.

    Returns
    - config.

    Raises
    - TypeError: config is not a dataclass instance, or defaults has another type.
    - SchemaError: the configuration type is malformed (nothing is modified).
    - BindingError: the first argument problem, raised once config has been filled
      with everything that could be bound.
    """
    if isinstance(config, type):
        raise TypeError("load() first argument must be a dataclass instance")
    schema = walk(config)
    values = defaults_for(config, defaults)
    bound, fault = bind(_tokens(arguments), schema, registry(parsers))
    fill(config, values, bound)

    logger.debug("loaded %s: %d bound, %d defaults", type(config).__qualname__, len(bound), len(values))

    if fault is not None:
        raise fault
    return config


def flags(config, /):
    """
    Sorted flag-paths of a configuration type or instance.
    """
    return sorted(walk(config))


def toggles(config, /):
    """
    Sorted flag-paths whose semantic type is boolean (plain booleans and optional toggles).
    """
    return sorted(path for path, entry in walk(config).items() if entry.type is bool)


__all__ = (
    "registry",
    "defaults_for",
    "load",
    "flags",
    "toggles",
)
