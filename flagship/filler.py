"""
Flagship struct filler: writes bound values and defaults into the target.

Precedence for leaves: bound value > snapshot default > zero value.

Optional fields follow activation instead of precedence:
- own path bound to True, or any descendant path bound → the field is set to a copy of its
  snapshot default (zero when the snapshot lacks it) and, for dataclass pointees, refilled
  recursively with the same rules;
- own path bound to False → None, whatever the descendants say;
- own path bound to a non-boolean value (a parser registered for the T | None annotation) → that
  value, descendants untouched;
- nothing bound → None, whatever the snapshot holds.

Embedded and group fields are always present and always recursed into.
Every assigned value is a copy; the target never shares objects with the snapshot or parsers.
"""
import copy
import dataclasses
import logging

from .schema import *

logger = logging.getLogger(__name__)


def _fill(cls, target, defaults, bound, prefix):
    for member in members(cls, prefix):
        match member.kind:
            case Kind.EMBEDDED | Kind.GROUP:
                if (inner := getattr(target, member.name)) is None:
                    setattr(target, member.name, inner := zero(member.annotation))
                _fill(member.annotation, inner, defaults, bound, member.path)

            case Kind.LEAF:
                if member.path in bound:
                    value = bound[member.path].get()
                elif member.path in defaults:
                    value = defaults[member.path]
                else:
                    value = zero(member.annotation)
                setattr(target, member.name, copy.deepcopy(value))

            case Kind.OPTIONAL:
                if member.path in bound:
                    value = bound[member.path].get()
                    if value is False:
                        logger.debug("%s switched off", member.path)
                        setattr(target, member.name, None)
                        continue
                    if value is not True:
                        logger.debug("%s replaced by its bound value", member.path)
                        setattr(target, member.name, copy.deepcopy(value))
                        continue
                elif not any(path.startswith(member.path + ".") for path in bound):
                    setattr(target, member.name, None)
                    continue

                if member.path in defaults:
                    inner = copy.deepcopy(defaults[member.path])
                else:
                    inner = zero(member.pointee)
                setattr(target, member.name, inner)
                logger.debug("%s activated", member.path)

                if dataclasses.is_dataclass(member.pointee):
                    _fill(member.pointee, inner, defaults, bound, member.path)


def fill(target, defaults, bound, /):
    """
    Materialize a target in place.

    Parameters
    - target: dataclass instance to mutate.
    - defaults: snapshot mapping flag-path → default value.
    - bound: mapping flag-path → parser, as returned by bind().

    Returns
    - the target itself.
    """
    if not dataclasses.is_dataclass(target) or isinstance(target, type):
        raise TypeError("fill() first argument must be a dataclass instance")
    _fill(type(target), target, defaults, bound, "")
    return target


__all__ = (
    "fill",
)
