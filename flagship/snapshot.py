"""
Flagship default snapshots and the optional-field normalizer.

snapshot(baseline, template)
- Walks two instances of the same configuration type in lockstep and records, per
  flag-path, the best available default value.
  • leaves: the baseline's value.
  • optional fields: the template's pointee (normalized, see below) or, when the template
    holds None, the pointee type's zero value. Descendants are then walked with the
    baseline's pointee when it has one, otherwise with that same template/zero pointee.
  • embedded and group fields: walked unconditionally.
- Every stored value is an independent copy, so the same sub-type used at two positions of the
  tree (or two loads sharing one template) never alias each other or the template.

detach_optionals(instance)
- Deep copy of an instance with every public optional field, at every depth, set to None.
  The loader uses it to turn a defaults template into the baseline for snapshot(), so that
  leaves come from the template while optional content is only reachable through its own
  path (activation happens later, in the filler).
"""
import copy
import dataclasses
import logging

from .schema import *
from .utils import *

logger = logging.getLogger(__name__)


def _detach(instance):
    hints = annotations(type(instance))
    for field in dataclasses.fields(instance):
        if field.name.startswith("_"):
            continue
        if unwrap_optional(hints.get(field.name, field.type)) is not Unset:
            setattr(instance, field.name, None)
        elif dataclasses.is_dataclass(value := getattr(instance, field.name)) and not isinstance(value, type):
            _detach(value)


def detach_optionals(instance, /):
    """
    Return a value-equal, independently owned clone with every optional field set to None.

    The input is never mutated. Non-dataclass inputs are simply deep-copied.
    """
    clone = copy.deepcopy(instance)
    if dataclasses.is_dataclass(clone) and not isinstance(clone, type):
        _detach(clone)
    return clone


def _resolve(instance, member):
    # embedded/group values are always present; tolerate a None left by hand
    value = getattr(instance, member.name)
    return zero(member.annotation) if value is None else value


def _snapshot(cls, baseline, template, defaults, prefix):
    for member in members(cls, prefix):
        match member.kind:
            case Kind.EMBEDDED | Kind.GROUP:
                _snapshot(
                    member.annotation,
                    _resolve(baseline, member),
                    _resolve(template, member),
                    defaults,
                    member.path,
                )
            case Kind.LEAF:
                defaults[member.path] = copy.deepcopy(getattr(baseline, member.name))
            case Kind.OPTIONAL:
                if (pointee := getattr(template, member.name)) is None:
                    pointee = zero(member.pointee)
                    defaults[member.path] = zero(member.pointee)
                else:
                    defaults[member.path] = detach_optionals(pointee)

                if dataclasses.is_dataclass(member.pointee):
                    nested = getattr(baseline, member.name)
                    _snapshot(
                        member.pointee,
                        pointee if nested is None else nested,
                        pointee,
                        defaults,
                        member.path,
                    )


def snapshot(baseline, template, /):
    """
    Build the default snapshot (flag-path → default value) of a configuration.

    Parameters
    - baseline: instance providing leaf values (usually detach_optionals(template)).
    - template: instance of the same type providing optional sub-values.

    Returns
    - dict[str, Any]; contains a key for every flag-path of walk(type(template)).

    Raises
    - TypeError: when the instances are not dataclasses of the same type.
    """
    if not dataclasses.is_dataclass(template) or isinstance(template, type):
        raise TypeError("snapshot() arguments must be dataclass instances")
    if type(baseline) is not type(template):
        raise TypeError(
            "snapshot() arguments must share a type (got %r and %r)" % (type(baseline).__name__, type(template).__name__)
        )
    defaults = {}
    _snapshot(type(template), baseline, template, defaults, "")
    logger.debug("snapshot of %s: %d defaults", type(template).__qualname__, len(defaults))
    return defaults


__all__ = (
    "snapshot",
    "detach_optionals",
)
