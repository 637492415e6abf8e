"""
Flagship schema (declaring configuration types and discovering their flags).

Scope
- setting() / embedded(): the explicit description mechanism. Configuration types are
  plain dataclasses whose flag-bearing fields are declared through these helpers:

      @dataclass
      class Configuration:
          name: str = ""                                            # no description → not a flag
          loglevel: str = setting("log level", "INFO", short="l")
          timeout: timedelta = setting("timeout duration", timedelta(seconds=1))
          db: DatabaseInfo | None = setting("enable the database", None)

- members(): one pass over a dataclass, classifying every described field.
- walk(): the flat schema, flag-path → Entry.
- zero(): the zero value of an annotation.

Rules
- Flag-paths are lowercase and dot-joined. A segment is the field's 'long' override,
  or its name with underscores turned into hyphens (connection_max64 → connection-max64).
- Fields without a description are skipped and not recursed into. Embedded fields are the
  exception: they never contribute a segment and are always flattened into the parent.
- A described field whose name starts with an underscore is an unexported field. That is a
  fatal schema error. Without a description the same field is silently skipped.
- Optional fields (T | None) yield a boolean toggle entry at their own path. When T is a
  dataclass they also yield entries for every descendant, walked on the type alone.
- Non-optional dataclass fields with a description are groups. They contribute a segment and
  are recursed into, but are not flags themselves.
- Everything else is a leaf typed by its resolved annotation, sequences included (those need
  a registered parser such as one keyed by list[ServerInfo]).
- Two entries sharing a flag-path, or a short name, are a FlagCollisionError.
"""
import dataclasses
import enum
import functools
import logging
import re
import types
import typing
from collections import namedtuple
from datetime import datetime, timedelta

from .faults import *
from .parsers import ZERO_TIME
from .utils import *

logger = logging.getLogger(__name__)


class Kind(enum.Enum):
    LEAF = "leaf"
    OPTIONAL = "optional"
    GROUP = "group"
    EMBEDDED = "embedded"


class Entry(namedtuple("Entry", ("path", "type", "short", "descr", "optional", "annotation"))):
    """
    Field metadata for one addressable flag.

    - path: unique lowercase dotted flag-path.
    - type: semantic type used for parser lookup (bool for optional toggles).
    - short: single lowercase letter alias, or None.
    - descr: description annotation.
    - optional: whether the field is an optional (T | None) sub-value.
    - annotation: the declared (resolved) annotation.
    """
    __slots__ = ()


Member = namedtuple("Member", ("name", "path", "annotation", "pointee", "kind", "field"))

_ZEROS = {
    bool: False,
    int: 0,
    float: 0.0,
    complex: 0j,
    str: "",
    bytes: b"",
    timedelta: timedelta(),
    datetime: ZERO_TIME,
}


def _isdataclass(object):
    return isinstance(object, type) and dataclasses.is_dataclass(object)


@functools.cache
def annotations(cls, /):
    """
    Resolved type hints of a dataclass (postponed annotations evaluated), cached per class.
    """
    return typing.get_type_hints(cls)


def unwrap_optional(annotation, /):
    """
    Return T for an Optional[T] / T | None annotation, otherwise Unset.

    Only two-member unions with None qualify; int | str | None stays a plain leaf.
    """
    if typing.get_origin(annotation) not in (typing.Union, types.UnionType):
        return Unset
    arguments = typing.get_args(annotation)
    if len(arguments) != 2 or type(None) not in arguments:
        return Unset
    return next(argument for argument in arguments if argument is not type(None))


def setting(descr, default=Unset, /, *, factory=Unset, short=Unset, long=Unset, **options):
    """
    Declare a flag-bearing dataclass field.

    Parameters
    - descr: non-empty description (the annotation that turns a field into a flag).
    - default: field default (immutable values only, as with dataclasses.field).
    - factory: default factory, mutually exclusive with default.
    - short: optional single-letter alias ("l" → -l).
    - long: path segment override ("comax" → --db.comax).
    - options: forwarded to dataclasses.field (repr, compare, kw_only, ...).

    Returns
    - dataclasses.Field carrying the metadata read by members().
    """
    if not isinstance(descr, str):
        raise TypeError("setting() 'descr' must be a string")
    elif not (descr := descr.strip()):
        raise ValueError("setting() 'descr' cannot be empty")

    if default is not Unset and factory is not Unset:
        raise TypeError("setting() cannot specify both a default and a factory")
    if factory is not Unset and not callable(factory):
        raise TypeError("setting() 'factory' must be callable")

    metadata = {"descr": descr}

    if short is not Unset:
        if not isinstance(short, str):
            raise TypeError("setting() 'short' must be a string")
        elif not re.fullmatch(r"[^\W\d_]", short):
            raise ValueError("setting() 'short' must be a single letter")
        metadata["short"] = short.lower()

    if long is not Unset:
        if not isinstance(long, str):
            raise TypeError("setting() 'long' must be a string")
        elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", long):
            raise ValueError("setting() 'long' must be a valid flag name (letters, digits and single hyphens)")
        metadata["long"] = long.lower()

    if default is not Unset:
        options["default"] = default
    if factory is not Unset:
        options["default_factory"] = factory

    return dataclasses.field(metadata=metadata | dict(options.pop("metadata", {})), **options)


def embedded(factory, /, **options):
    """
    Declare an embedded dataclass field, flattened into its parent's flag-path.
    """
    if not callable(factory):
        raise TypeError("embedded() argument must be callable")
    return dataclasses.field(default_factory=factory, metadata={"embedded": True}, **options)


def members(cls, prefix="", /):
    """
    Yield a Member for every field of a dataclass that takes part in the schema.

    Kinds
    - EMBEDDED: flattened dataclass; its path is the parent prefix.
    - OPTIONAL: T | None with a description; pointee holds T.
    - GROUP: described non-optional dataclass.
    - LEAF: anything else with a description.

    Raises
    - TypeError: cls is not a dataclass, or an embedded field is not annotated with one.
    - UnexportedFieldError: a described field starts with an underscore.
    """
    if not _isdataclass(cls):
        raise TypeError("members() argument must be a dataclass type")

    hints = annotations(cls)

    for field in dataclasses.fields(cls):
        annotation = hints.get(field.name, field.type)

        if field.metadata.get("embedded"):
            if not _isdataclass(annotation):
                raise TypeError(f"embedded field {field.name!r} must be annotated with a dataclass type")
            yield Member(field.name, prefix, annotation, Unset, Kind.EMBEDDED, field)
            continue

        # No description, no flag (and no recursion either)
        if not field.metadata.get("descr"):
            continue

        if field.name.startswith("_"):
            raise UnexportedFieldError(
                "field %r is an unexported field" % field.name,
                title="unexported field",
                code=FaultCode.UNEXPORTED_FIELD,
                hint="rename %r without the leading underscore or drop its description" % field.name,
                field=field.name,
                owner=cls.__qualname__,
            )

        segment = field.metadata.get("long") or re.sub(r"_+", "-", field.name.strip("_")).lower()
        path = f"{prefix}.{segment}" if prefix else segment

        if (pointee := unwrap_optional(annotation)) is not Unset:
            kind = Kind.OPTIONAL
        elif _isdataclass(annotation):
            kind = Kind.GROUP
        else:
            kind = Kind.LEAF

        yield Member(field.name, path, annotation, pointee, kind, field)


def _claim(schema, member, type):
    # register one entry, refusing duplicated paths and short names
    if member.path in schema:
        raise FlagCollisionError(
            "flag %r of field %r is already in use" % (member.path, member.name),
            title="flag collision",
            code=FaultCode.FLAG_COLLISION,
            hint="give one of the fields a distinct 'long' name",
            path=member.path,
        )

    short = member.field.metadata.get("short")
    if short and (other := next((entry for entry in schema.values() if entry.short == short), None)):
        raise FlagCollisionError(
            "short flag '-%s' of %r is already used by %r" % (short, member.path, other.path),
            title="flag collision",
            code=FaultCode.FLAG_COLLISION,
            hint="pick another letter for one of them",
            path=member.path,
        )

    schema[member.path] = Entry(
        member.path,
        type,
        short,
        member.field.metadata["descr"],
        member.kind is Kind.OPTIONAL,
        member.annotation,
    )


def _walk(cls, prefix, schema):
    for member in members(cls, prefix):
        match member.kind:
            case Kind.EMBEDDED | Kind.GROUP:
                _walk(member.annotation, member.path, schema)
            case Kind.OPTIONAL:
                # The toggle comes first, then whatever the pointee type declares
                _claim(schema, member, bool)
                if _isdataclass(member.pointee):
                    _walk(member.pointee, member.path, schema)
            case Kind.LEAF:
                _claim(schema, member, member.annotation)


def walk(config, /):
    """
    Discover the flat schema of a configuration type.

    Parameters
    - config: dataclass type or instance (instances are only used for their type).

    Returns
    - dict[str, Entry] in declaration order.

    Raises
    - TypeError: config is not a dataclass.
    - UnexportedFieldError / FlagCollisionError: on the first offending field.
    """
    cls = config if isinstance(config, type) else type(config)
    if not _isdataclass(cls):
        raise TypeError("walk() argument must be a dataclass type or instance")
    schema = {}
    _walk(cls, "", schema)
    logger.debug("walked %s: %d flags", cls.__qualname__, len(schema))
    return schema


def zero(annotation, /):
    """
    Return the zero value of an annotation.

    - Optional annotations and None → None.
    - Dataclasses → a declared-default instance: declared defaults are kept (setting("...", "INFO")
      gives "INFO"), zero() fills only the fields lacking one. These are not all-zero values.
    - Primitives, durations and timestamps → False, 0, 0.0, "", timedelta(0), ZERO_TIME.
    - list/dict/set/frozenset/tuple generics → an empty container.
    - Enums → their first member; other classes → called without arguments.
    - Anything else (non-class typing constructs) → None.
    """
    if annotation is None or annotation is type(None) or unwrap_optional(annotation) is not Unset:
        return None

    if _isdataclass(annotation):
        hints = annotations(annotation)
        values = {}
        for field in dataclasses.fields(annotation):
            if not field.init:
                continue
            if field.default is not dataclasses.MISSING or field.default_factory is not dataclasses.MISSING:
                continue
            values[field.name] = zero(hints.get(field.name, field.type))
        return annotation(**values)

    try:
        return _ZEROS[annotation]
    except (KeyError, TypeError):
        pass

    if (origin := typing.get_origin(annotation)) in (list, dict, set, frozenset, tuple):
        return origin()

    if isinstance(annotation, type):
        if issubclass(annotation, enum.Enum):
            return next(iter(annotation))
        return annotation()

    return None


__all__ = (
    "Kind",
    "Entry",
    "Member",
    "setting",
    "embedded",
    "members",
    "walk",
    "zero",
    "unwrap_optional",
    "annotations",
)
