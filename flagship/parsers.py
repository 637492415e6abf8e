"""
Flagship parsers (value containers and the type registry).

Scope
- A parser is any object exposing the four-method value-container contract:
  • consume(text)     → update internal state from a textual token, raising ValueError/TypeError
                        when the text cannot be converted.
  • get()             → current typed value.
  • render()          → current value as text (used by help output).
  • overwrite(value)  → replace internal state from an already-typed value.
- Registry maps a semantic type (a resolved annotation such as int, timedelta or
  list[ServerInfo]) to one prototype parser. The binder never feeds the prototype;
  it asks for fresh() copies, one per flag, so flags of the same type never share state.

Built-in entries
- bool, int, float, str through Value (a converter/formatter pair).
- datetime.timedelta: Go-style durations ("9ms", "1h30m", "1.5s"); bare integers are seconds.
- datetime.datetime: RFC 3339 / ISO 8601 timestamps ("1979-05-27T07:32:00Z").
- list[str]: comma separated items, accumulated across repeated flags (ListValue).

Custom types
- Anything implementing the contract can be registered, e.g. a parser for
  list[ServerInfo] that appends one record per consumed token:

      class ServersValue:
          def __init__(self):
              self._servers = []
          def consume(self, text):
              self._servers.append(ServerInfo(ip=text))
          def get(self):
              return list(self._servers)
          def render(self):
              return ",".join(server.ip for server in self._servers)
          def overwrite(self, value):
              self._servers = list(value)

      registry = Registry({list[ServerInfo]: ServersValue()})

Notes
- The registry is read-only while a load runs; populate it before the first load.
"""
import copy
import logging
import re
from datetime import datetime, timedelta, timezone

from .utils import *

logger = logging.getLogger(__name__)

# Zero instant for timestamps (0001-01-01T00:00:00Z)
ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)

# Microseconds per duration unit
_UNITS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_SEGMENT = re.compile(r"(?P<amount>\d+(?:\.\d*)?|\.\d+)(?P<unit>ns|us|µs|μs|ms|s|m|h)")


def parse_bool(text, /):
    match text.strip().lower():
        case "1" | "t" | "true":
            return True
        case "0" | "f" | "false":
            return False
        case _:
            raise ValueError(f"invalid boolean literal {text!r}")


def render_bool(value, /):
    return "true" if value else "false"


def parse_int(text, /):
    """
    Parse an integer literal; prefixed forms (0x, 0o, 0b) are accepted and
    leading zeros fall back to plain decimal.
    """
    text = text.strip()
    try:
        return int(text, 0)
    except ValueError:
        return int(text, 10)


def parse_duration(text, /):
    """
    Parse a duration into a timedelta.

    Accepted forms
    - bare integers, counted as seconds: "10" → 10s
    - unit sequences: "300ms", "-1.5h", "2h45m", "1m30.5s"
      (units: ns, us/µs, ms, s, m, h)

    Raises
    - ValueError: on empty input or any unrecognized segment.
    """
    text = text.strip()
    if re.fullmatch(r"[-+]?\d+", text):
        return timedelta(seconds=int(text))

    sign, body = 1, text
    if body.startswith(("-", "+")):
        sign, body = (-1 if body[0] == "-" else 1), body[1:]

    if not body or not re.fullmatch(rf"(?:{_SEGMENT.pattern})+", body):
        raise ValueError(f"invalid duration {text!r}")

    micros = sum(float(match["amount"]) * _UNITS[match["unit"]] for match in _SEGMENT.finditer(body))
    return sign * timedelta(microseconds=micros)


def _decimal(amount, unit):
    # amount/unit rendered without trailing zeros: (1500, 1000) → "1.5"
    whole, fraction = divmod(amount, unit)
    if not fraction:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{fraction:0{digits}d}".rstrip("0")


def render_duration(value, /):
    """
    Render a timedelta the way parse_duration reads it back ("1h30m0s", "9ms", "0s").
    """
    micros = value // timedelta(microseconds=1)
    if not micros:
        return "0s"

    sign = "-" if micros < 0 else ""
    micros = abs(micros)

    if micros < 1_000:
        return f"{sign}{micros}µs"
    if micros < 1_000_000:
        return f"{sign}{_decimal(micros, 1_000)}ms"

    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds = _decimal(micros, 1_000_000) + "s"

    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


def parse_time(text, /):
    return datetime.fromisoformat(text.strip())


def render_time(value, /):
    return value.isoformat().replace("+00:00", "Z")


class Value:
    """
    Single-value parser composed from a converter and a formatter.

    Parameters
    - convert: callable(str) -> value, raising ValueError/TypeError on bad input.
    - format: callable(value) -> str.
    - value: initial value (also what get() returns before anything is consumed).
    """
    __slots__ = ("_convert", "_format", "_value")

    def __init__(self, convert, format, value, /):
        if not callable(convert):
            raise TypeError("Value() first argument must be callable")
        if not callable(format):
            raise TypeError("Value() second argument must be callable")
        self._convert = convert
        self._format = format
        self._value = value

    def consume(self, text, /):
        if not isinstance(text, str):
            raise TypeError("consume() argument must be a string")
        self._value = self._convert(text)

    def get(self):
        return self._value

    def render(self):
        return self._format(self._value)

    def overwrite(self, value, /):
        self._value = value

    def __eq__(self, other):
        if not isinstance(other, Value):
            return NotImplemented
        return (self._convert, self._value) == (other._convert, other._value)

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({self._value!r})"


class ListValue:
    """
    Accumulating parser: every consumed token is split on the separator and
    each item is converted and appended. Repeating a flag therefore extends
    the list instead of replacing it.
    """
    __slots__ = ("_convert", "_format", "_separator", "_values")

    def __init__(self, convert, format, values=(), /, *, separator=","):
        if not callable(convert):
            raise TypeError("ListValue() first argument must be callable")
        if not callable(format):
            raise TypeError("ListValue() second argument must be callable")
        if not isinstance(separator, str) or not separator:
            raise ValueError("ListValue() 'separator' must be a non-empty string")
        self._convert = convert
        self._format = format
        self._separator = separator
        self._values = list(values)

    def consume(self, text, /):
        if not isinstance(text, str):
            raise TypeError("consume() argument must be a string")
        self._values.extend(self._convert(item.strip()) for item in text.split(self._separator))

    def get(self):
        return list(self._values)

    def render(self):
        return self._separator.join(map(self._format, self._values))

    def overwrite(self, value, /):
        self._values = list(value)

    def __eq__(self, other):
        if not isinstance(other, ListValue):
            return NotImplemented
        return (self._convert, self._values) == (other._convert, other._values)

    __hash__ = None

    def __repr__(self):
        return f"{type(self).__name__}({self._values!r})"


class Registry:
    """
    Type-keyed table of prototype parsers.

    Parameters
    - parsers: optional mapping (or another Registry) of custom entries, layered
      over the built-ins. Custom entries win on key clashes.

    Behavior
    - register(type, parser) validates the four-method contract and stores the prototype.
    - fresh(type) hands out an independent deep copy; KeyError when unregistered.
    - prototype(type) returns the stored instance itself (read-only use, e.g. help output).
    """
    __slots__ = ("_parsers",)

    def __init__(self, parsers=Unset, /):
        self._parsers = {
            bool: Value(parse_bool, render_bool, False),
            int: Value(parse_int, str, 0),
            float: Value(float, str, 0.0),
            str: Value(str, str, ""),
            timedelta: Value(parse_duration, render_duration, timedelta()),
            datetime: Value(parse_time, render_time, ZERO_TIME),
            list[str]: ListValue(str, str),
        }

        if isinstance(parsers, Registry):
            parsers = parsers._parsers
        for type, parser in dict(coalesce(parsers, {})).items():
            self.register(type, parser)

    def register(self, type, parser, /):
        for name in ("consume", "get", "render", "overwrite"):
            if not callable(getattr(parser, name, None)):
                raise TypeError(f"register() parser must have a {name}() method")
        try:
            hash(type)
        except TypeError:
            raise TypeError("register() type must be hashable") from None
        self._parsers[type] = parser
        logger.debug("registered parser %r for %r", parser, type)
        return parser

    def prototype(self, type, /):
        return self._parsers[type]

    def fresh(self, type, /):
        return copy.deepcopy(self._parsers[type])

    def __contains__(self, type):
        try:
            return type in self._parsers
        except TypeError:
            return False

    def __iter__(self):
        return iter(self._parsers)

    def __len__(self):
        return len(self._parsers)

    def __repr__(self):
        return f"{type(self).__name__}({self._parsers!r})"


__all__ = (
    "ZERO_TIME",
    "Value",
    "ListValue",
    "Registry",
    "parse_bool",
    "render_bool",
    "parse_int",
    "parse_duration",
    "render_duration",
    "parse_time",
    "render_time",
)
