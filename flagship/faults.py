"""
Flagship faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain (schema, binding, dispatch) to keep copy consistent
  and make logs/searches predictable.
- FlagshipException: base type that carries message + options and knows how to
  render itself in a friendly, lowercased, and actionable way.
- SchemaError / BindingError / DispatchError: the three families raised by the
  walker, the binder and the dispatcher respectively.
- trigger(): central entry point to surface any fault (respecting shell/fancy/colorful).

Error taxonomy
- schema errors are programming defects in a configuration type; they abort a load
  before any argument is looked at.
- binding errors are user input problems; the binder keeps going (or stops scanning,
  for unknown flags) and hands back everything bound so far alongside the first fault.
- dispatch errors (unknown command, help requested) belong to the command layer.

UX goals
- Position-first messages: binding messages include the ordinal position of the
  offending token (“at third position”).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the package (stable identifiers).

    grouping (by high-level domain)
    - schema (111xx)
      • UNEXPORTED_FIELD, FLAG_COLLISION
    - binding (112xx)
      • UNKNOWN_FLAG, PARSER_NOT_FOUND, INVALID_ARGUMENT, MISSING_VALUE
    - dispatch (113xx)
      • UNKNOWN_COMMAND, HELP_REQUESTED

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired (e.g., to shorter labels).
    """
    # --- schema errors (111xx) ---
    UNEXPORTED_FIELD            = 11101
    FLAG_COLLISION              = 11102

    # --- binding errors (112xx) ---
    UNKNOWN_FLAG                = 11211
    PARSER_NOT_FOUND            = 11212
    INVALID_ARGUMENT            = 11213
    MISSING_VALUE               = 11214

    # --- dispatch errors (113xx) ---
    UNKNOWN_COMMAND             = 11301
    HELP_REQUESTED              = 11302

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class FlagshipException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        width = self.options.get("console", console).width - 4 * fancy

        prog = text(getattr(main, "__prog__", self.options.get("prog", "flagship")), styler("prog-name"))

        header = Text.assemble("[ ", prog)
        if isinstance(code := self.options.get("code"), FaultCode):
            header.append(" — ").append(text(code.normalize(), styler("code")))
        if title := self.options.get("title"):
            header.append(" | ").append(text(title.title(), styler("error-title")))
        header.append(" ]")

        message = text(self.message, styler("error-message"))
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))

        if fancy:
            try:
                width = int(width * self.options["ratio"])
            except KeyError:
                width = None
            return Panel(Group(*renders), title=header, title_align="left", width=width)

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        self.options.get("console", console).print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class SchemaError(FlagshipException): ...
class UnexportedFieldError(SchemaError): ...
class FlagCollisionError(SchemaError): ...

class BindingError(FlagshipException): ...
class UnknownFlagError(BindingError): ...
class ParserNotFoundError(BindingError): ...
class InvalidArgumentError(BindingError): ...

class DispatchError(FlagshipException): ...
class UnknownCommandError(DispatchError): ...


class HelpRequested(DispatchError):
    """
    raised after help has been rendered for -h/--help.

    in shell mode the process exits with status 0 instead.
    """
    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        sys.exit(0)


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see FlagshipException).
    - options are merged into the fault via copy.replace(fault, **options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are raised.

    typical options
    - prog, console, shell, fancy, colorful, title, code, hint, and any other context the
      reporter may want to show (e.g., input/index/suggestions).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FlagshipException",
    "SchemaError",
    "UnexportedFieldError",
    "FlagCollisionError",
    "BindingError",
    "UnknownFlagError",
    "ParserNotFoundError",
    "InvalidArgumentError",
    "DispatchError",
    "UnknownCommandError",
    "HelpRequested",
    "FaultCode",
    "trigger",
)
