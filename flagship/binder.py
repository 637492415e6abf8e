"""
Flagship argument binder (token stream → bound parsers).

Grammar (matched case-insensitively against the schema)
- long:   --name, --name=value, --name value
- short:  -x, -xvalue, -x=value, -x value
- clustered boolean shorts: -abc (a and b must be boolean; c may take the rest as its value)
- '--' stops flag parsing; bare tokens and '-' are positional leftovers and are ignored.

Semantics
- Only the flag part of a token is lowercased; values after '=' (or in the following
  token) are passed through untouched.
- Boolean entries, optional toggles included, never consume the following token: '--db'
  binds True, '--db=false' binds False.
- A parser registered under an optional field's own annotation (e.g. OwnerInfo | None) takes
  over that field's flag: '--owner=alice' binds the whole sub-object and needs a value.
- A flag given twice feeds the same parser instance twice, so accumulating parsers
  (ListValue, custom list parsers) collect every occurrence.

Error policy
- parser not found / invalid argument: recorded, the flag is left unbound, scanning goes on.
- unknown flag: recorded, scanning stops; bindings made so far are kept.
- bind() returns (bound, first_fault_or_None). It never raises binding faults itself.
"""
import builtins
import difflib
import logging
from collections import deque

from .faults import *
from .utils import *

logger = logging.getLogger(__name__)


def lowercase(token, /):
    """
    Normalize the flag part of a token to lowercase.

    - " --CamelCase=TaTa" → "--camelcase=TaTa"  (leading whitespace trimmed)
    - "-UTaTa"            → "-uTaTa"            (only the letter)
    - "notAFlag", "-", "--" are returned unchanged.
    """
    stripped = token.lstrip()
    if stripped.startswith("--"):
        name, separator, value = stripped.partition("=")
        return name.lower() + separator + value
    if stripped.startswith("-"):
        return stripped[:2].lower() + stripped[2:]
    return token


def _typename(annotation):
    return annotation.__qualname__ if isinstance(annotation, builtins.type) else repr(annotation)


def _unknown(input, index, candidates):
    suggestions = difflib.get_close_matches(input, candidates, 5)
    try:
        hint = "did you mean %r? run with '--help' to see all flags" % suggestions[0]
    except IndexError:
        hint = "run with '--help' to see all available flags"
    return UnknownFlagError(
        "unknown flag %r at %s position" % (input, ordinal(index)),
        title="unknown flag",
        code=FaultCode.UNKNOWN_FLAG,
        hint=hint,
        input=input,
        index=index,
        suggestions=suggestions,
    )


class _Binding:
    """
    One pass over a token stream. Holds the queue so that spaced values can be
    pulled from it while flags are being resolved.
    """

    def __init__(self, arguments, schema, registry):
        self.schema = schema
        self.registry = registry
        self.shorts = {entry.short: entry for entry in schema.values() if entry.short}
        self.tokens = deque(enumerate(arguments, 1))
        self.bound = {}
        self.faults = []
        self.leftovers = []

    def kind(self, entry):
        # A parser registered for the whole optional annotation (T | None) owns that flag
        if entry.optional and entry.annotation in self.registry:
            return entry.annotation
        return entry.type

    def feed(self, entry, value, input, index):
        semantic = self.kind(entry)
        # Booleans default to true; everything else takes the next token
        if value is Unset:
            if semantic is bool:
                value = "true"
            elif self.tokens:
                _, value = self.tokens.popleft()
            else:
                return self.faults.append(InvalidArgumentError(
                    "invalid argument: flag %r at %s position needs a value" % (input, ordinal(index)),
                    title="missing value",
                    code=FaultCode.MISSING_VALUE,
                    hint="pass a value inline (for example: %s=<value>) or after a space" % input,
                    input=input,
                    index=index,
                ))

        try:
            parser = self.bound[entry.path] if entry.path in self.bound else self.registry.fresh(semantic)
        except KeyError:
            return self.faults.append(ParserNotFoundError(
                "parser not found for flag %r of type %r at %s position" % (input, _typename(semantic), ordinal(index)),
                title="parser not found",
                code=FaultCode.PARSER_NOT_FOUND,
                hint="register a parser for %r before loading" % _typename(semantic),
                input=input,
                index=index,
            ))

        try:
            parser.consume(value)
        except (ValueError, TypeError) as error:
            return self.faults.append(InvalidArgumentError(
                "invalid argument %r for flag %r at %s position (%s)" % (value, input, ordinal(index), error),
                title="invalid argument",
                code=FaultCode.INVALID_ARGUMENT,
                hint="expected a value of type %r" % _typename(semantic),
                input=input,
                value=value,
                index=index,
            ))

        self.bound[entry.path] = parser
        logger.debug("bound %s from %r", entry.path, value)

    def long(self, token, index):
        name, separator, value = token[2:].partition("=")
        if (entry := self.schema.get(name)) is None:
            self.faults.append(_unknown("--" + name, index, ["--" + path for path in self.schema]))
            return False
        self.feed(entry, value if separator else Unset, "--" + name, index)
        return True

    def short(self, token, index):
        letters = token[1:]
        while letters:
            letter, letters = letters[0].lower(), letters[1:]
            if (entry := self.shorts.get(letter)) is None:
                self.faults.append(_unknown("-" + letter, index, ["-" + short for short in self.shorts]))
                return False
            if letters.startswith("="):
                self.feed(entry, letters[1:], "-" + letter, index)
                break
            if self.kind(entry) is bool:
                # -abc: the remaining letters are further shorts
                self.feed(entry, Unset, "-" + letter, index)
                continue
            self.feed(entry, letters or Unset, "-" + letter, index)
            break
        return True

    def run(self):
        while self.tokens:
            index, token = self.tokens.popleft()
            token = lowercase(token)

            if token == "--":
                self.leftovers.extend(token for _, token in self.tokens)
                break

            if token == "-" or not token.startswith("-"):
                self.leftovers.append(token)
                continue

            if not (self.long if token.startswith("--") else self.short)(token, index):
                break

        if self.leftovers:
            logger.debug("ignored positional arguments: %r", self.leftovers)
        for fault in self.faults:
            logger.debug("binding fault: %s", fault.message)

        return self.bound, (self.faults[0] if self.faults else None)


def bind(arguments, schema, registry, /):
    """
    Resolve an argument list against a schema.

    Parameters
    - arguments: iterable of raw string tokens (no program name).
    - schema: mapping flag-path → Entry, as produced by walk().
    - registry: Registry used to get one fresh parser per bound flag.

    Returns
    - (bound, fault): bound maps flag-path → parser holding the supplied value;
      fault is the first BindingError met, or None.
    """
    arguments = list(arguments)
    if not all(isinstance(argument, str) for argument in arguments):
        raise TypeError("bind() first argument must be an iterable of strings")
    return _Binding(arguments, schema, registry).run()


__all__ = (
    "lowercase",
    "bind",
)
