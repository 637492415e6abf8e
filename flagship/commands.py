"""
Flagship commands (dispatch, help and error rendering on top of the loader).

Scope
- Command: a named configuration/defaults pair plus an optional callback.
- Dispatcher: owns the root command, named subcommands and the parser registry; splits the
  leading non-flag token as the command selector and loads the selected configuration from
  the remaining tokens.
- Rendering: help (usage, description, visible subcommands, flags with their defaults) and
  error reports (fault, partially loaded configuration, help) via rich.

Quick example
    >>> root = Command("server", Configuration(), Configuration(db=DatabaseInfo()), run=serve)
    >>> dispatcher = Dispatcher(root, ["--db", "--loglevel=debug"])
    >>> dispatcher.add_command(Command("version", VersionConfig(), descr="print version"))
    >>> dispatcher.run()   # → serve(config) with db activated from its defaults

Behavior
- '-h' / '--help' (unless the configuration declares those flags itself) renders help and
  raises HelpRequested. Hidden commands never appear in help, and asking for their help is
  an unknown command.
- A lone '-' selects the root command and is otherwise ignored.
- Runtime options (shell, fancy, colorful) follow the faults module: in shell mode faults
  are printed and the process exits, otherwise they are raised.
"""
import copy
import difflib
import logging
import re
import shlex
import sys
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta
from types import MappingProxyType

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from rich.text import Text

from .binder import lowercase
from .faults import *
from .loader import *
from .parsers import Registry
from .schema import *
from .utils import *

logger = logging.getLogger(__name__)

_METAVARS = {
    int: "int",
    float: "float",
    str: "str",
    timedelta: "duration",
    datetime: "time",
    list[str]: "str,...",
}


def split_arguments(arguments, /):
    """
    Split a token list into (command selector, remaining tokens).

    - [] / [""] / ["-a", ...] → ("", arguments): no selector, everything goes to the root.
    - ["cmd", ...]            → ("cmd", [...]).
    """
    arguments = list(arguments)
    if not arguments or not arguments[0] or arguments[0].startswith("-"):
        return "", arguments
    return arguments[0], arguments[1:]


class Command:
    """
    A named configuration with its defaults template and callback.

    Parameters
    - name: command name (letters, digits and single hyphens).
    - config: dataclass instance loaded in place when the command is selected.
    - defaults: template of the same type (None: config is its own template).
    - run: callable receiving the loaded config.
    - descr: description shown in help.
    - hidden: omit from help listings (and refuse help for it).
    """
    __slots__ = ("name", "config", "defaults", "run", "descr", "hidden")

    def __init__(self, name, /, config, defaults=None, run=Unset, *, descr=Unset, hidden=False):
        if not isinstance(name, str):
            raise TypeError("Command() 'name' must be a string")
        elif not re.fullmatch(r"[^\W\d_](-?[^\W_]+)*", name := name.strip()):
            raise ValueError("Command() 'name' must be letters, digits and single hyphens")
        if isinstance(config, type):
            raise TypeError("Command() 'config' must be a dataclass instance")
        if defaults is not None and type(defaults) is not type(config):
            raise TypeError("Command() 'defaults' must share the type of 'config'")
        if run is not Unset and not callable(run):
            raise TypeError("Command() 'run' must be callable")
        if not isinstance(descr, str | Text | Unset):
            raise TypeError("Command() 'descr' must be a string")

        self.name = name
        self.config = config
        self.defaults = defaults
        self.run = run
        self.descr = coalesce(descr)
        self.hidden = bool(hidden)

    def __repr__(self):
        return f"command(name={self.name!r}, config={type(self.config).__name__}, hidden={self.hidden!r})"


class Dispatcher:
    """
    Route an argument list to a command and load its configuration.

    Parameters
    - root: the Command used when no selector is given.
    - arguments: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.
    - parsers: Registry or mapping of custom parsers.
    - console: rich Console used for every output (defaults to stdout for help and
      stderr for faults).
    - shell, fancy, colorful: rendering/runtime options forwarded to faults.
    """

    def __init__(self, root, arguments=Unset, /, *, parsers=Unset, console=Unset, shell=False, fancy=False, colorful=True):
        if not isinstance(root, Command):
            raise TypeError("Dispatcher() first argument must be a command")

        if arguments is Unset:
            arguments = sys.argv[1:]
        elif isinstance(arguments, str):
            arguments = shlex.split(arguments)
        elif isinstance(arguments, Iterable):
            arguments = list(arguments)
            if not all(isinstance(argument, str) for argument in arguments):
                raise TypeError("Dispatcher() arguments must be a string or an iterable of strings")
        else:
            raise TypeError("Dispatcher() arguments must be a string or an iterable of strings")

        self.root = root
        self.shell = shell
        self.fancy = fancy
        self.colorful = colorful
        self._children = {}
        self._registry = Registry(parsers)
        self._console = console
        self._selector, self._arguments = split_arguments(arguments)

    @property
    def children(self):
        return MappingProxyType(self._children)

    def add_command(self, command, /):
        if not isinstance(command, Command):
            raise TypeError("add_command() argument must be a command")
        if command.name == self.root.name or self._children.setdefault(command.name, command) is not command:
            raise ValueError(f"command name {command.name!r} is already in use")
        return command

    def add_parser(self, type, parser, /):
        return self._registry.register(type, parser)

    def console(self, *, stderr=False):
        return self._console if self._console is not Unset else Console(stderr=stderr)

    def trigger(self, fault, /, **options):
        trigger(
            fault,
            **options,
            prog=self.root.name,
            console=self.console(stderr=True),
            shell=self.shell,
            fancy=self.fancy,
            colorful=self.colorful,
        )

    def _unknown(self, name):
        visible = [child for child, command in self._children.items() if not command.hidden]
        suggestions = difflib.get_close_matches(name, visible, 5)
        try:
            hint = "did you mean %r? run '%s --help' to see all commands" % (suggestions[0], self.root.name)
        except IndexError:
            hint = "run '%s --help' to see all commands" % self.root.name
        return UnknownCommandError(
            "command %s not found" % name,
            title="unknown command",
            code=FaultCode.UNKNOWN_COMMAND,
            hint=hint,
            input=name,
            suggestions=suggestions,
        )

    def resolve(self):
        """
        Return the command selected by the leading non-flag token (the root when absent).
        """
        if not self._selector:
            return self.root
        try:
            return self._children[self._selector]
        except KeyError:
            return self.trigger(self._unknown(self._selector))

    def _wants_help(self, command):
        schema = walk(command.config)
        shorts = {entry.short for entry in schema.values()}
        for token in map(lowercase, self._arguments):
            if token == "--":
                return False
            if token == "--help" and "help" not in schema:
                return True
            if token == "-h" and "h" not in shorts:
                return True
        return False

    def parse(self, command, /):
        """
        Load the configuration of a command from the arguments that follow its selector.

        Returns
        - the command, its config materialized.
        """
        if self._wants_help(command):
            if command.hidden:
                return self.trigger(self._unknown(command.name))
            self.help(command)
            return self.trigger(HelpRequested(
                "help requested for %s" % command.name,
                title="help requested",
                code=FaultCode.HELP_REQUESTED,
            ))

        try:
            load(command.config, command.defaults, self._arguments, self._registry)
        except BindingError as fault:
            logger.debug("loading %s failed: %s", command.name, fault.message)
            if self.shell:
                self.report(command)
            return self.trigger(fault)
        return command

    def run(self):
        """
        Resolve, parse and run the selected command. Returns the callback's result.
        """
        command = self.parse(self.resolve())
        if command.run is Unset:
            return None
        return command.run(command.config)

    def report(self, command, fault=Unset, /):
        """
        Render a binding fault next to the partially loaded configuration and the help.
        """
        console = self.console(stderr=True)
        console.print(Text("current configuration:", style="bold" if self.colorful else ""))
        console.print(Pretty(command.config))
        self.help(command, stderr=True)
        if fault is not Unset:
            console.print(copy.replace(fault, prog=self.root.name, fancy=self.fancy, colorful=self.colorful))

    def help(self, command, /, *, stderr=False):
        """
        Render help for a command.

        Palette keys
        - usage-label, program-name, usage-section, description-section
        - group-label, flag-name, metavar, flag-description, default
        - children-title, children-table, children, children-description
        - panel-title

        Customization
        - Define a mapping named __styles__ in __main__ to override any palette entry.
        - When colorful is False, styling is suppressed.
        """
        console = self.console(stderr=stderr)
        styles = defaultdict(str, {
            # === Head sections ===
            "usage-label": "bold #00E6FF",  # CYAN → signature info color
            "program-name": "bold #FF4D94",  # MAGENTA-PINK → brand pop
            "usage-section": "bold #36C5F0",  # SKY-BLUE → softer than cyan
            "description-section": "italic #A3A3A3",  # Neutral gray

            # === Flags ===
            "group-label": "bold #FFFFFF",  # Pure white headers
            "flag-name": "bold #22C55E",  # GREEN for flags
            "metavar": "bold #FFD600",  # AMBER for parameters
            "flag-description": "#9CA3AF",  # Muted gray
            "default": "italic #D1D5DB",

            # === Children table ===
            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",  # Slate border
            "children": "bold #36C5F0",  # Sky-blue subcommands
            "children-description": "#9CA3AF",

            # === Fancy panel ===
            "panel-title": "bold #FF4D94",
        } | getattr(__import__('__main__'), "__styles__", {}))

        def styler(style):
            return styles[style] if self.colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self.colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        renders = []
        width = console.width - 4 * self.fancy

        schema = walk(command.config)
        defaults = defaults_for(command.config, command.defaults)
        children = [child for child in self._children.values() if not child.hidden] if command is self.root else []

        # Usage line
        usage = Text()
        usage.append("usage", styler("usage-label")).append(": ")
        usage.append(text(self.root.name, styler("program-name")))
        if command is not self.root:
            usage.append(" ").append(text(command.name, styler("usage-section")))
        elif children:
            usage.append(" ").append(text("[command]", styler("usage-section")))
        if schema:
            usage.append(" ").append(text("[flags]", styler("usage-section")))
        renders.append(usage.append("\n"))

        if command.descr:
            renders.append(text(command.descr, styler("description-section")).append("\n"))

        if children:
            table = Table(
                "name", "help",
                title=text("commands", styler("children-title")),
                width=int(width * (2 / 3)),
                box=ROUNDED,
                style=styler("children-table"),
                header_style=styler("children-title"),
            )
            for child in children:
                table.add_row(
                    text(child.name, styler("children")),
                    text(child.descr or "no description", styler("children-description")),
                )
            renders.append(table)

        # Flags with hanging-indent descriptions
        if schema:
            flags = Text("\n" if children else "")
            flags.append(text("flags", styler("group-label"))).append(":\n")

            padding = 2   # Leading spaces before the names column
            indent = 30   # Column for description wrap/hanging indent

            for path, entry in schema.items():
                section = Text(" " * padding)
                if entry.short:
                    section.append(text("-" + entry.short, styler("flag-name"))).append(", ")
                section.append(text("--" + path, styler("flag-name")))
                if entry.type is not bool or (entry.optional and entry.annotation in self._registry):
                    section.append(" ").append(text("<%s>" % _METAVARS.get(entry.type, "value"), styler("metavar")))

                descr = text(entry.descr, styler("flag-description"))
                if not entry.optional and (default := self._render(entry, defaults.get(path, Unset))):
                    descr = Text.assemble(descr, " ", text("(default: %s)" % default, styler("default")))

                if len(section) >= indent:
                    section.append("\n").append(" " * indent)
                else:
                    section.append(" " * (indent - len(section)))
                wrapped = descr.wrap(console, max(width - indent, 10))
                try:
                    section.append(wrapped.pop(0))
                except IndexError:
                    pass
                for line in wrapped:
                    section.append("\n").append(" " * indent).append(line)

                flags.append(section).append("\n")
            renders.append(flags)

        if isinstance(renders[-1], Text):
            renders[-1].rstrip()  # Trim trailing newline on the last chunk

        renderable = Group(*renders)
        if self.fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{command.name} HELP".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )

        console.print(renderable)

    def _render(self, entry, value):
        # default text through the flag's own parser, when one is registered
        if value is Unset:
            return ""
        if entry.type not in self._registry:
            return repr(value)
        parser = self._registry.fresh(entry.type)
        parser.overwrite(value)
        return parser.render()


__all__ = (
    "Command",
    "Dispatcher",
    "split_arguments",
)
