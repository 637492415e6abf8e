from dataclasses import dataclass
from datetime import timedelta

from rich.pretty import pprint

from flagship import *


@dataclass
class Database:
    host: str = setting("Database host", "localhost")
    port: int = setting("Database port", 5432, short="p")


@dataclass
class Configuration:
    loglevel: str = setting("Log level", "INFO", short="l")
    timeout: timedelta = setting("Request timeout", timedelta(seconds=30))
    tags: list[str] = setting("Tags attached to every record", factory=list)
    db: Database | None = setting("Enable the database", None)


@dataclass
class VersionConfig:
    short: bool = setting("Print the bare version number", False, short="s")


def version(config):
    print(__version__ if config.short else f"{__title__} {__version__}")


if __name__ == '__main__':
    dispatcher = Dispatcher(
        Command("main", Configuration(), Configuration(db=Database()), run=pprint, descr="flagship demo"),
        shell=True,
    )
    dispatcher.add_command(Command("version", VersionConfig(), run=version, descr="print version"))
    dispatcher.run()
