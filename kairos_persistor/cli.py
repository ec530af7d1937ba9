"""Command-line interface for kairos-persistor."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from . import constants
from .app import KairosPersistorApp
from .config import PersistorConfig, load_config

SECRET_OPTIONS = {("bus", "password")}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kairos-persistor",
        description="Forward KairosDB commands received on an MQTT topic",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help=f"INI configuration file (default: {constants.DEFAULT_CONFIG_PATH})",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    start = commands.add_parser("start", help="Run the persistor until interrupted")
    start.add_argument(
        "--log-level",
        metavar="LEVEL",
        help="Override [logging] level for this run, e.g. DEBUG",
    )
    start.set_defaults(handler=_run)

    show = commands.add_parser(
        "show-config", help="Print the resolved configuration and exit"
    )
    show.set_defaults(handler=_show)

    return parser


def _run(config: PersistorConfig, args: argparse.Namespace) -> int:
    if args.log_level:
        config.logging.level = args.log_level
    return KairosPersistorApp.start(config)


def _show(config: PersistorConfig, args: argparse.Namespace) -> int:
    print(f"Configuration loaded from {config.path}\n")
    for section in config.raw.sections():
        print(f"[{section}]")
        for key, value in config.raw.items(section):
            if (section, key) in SECRET_OPTIONS and value:
                value = "********"
            print(f"{key} = {value}")
        print()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    return args.handler(config, args)


if __name__ == "__main__":
    sys.exit(main())
