"""Command-line interface for the Huddle backend."""

from __future__ import annotations
import argparse
import dataclasses
import logging
import sys
from typing import Sequence

from huddle.config import Settings, load_settings, resolve_data_path
from huddle.store import JSONStore

logger = logging.getLogger("huddle.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Huddle community backend")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    data_options = argparse.ArgumentParser(add_help=False)
    data_options.add_argument(
        "--data",
        default=None,
        help="Path to the JSON data file (defaults to HUDDLE_DATA_PATH or ./data.json)",
    )

    subparsers.add_parser(
        "init-db",
        parents=[data_options],
        help="Create the data file and write the starter circles and meetups",
    )
    subparsers.add_parser("users", parents=[data_options], help="List registered users")

    serve_parser = subparsers.add_parser(
        "serve", parents=[data_options], help="Start the HTTP API"
    )
    serve_parser.add_argument("--host", default=None, help="Bind address (default: 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: 5500)",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "users"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings()
    overrides = {}
    if getattr(args, "data", None):
        overrides["data_path"] = resolve_data_path(args.data)
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None):
        overrides["port"] = args.port
    return dataclasses.replace(settings, **overrides) if overrides else settings


def _serve(settings: Settings) -> None:
    from huddle.api import create_app
    import uvicorn

    logger.info("Starting Huddle API on http://%s:%s (data file %s)", settings.host, settings.port, settings.data_path)
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


def _initialise_data(settings: Settings) -> None:
    from huddle.api import build_service

    service = build_service(settings)
    service.store.flush_now(service.community)
    logger.info("Data file initialised at %s", settings.data_path)
    print(
        f"{len(service.community.circles)} circle(s) and "
        f"{len(service.community.meetups)} meetup(s) stored in {settings.data_path}."
    )


def _list_users(settings: Settings) -> None:
    community = JSONStore(settings.data_path).load()
    users = list(community.users.values())
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<24}  {'Name':<24}  {'Status':<12}  Days set")
    print("-" * 72)
    for user in users:
        print(f"{user.id:<24}  {user.name:<24}  {user.status:<12}  {len(user.availability)}")


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    args = _parse_args(argv)
    settings = _resolve_settings(args)

    if args.command == "serve":
        _serve(settings)
    elif args.command == "init-db":
        _initialise_data(settings)
    elif args.command == "users":
        _list_users(settings)


if __name__ == "__main__":
    main()
