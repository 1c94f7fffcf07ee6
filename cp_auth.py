"""Command line interface for Chaum-Pedersen password authentication."""

from __future__ import annotations

import argparse
import getpass
import json
import sys
from typing import Optional, Tuple

import uvicorn

from cpauth.auth import Coordinator, authenticate, register_user
from cpauth.client import RemoteCoordinator
from cpauth.config import Settings, configure_logging
from cpauth.crypto import PublicParameters, default_parameters
from cpauth.errors import AuthError
from cpauth.server import create_app
from cpauth.session import SessionCoordinator
from cpauth.store import open_store


def parse_args(argv: list[str], settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--store",
        default=settings.store,
        help=f"Local store, a JSON file path or memory:// (default: {settings.store})",
    )
    target.add_argument(
        "--server",
        help="Base URL of a running cpauth server to use instead of a local store",
    )
    target.add_argument(
        "--remote",
        dest="server",
        action="store_const",
        const=settings.server_url,
        help=f"Use the server at {settings.server_url}",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help=f"Logging level (default: {settings.log_level})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("params", help="Print the public group parameters")

    register_parser = subparsers.add_parser("register", help="Register a username")
    register_parser.add_argument("username", help="Name to register")
    register_parser.add_argument(
        "--password",
        help="Password to derive the secret from. Prompted for when omitted.",
    )

    login_parser = subparsers.add_parser("login", help="Prove knowledge of the password")
    login_parser.add_argument("username", help="Registered name")
    login_parser.add_argument(
        "--password",
        help="Password to derive the secret from. Prompted for when omitted.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the authentication server on the local store")
    serve_parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    serve_parser.add_argument("--port", type=int, default=settings.port, help=f"Port (default: {settings.port})")

    return parser.parse_args(argv)


def open_coordinator(namespace: argparse.Namespace) -> Tuple[Coordinator, PublicParameters]:
    if namespace.server:
        remote = RemoteCoordinator(namespace.server)
        return remote, remote.check_params()
    params = default_parameters()
    return SessionCoordinator(params, open_store(namespace.store)), params


def serve(namespace: argparse.Namespace, settings: Settings) -> int:
    params = default_parameters()
    app = create_app(settings, store=open_store(namespace.store), params=params)
    print(json.dumps(params.to_dict(), indent=2))
    uvicorn.run(app, host=namespace.host, port=namespace.port, log_level=namespace.log_level.lower())
    return 0


def read_password(namespace: argparse.Namespace) -> str:
    return namespace.password if namespace.password is not None else getpass.getpass("Password: ")


def main(argv: Optional[list[str]] = None) -> int:
    settings = Settings()
    namespace = parse_args(sys.argv[1:] if argv is None else argv, settings)
    configure_logging(namespace.log_level)

    if namespace.command == "serve":
        return serve(namespace, settings)

    try:
        coordinator, params = open_coordinator(namespace)

        if namespace.command == "params":
            print(json.dumps(params.to_dict(), indent=2))
            return 0

        if namespace.command == "register":
            payload = register_user(coordinator, params, namespace.username, read_password(namespace))
            print(json.dumps(payload, indent=2))
            return 0

        if namespace.command == "login":
            result = authenticate(coordinator, params, namespace.username, read_password(namespace))
            print(json.dumps(result, indent=2))
            return 0 if result["success"] else 1
    except AuthError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

    raise RuntimeError("Unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
