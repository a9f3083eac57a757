"""CLI application entry point and command routing for yt-relay.

This module is the **sole error boundary** of the command line.  It
catches :class:`~yt_relay.exceptions.YtRelayError`, ``KeyboardInterrupt``
and any unexpected ``Exception``, renders a short message via Rich and
returns a well-defined exit code.

Commands
--------
* ``yt-relay serve``    run the HTTP API with uvicorn
* ``yt-relay doctor``   environment diagnostics
* ``yt-relay --version``
"""

from __future__ import annotations

import argparse
import sys

from yt_relay.cli import exit_codes
from yt_relay.cli.console import console
from yt_relay.exceptions import EnvironmentError, YtRelayError
from yt_relay.version import __version__


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yt-relay",
        description="YouTube metadata and stream relay HTTP service.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind address (default: settings).")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: settings).")
    serve.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR.")

    commands.add_parser("doctor", help="Check the runtime environment.")
    return parser


# ---------------------------------------------------------------------------
# Command dispatch
# ---------------------------------------------------------------------------

def _handle_serve(args: argparse.Namespace) -> int:
    """Configure logging and hand the app to uvicorn."""
    from yt_relay.api.app import create_app
    from yt_relay.config import get_settings
    from yt_relay.utils.logging import configure_logging

    try:
        import uvicorn
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "uvicorn is not installed. Install with: pip install uvicorn",
        ) from exc

    settings = get_settings()
    overrides = {
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level,
    }
    settings = settings.model_copy(
        update={k: v for k, v in overrides.items() if v is not None},
    )
    configure_logging(settings.log_level)

    console.print(
        f"[bold]yt-relay {__version__}[/bold] listening on "
        f"http://{settings.host}:{settings.port}{settings.api_prefix}"
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return exit_codes.SUCCESS


def _handle_doctor() -> int:
    from yt_relay.cli.doctor import run_doctor

    return run_doctor()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    """Run the yt-relay CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.

    Returns
    -------
    int
        OS process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        return _handle_serve(args)
    if args.command == "doctor":
        return _handle_doctor()

    parser.print_help()
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point."""
    try:
        code = main()
        sys.exit(code)
    except YtRelayError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
