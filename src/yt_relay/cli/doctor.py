"""``yt-relay doctor``: environment diagnostics command.

Checks that the interpreter and every runtime dependency of the HTTP
service are importable, and renders the result as a Rich table.
"""

from __future__ import annotations

import importlib
import platform
import sys

from yt_relay.cli import exit_codes
from yt_relay.cli.console import console
from yt_relay.version import __version__

Check = tuple[str, str, str]

OK = "[green]OK[/green]"
FAIL = "[red]FAIL[/red]"

# (label, import name) of the libraries the server needs at runtime.
RUNTIME_PACKAGES: tuple[tuple[str, str], ...] = (
    ("yt-dlp", "yt_dlp"),
    ("fastapi", "fastapi"),
    ("uvicorn", "uvicorn"),
    ("httpx", "httpx"),
    ("pydantic-settings", "pydantic_settings"),
)


# ---------------------------------------------------------------------------
# Diagnostic collectors
# ---------------------------------------------------------------------------

def _python_version_check() -> Check:
    version = platform.python_version()
    ok = sys.version_info[:2] >= (3, 10)
    return "Python", version, OK if ok else "[red]FAIL (>=3.10 required)[/red]"


def _package_check(label: str, module_name: str) -> Check:
    """Return (label, version, status) for an importable package."""
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        return label, "NOT INSTALLED", FAIL
    version = getattr(module, "__version__", None)
    if version is None and module_name == "yt_dlp":
        version = getattr(getattr(module, "version", None), "__version__", None)
    return label, str(version or "unknown"), OK


def _os_check() -> Check:
    system_raw = platform.system()
    system_display = {"Darwin": "macOS"}.get(system_raw, system_raw)
    value = f"{system_display} {platform.release()} ({platform.machine()})"
    return "OS", value, OK


def collect_checks() -> list[Check]:
    return [
        ("yt-relay", __version__, OK),
        _python_version_check(),
        *(_package_check(label, name) for label, name in RUNTIME_PACKAGES),
        _os_check(),
    ]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def run_doctor() -> int:
    """Execute all checks and render a summary table.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS` when every check passes,
        :data:`exit_codes.GENERAL_ERROR` otherwise.
    """
    from rich.table import Table

    checks = collect_checks()
    has_failure = any("FAIL" in status for _, _, status in checks)

    table = Table(
        title="yt-relay doctor",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
    )
    table.add_column("Component", style="bold", min_width=12)
    table.add_column("Value", min_width=20)
    table.add_column("Status", justify="center", min_width=8)
    for label, value, status in checks:
        table.add_row(label, value, status)

    console.print()
    console.print(table)
    console.print()

    if has_failure:
        console.print("[bold red]Some checks failed.[/bold red]")
        return exit_codes.GENERAL_ERROR
    console.print("[bold green]All checks passed.[/bold green]")
    return exit_codes.SUCCESS
