import asyncio
import json
import logging
import os
import traceback
from collections.abc import Coroutine
from typing import Any, TypeVar

import click

from litepipe.sdk.stream import ProcessTerminated, SqlSyntaxError

TRUE_VALUES = ("1", "true", "yes", "on")


def get_env_flag(env_var: str, default: bool = False) -> bool:
    """Read a boolean flag such as ``LITEPIPE_READONLY`` from the environment."""
    value = os.environ.get(env_var, "").strip().lower()
    return value in TRUE_VALUES if value else default


def get_env_database() -> str | None:
    """Database used when ``--db`` is not given, from ``LITEPIPE_DATABASE``."""
    return os.environ.get("LITEPIPE_DATABASE") or None


def configure_logging(debug: bool = False) -> None:
    """Send library logs to stderr.

    Warnings and above by default. ``--debug`` or ``LITEPIPE_DEBUG`` turns on
    the per-statement protocol traffic logged by the stream layer.
    """
    if not debug:
        debug = get_env_flag("LITEPIPE_DEBUG")
    level = logging.DEBUG if debug else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    root_logger.addHandler(handler)
    logging.getLogger("litepipe").setLevel(level)


def format_error(error: Exception, debug: bool = False) -> dict[str, Any]:
    """Describe an error for output.

    A rejected statement carries the statement text and a dead shell carries
    its exit code, so both are reported alongside the message.
    """
    error_info: dict[str, Any] = {"error": str(error)}
    if isinstance(error, SqlSyntaxError) and error.statement:
        error_info["statement"] = error.statement
    elif isinstance(error, ProcessTerminated):
        error_info["returncode"] = error.returncode

    if debug:
        error_info["type"] = error.__class__.__name__
        error_info["traceback"] = traceback.format_exc()
    return error_info


def output_result(result: Any, json_output: bool = False) -> None:
    """Print a result as a JSON envelope or as plain lines."""
    if json_output:
        click.echo(json.dumps({"status": "ok", "result": result}, indent=2, default=str))
    elif isinstance(result, list):
        for item in result:
            click.echo(item)
    else:
        click.echo(result)


def output_error(error: Exception, json_output: bool = False, debug: bool = False) -> None:
    """Print an error and abort the command with a non-zero exit."""
    error_info = format_error(error, debug)

    if json_output:
        click.echo(json.dumps({"status": "error", **error_info}, indent=2, default=str))
    else:
        click.echo(f"Error: {error_info['error']}", err=True)
        if "statement" in error_info:
            click.echo(f"Statement: {error_info['statement']}", err=True)
        if debug:
            click.echo(f"\nTraceback:\n{error_info['traceback']}", err=True)

    raise click.Abort()


T = TypeVar("T")


def run_async_cli(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command's coroutine from the synchronous click entry point."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    coro.close()
    raise RuntimeError("Cannot run a litepipe command inside a running event loop")
