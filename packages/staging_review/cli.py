"""CLI for the ``staging_review`` package.

This module exposes callable command handlers (``cmd_review``, ``cmd_show``)
and a Typer-based console interface. Settings are resolved from CLI options,
``STAGING_REVIEW_*`` environment variables and a local ``.env`` (loaded with
``python-dotenv``). Review logic lives in :mod:`staging_review.session` and
related modules.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .client import StagingApiError, StagingClient
from .config import ReviewSettings, load_settings
from .logging_setup import configure_logging, get_logger
from .render import render_item, to_plain_text
from .session import NOTHING_TO_REVIEW_MESSAGE

logger = get_logger("staging_review.cli")

DEFAULT_LOG_FILE = "staging-review.log"


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


# ---- Command handlers --------------------------------------------------------


async def _show(settings: ReviewSettings) -> int:
    async with StagingClient(settings) as client:
        init = await client.init()
    if not init.items:
        print(NOTHING_TO_REVIEW_MESSAGE)
        return 0
    for item in init.items:
        print(to_plain_text(render_item(item)).rstrip())
        print()
    noun = "transaction" if len(init.items) == 1 else "transactions"
    print(f"{len(init.items)} {noun} pending review.")
    return 0


def cmd_show(*, base_url: str | None = None) -> int:
    """Print every pending item as plain text; return a process exit code."""

    try:
        settings = load_settings(base_url=base_url)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    try:
        return asyncio.run(_show(settings))
    except StagingApiError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


async def _review(settings: ReviewSettings) -> None:
    # Deferred so `show` does not pay for the prompt_toolkit import
    from .runtime import ReviewRuntime
    from .session import SessionController
    from .term_ui import ReviewScreen

    controller = SessionController(default_account=settings.default_account)
    runtime = ReviewRuntime(controller, StagingClient(settings))
    screen = ReviewScreen(runtime, settings)
    await screen.run_async()


def cmd_review(
    *,
    base_url: str | None = None,
    log_level: str | None = None,
    log_file: str | None = None,
) -> int:
    """Run the interactive review screen; return a process exit code."""

    # The screen owns the terminal, so logs go to a file.
    configure_logging(log_level, log_file=log_file or DEFAULT_LOG_FILE)
    try:
        settings = load_settings(base_url=base_url)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    if not _is_interactive():
        print("Error: review needs an interactive terminal; try `show`.", file=sys.stderr)
        return 1

    logger.info("reviewing staging queue at %s", settings.base_url)
    asyncio.run(_review(settings))
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Review staged ledger transactions from a staging server and commit them "
        "with an expense account. Loads STAGING_REVIEW_* settings from a local .env."
    ),
)

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults).
URL_OPTION: OptionInfo = typer.Option(
    None, "--url", help="Staging server API base URL (falls back to STAGING_REVIEW_URL)."
)


@app.command("review")
def review_cmd(
    url: str | None = URL_OPTION,
    *,
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to STAGING_REVIEW_LOG_LEVEL, then INFO)."
    ),
    log_file: str | None = typer.Option(
        None,
        envvar="STAGING_REVIEW_LOG_FILE",
        help=f"Log file path (default {DEFAULT_LOG_FILE}).",
    ),
) -> None:
    """Review pending transactions one at a time."""

    raise typer.Exit(cmd_review(base_url=url, log_level=log_level, log_file=log_file))


@app.command("show")
def show_cmd(url: str | None = URL_OPTION) -> None:
    """Print pending transactions without interaction."""

    raise typer.Exit(cmd_show(base_url=url))


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) before any subcommand runs.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # `review` configures file logging itself
    if ctx.invoked_subcommand != "review":
        configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m staging_review.cli`
    app()
