"""Main entry point for the quicknote application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Any, Coroutine, Dict, List, Optional

import typer
from typing_extensions import Annotated

# --- Core Layer ---
from quicknote.core.command_handler import CommandHandler
from quicknote.core.services.note_service import NoteService

# --- Domain Layer ---
from quicknote.domain.events.api_events import RateLimitStatusChanged

# --- Infrastructure Layer ---
# Config
from quicknote.infrastructure.config.settings import (
    get_api_base_url,
    get_api_version,
    get_cache_ttl,
    get_config,
    get_request_timeout,
    get_store_path,
    load_configuration,
)
from quicknote.infrastructure.config.store import YamlConfigStore
# UI
from quicknote.infrastructure.cli.display import ConsoleDisplay
# Cache
from quicknote.infrastructure.cache.caching_service import SingleSlotCache
# Events
from quicknote.infrastructure.events.dispatcher import EventDispatcher
# HTTP / Notion
from quicknote.infrastructure.http.connection_pool import ConnectionPool
from quicknote.infrastructure.notion.api_client import NotionApiClient
# Resilience
from quicknote.infrastructure.resilience.rate_limiter import RateLimitManager
# Monitoring
from quicknote.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. A single RateLimitManager is shared by
    every API call the process makes.
    """
    dependencies: Dict[str, Any] = {}
    try:
        # 1. Load Configuration First
        load_configuration()
        log_level_name = str(get_config('logging.level', 'WARNING')).upper()
        log_level = getattr(logging, log_level_name, logging.WARNING)
        setup_logging(
            log_level=log_level,
            log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
            log_file=get_config('logging.file'),
        )
        logger.info("Configuration and logging initialized.")

        # 2. Instantiate Infrastructure Adapters & Services
        dependencies['ui'] = ConsoleDisplay()
        dependencies['dispatcher'] = EventDispatcher()
        dependencies['rate_limits'] = RateLimitManager()
        dependencies['pages_cache'] = SingleSlotCache(ttl=get_cache_ttl())
        dependencies['pool'] = ConnectionPool(
            base_url=get_api_base_url(),
            api_version=get_api_version(),
            timeout_seconds=get_request_timeout(),
        )
        dependencies['api_client'] = NotionApiClient(
            pool=dependencies['pool'],
            rate_limits=dependencies['rate_limits'],
            pages_cache=dependencies['pages_cache'],
            dispatcher=dependencies['dispatcher'],
        )
        dependencies['config_store'] = YamlConfigStore(path=get_store_path())

        # 3. Instantiate Core Services
        dependencies['note_service'] = NoteService(
            api_client=dependencies['api_client'],
            config_store=dependencies['config_store'],
            rate_limits=dependencies['rate_limits'],
            dispatcher=dependencies['dispatcher'],
        )

        # 4. Instantiate Command Handler
        dependencies['command_handler'] = CommandHandler(
            note_service=dependencies['note_service'],
            ui=dependencies['ui'],
        )

        # 5. Presentation follows the rate limit status after every operation
        dependencies['dispatcher'].subscribe(
            RateLimitStatusChanged,
            lambda event: _show_status_if_constrained(dependencies['ui'], event),
        )

        logger.info("All dependencies initialized successfully.")
        return dependencies

    except Exception as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        if dependencies.get('ui'):
            dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        else:
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
        sys.exit(1)


def _show_status_if_constrained(ui: ConsoleDisplay, event: RateLimitStatusChanged) -> None:
    """Only surfaces the quota line once usage is past the warning threshold."""
    if event.status.level != "normal":
        ui.display_rate_limit_status(event.status)


# --- Get Wired-up Dependencies ---
_dependencies: Optional[Dict[str, Any]] = None


def _get_dependencies() -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies


def _handler() -> CommandHandler:
    return _get_dependencies()['command_handler']


# --- Typer App Definition ---
app = typer.Typer(
    name="quicknote",
    help="quicknote: capture timestamped notes into a Notion page from the terminal.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---
async def _run_and_close(coro: Coroutine[Any, Any, bool]) -> bool:
    try:
        return await coro
    finally:
        # Pooled clients are bound to this event loop
        await _get_dependencies()['pool'].aclose()


def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs an async handler from a sync Typer command; exits 1 when it reports failure."""
    try:
        succeeded = asyncio.run(_run_and_close(coro))
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        _get_dependencies()['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)
    if succeeded is False:
        raise typer.Exit(code=1)

# --- CLI Commands ---

PageOption = Annotated[
    Optional[str],
    typer.Option("--page", "-p", help="Page ID to use instead of the selected page."),
]


@app.command(name="set-token")
def set_token_command(
    token: Annotated[str, typer.Argument(help="Notion integration token (secret_...).")],
):
    """Verifies a Notion API token and saves it."""
    run_async(_handler().handle_set_token(token))


@app.command()
def verify():
    """Checks that the saved API token is accepted by Notion."""
    run_async(_handler().handle_verify())


@app.command()
def pages():
    """Lists the pages shared with the integration."""
    run_async(_handler().handle_list_pages())


@app.command()
def select(
    page_id: Annotated[str, typer.Argument(help="ID of the page notes are appended to.")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Title to remember; looked up when omitted.")] = None,
):
    """Selects the page notes are appended to."""
    run_async(_handler().handle_select_page(page_id, title))


@app.command(name="page-info")
def page_info_command(
    page_id: Annotated[str, typer.Argument(help="ID of the page to look up.")],
):
    """Shows the title and URL of a page."""
    run_async(_handler().handle_page_info(page_id))


@app.command()
def note(
    text: Annotated[List[str], typer.Argument(help="Note text; words are joined with spaces.")],
    page: PageOption = None,
):
    """Appends a timestamped note to the selected page."""
    run_async(_handler().handle_append_note(" ".join(text), page_id=page))


@app.command()
def status():
    """Shows the current Notion API quota for the saved token."""
    if not _handler().handle_status():
        raise typer.Exit(code=1)


@app.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context):
    """Main entry point. Starts interactive capture if no command is given."""
    if ctx.invoked_subcommand is None:
        logger.info("No command invoked, starting interactive capture mode.")
        run_async(_capture())


async def _capture() -> bool:
    await _handler().start_capture()
    return True

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    logger.info("Starting quicknote application...")
    app()  # Typer takes over
    logger.info("quicknote application finished.")


if __name__ == "__main__":
    cli_entry_point()
