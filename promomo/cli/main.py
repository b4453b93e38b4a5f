"""
PromoMo CLI Main Entry Point

Command-line client for the PromoMo marketing assistant: streamed chat with
generated media and documents, and conversation history management.
"""

import sys

import typer

# Load project environment variables immediately upon module import
from promomo.core.env_loader import load_project_env

# Initialize environment before any other imports that depend on it
load_project_env()

from promomo.cli._globals import set_global_config
from promomo.cli.commands import chat, history
from promomo.cli.config import get_config
from promomo.cli.lib.state_manager import get_state_value, update_state
from promomo.core.logger import configure_logging, get_logger

logger = get_logger("promomo.cli")


def config_callback(
    api_base: str = typer.Option(
        None,
        "--api-base",
        help="Backend API base URL (e.g., http://localhost:8000/api/v1). Overrides PROMOMO_API_BASE env var.",
        envvar="PROMOMO_API_BASE",
    ),
    token: str = typer.Option(
        None,
        "--token",
        help="Bearer token for the API. Overrides PROMOMO_API_TOKEN env var.",
        envvar="PROMOMO_API_TOKEN",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output results in JSON format instead of plain text.",
    ),
    timeout: int = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds. Overrides PROMOMO_CLI_TIMEOUT env var.",
        envvar="PROMOMO_CLI_TIMEOUT",
    ),
    save_token: bool = typer.Option(
        False,
        "--save-token",
        help="Remember the --token value for later invocations.",
    ),
) -> None:
    """Global options callback. Sets configuration for all commands."""
    configure_logging()

    output_format = "json" if json_output else None
    config = get_config(
        api_base=api_base,
        api_token=token,
        timeout=timeout,
        output_format=output_format,  # type: ignore
        saved_token=get_state_value("token"),
    )
    set_global_config(config)
    logger.debug("CLI config: %s", config.to_dict())

    try:
        update_state("last_api_base", config.api_base)
        if save_token and token:
            update_state("token", token)
    except OSError as e:
        logger.warning("Could not persist CLI state: %s", e)


app = typer.Typer(
    name="promomo",
    help="PromoMo: marketing assistant chat client",
    no_args_is_help=True,
    callback=config_callback,
)

app.command()(chat.chat)
app.add_typer(history.history_app, name="history")


def main() -> None:
    """Main entry point for CLI."""
    try:
        app()
    except KeyboardInterrupt:
        print("\n[ABORTED] Aborted by user.", file=sys.stderr)
        sys.exit(0)
    except Exception as e:
        print(f"\n[ERROR] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
