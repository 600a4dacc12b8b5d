#!/usr/bin/env python3
"""
Bashbot - ChatOps Command Dispatcher for Slack
==============================================

Main entry point for bashbot.

Usage:
    python main.py --config-file config.yaml
    python main.py --install-vendor-dependencies   # Install vendor deps, then connect
    python main.py --help                          # Show help

Tokens are read from SLACK_BOT_TOKEN / SLACK_APP_TOKEN unless given as flags.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from api.gateway import SlackGateway
from api.messenger import SlackMessenger
from commands.registry import Catalog
from core.dispatcher import Dispatcher
from core.errors import CatalogError, ConfigurationError
from infra.config import Settings, load_settings
from infra.logging import configure_logging
from tools.executor import ShellExecutor
from tools.vendor import install_vendor_dependencies


# Setup rich console
console = Console()


def print_banner(catalog: Catalog) -> None:
    """Print the bashbot banner."""
    admin = catalog.admin
    banner = Text()
    banner.append(admin.app_name, style="bold cyan")
    banner.append(" - ChatOps command dispatcher\n\n", style="dim")
    banner.append("Trigger: ", style="dim")
    banner.append(admin.trigger, style="bold green")
    banner.append(f" | Tools: {len(catalog)}", style="dim")
    console.print(Panel(banner, title="Welcome", border_style="blue"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bashbot - run whitelisted shell commands from Slack"
    )
    parser.add_argument(
        "--config-file", "-c",
        default=None,
        help="Path to the bashbot YAML config (or BASHBOT_CONFIG_FILEPATH)"
    )
    parser.add_argument(
        "--slack-bot-token",
        default=None,
        help="Slack bot token (or SLACK_BOT_TOKEN)"
    )
    parser.add_argument(
        "--slack-app-token",
        default=None,
        help="Slack app-level token for Socket Mode (or SLACK_APP_TOKEN)"
    )
    parser.add_argument(
        "--log-level", "-l",
        default=None,
        help="Log level: debug | info | warn | error (or LOG_LEVEL)"
    )
    parser.add_argument(
        "--log-format",
        default=None,
        help="Log format: text | json (or LOG_FORMAT)"
    )
    parser.add_argument(
        "--install-vendor-dependencies",
        action="store_true",
        help="Run each dependency's install command in ./vendor before connecting"
    )
    return parser


def run(settings: Settings, install_vendor: bool = False) -> None:
    """Load the catalog, wire the dispatcher and block on the socket."""
    logger = logging.getLogger("bashbot.main")

    catalog = Catalog.load(settings.config_file)
    logger.info(f"Loaded {len(catalog)} tools from {settings.config_file}")

    executor = ShellExecutor(timeout_seconds=settings.command_timeout)
    if install_vendor:
        install_vendor_dependencies(catalog.dependencies, executor)

    messenger = SlackMessenger(bot_token=settings.bot_token)
    dispatcher = Dispatcher(catalog, messenger, executor=executor)
    gateway = SlackGateway(
        dispatcher.handle,
        client=messenger.client,
        app_token=settings.app_token,
        trigger=catalog.admin.trigger,
    )

    print_banner(catalog)
    try:
        gateway.start()
    finally:
        gateway.close()


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(
            config_file=args.config_file,
            bot_token=args.slack_bot_token,
            app_token=args.slack_app_token,
            log_level=args.log_level,
            log_format=args.log_format,
        )
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 2

    configure_logging(settings.log_level, settings.log_format, console=console)
    logger = logging.getLogger("bashbot.main")

    try:
        run(settings, install_vendor=args.install_vendor_dependencies)
        return 0

    except CatalogError as e:
        logger.error(f"Invalid config file: {e}")
        return 1
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except Exception as e:
        logger.exception("Fatal error")
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
