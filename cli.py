"""CLI entry point for ollama-shim."""

import argparse
import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from core.config import AppConfig, ConfigOverrides, load_config
from core.exceptions import ConfigurationError
from core.keys import split_keys
from core.state import build_state
from ui.dashboard import ConsoleLogger, Dashboard
from ui.log_utils import clear_logs, mask, write_cli_log

console = Console()


def build_parser() -> argparse.ArgumentParser:
    """Command-line flags; each one overrides its environment variable."""
    parser = argparse.ArgumentParser(
        prog="ollama-shim",
        description="API-key authenticating reverse proxy for a local Ollama service.",
    )
    parser.add_argument("--ollama-url", help="Base URL for the Ollama service (overrides OLLAMA_URL)")
    parser.add_argument(
        "--api-keys",
        type=split_keys,
        help="Comma-separated list of API keys (overrides all environment key sources)",
    )
    parser.add_argument("--api-keys-file", help="Path to a newline-/comma-separated file of keys")
    parser.add_argument("--api-keys-sqlite", help="Path to a SQLite database with table api_keys(key TEXT)")
    parser.add_argument("--proxy-host", help="Address to bind the proxy to (overrides PROXY_HOST)")
    parser.add_argument("--proxy-port", type=int, help="Port to bind the proxy to (overrides PROXY_PORT)")
    parser.add_argument(
        "--upstream-timeout",
        type=float,
        help="Seconds to wait on the upstream (default: no timeout)",
    )
    parser.add_argument("--check", action="store_true", help="Show resolved configuration and exit")
    parser.add_argument("--plain", action="store_true", help="Log one line per request instead of the live dashboard")
    return parser


def overrides_from_args(args: argparse.Namespace) -> ConfigOverrides:
    return ConfigOverrides(
        ollama_url=args.ollama_url,
        proxy_host=args.proxy_host,
        proxy_port=args.proxy_port,
        api_keys_sqlite=args.api_keys_sqlite,
        api_keys_file=args.api_keys_file,
        api_keys=args.api_keys,
        upstream_timeout=args.upstream_timeout,
    )


def print_config_status(config: AppConfig) -> None:
    """Print the resolved configuration with keys masked."""
    console.print(f"[bold]Upstream:[/bold] {config.ollama_url}")
    console.print(f"[bold]Listen:[/bold] {config.listen_address}")
    timeout = f"{config.upstream_timeout}s" if config.upstream_timeout is not None else "none"
    console.print(f"[bold]Upstream timeout:[/bold] {timeout}")
    console.print(f"[bold]Key source:[/bold] {config.key_source}")
    if config.valid_keys:
        console.print(f"[green]{len(config.valid_keys)} API key(s) loaded[/green]")
        for key in config.valid_keys:
            console.print(f"  {mask(key)}")
    else:
        console.print("[yellow]No API keys configured[/yellow] (every request will be rejected)")


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(overrides_from_args(args))
    except (ConfigurationError, ValueError) as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    if args.check:
        print_config_status(config)
        return

    if not config.valid_keys:
        console.print("[yellow]Warning:[/yellow] No API keys configured; every request will be rejected")

    import uvicorn

    clear_logs()
    logger = ConsoleLogger() if args.plain else Dashboard(config)
    app = create_app(build_state(config), logger)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy_host,
        port=config.proxy_port,
        log_level="warning",
    )
    server = uvicorn.Server(uvicorn_config)

    if isinstance(logger, Dashboard):
        logger.start()
    else:
        console.print(f"Listening on {config.listen_address}")
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", listen=config.listen_address, upstream=config.ollama_url)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        if isinstance(logger, Dashboard):
            logger.stop()


if __name__ == "__main__":
    main()
