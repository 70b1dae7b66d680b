"""Command-line entry point for transcript-relay.

Configuration is read from ``RELAY_*`` environment variables, optionally
layered over a YAML file named by ``RELAY_CONFIG``.
"""

import asyncio
import signal
import sys

from .config import TRANSCRIPT_SUFFIX, RelayConfig, load_config
from .errors import ConfigError
from .logging_manager import LoggingManager
from .service import RelayService


def print_banner(config: RelayConfig) -> None:
    """Print the startup summary."""
    print("")
    print("=" * 53)
    print("  transcript-relay")
    print("=" * 53)
    print(f"Source Type: {config.source_type.value}")
    print(f"Watching: {config.resolved_root}/**/*{TRANSCRIPT_SUFFIX}")
    print(f"Player ID: {config.player_id}")
    print(f"Endpoint: {config.endpoint or 'Not configured'}")
    print(f"Positions: {config.state_file}")
    print("")

    if not config.endpoint:
        print("WARNING: No endpoint configured. Messages will not be sent.")
        print("   Set RELAY_ENDPOINT to the collector URL")
        print("")


async def run(config: RelayConfig) -> dict[str, int]:
    """Run the relay until SIGINT or SIGTERM."""
    service = RelayService(config)
    stop_requested = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_requested.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop_requested.set))

    await service.start()
    print("Relay started successfully")
    print("Press Ctrl+C to stop\n")

    try:
        await stop_requested.wait()
    finally:
        print("")
        print("Shutting down gracefully...")
        stats = await service.stop()
        print(f"\nTotal messages sent: {stats['message_count']}")
    return stats


def main() -> int:
    """Console script entry point."""
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    LoggingManager(
        log_level=config.log_level,
        log_dir=config.log_dir,
        debug_components=config.debug_components,
    )
    print_banner(config)

    asyncio.run(run(config))
    return 0
