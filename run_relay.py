#!/usr/bin/env python3
"""Launcher script for transcript-relay.

Runs the relay from a source checkout without installing it. All settings
come from RELAY_* environment variables (see transcript_relay.config), e.g.:

    RELAY_PLAYER_ID=player-01 RELAY_SOURCE_TYPE=codex \
    RELAY_ENDPOINT=https://collector.example/ingest ./run_relay.py
"""

import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent / "src"))


def main():
    """Main entry point."""
    try:
        from transcript_relay.cli import main as relay_main

        sys.exit(relay_main())

    except ImportError as e:
        print(f"Import error: {e}", file=sys.stderr)
        print("Please ensure dependencies are installed:", file=sys.stderr)
        print("pip install -e .", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
