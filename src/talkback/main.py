"""Talkback - Entry point for the terminal client."""

import argparse
import sys
from pathlib import Path

from talkback.config.settings import create_example_env_file, load_config
from talkback.core.errors import ConfigurationError


def main():
    parser = argparse.ArgumentParser(description="Talkback English conversation practice")
    parser.add_argument("--server", default=None, help="Tutor server URL (overrides SERVER_URL)")
    parser.add_argument("--mode", choices=["realtime", "roundtrip"], default="realtime",
                        help="Stream a realtime session or record and send utterances")
    parser.add_argument("--config", type=str, default=".env", help="Path to config file")
    parser.add_argument("--output-dir", type=str, default=".", help="Where round-trip reply audio is saved")
    parser.add_argument("--create-config", action="store_true", help="Create example config file")

    args = parser.parse_args()

    if args.create_config:
        create_example_env_file()
        print("Example configuration file created at .env.example")
        print("Please copy it to .env and adjust the settings.")
        return

    try:
        config = load_config(Path(args.config))
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)
    if args.server:
        config = config.model_copy(update={"server_url": args.server})

    from talkback.tui.app import TalkbackApp
    app = TalkbackApp(config=config, mode=args.mode, output_dir=Path(args.output_dir))
    app.run()


if __name__ == "__main__":
    main()
