"""
Command-Line Interface for tts-proxy.

Starts the HTTP server with uvicorn, or prints the resolved configuration
without starting anything.

Usage Examples:
    # Serve on the configured host/port (default 0.0.0.0:3001)
    tts-proxy

    # Override address and settings file
    tts-proxy --host 127.0.0.1 --port 8080 --config config/settings.yaml

    # Show resolved configuration and exit
    tts-proxy --check --json

Environment Variables:
    TTS_PROXY_SETTINGS: Settings file path
    TTS_PROXY_DAILY_LIMIT: Per-client request limit
    TTS_PROXY_LOG_LEVEL: Log level (1-4)
    AWS_REGION: Polly region
    HOST / PORT: Listening address
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import asdict
from typing import List, Optional

import uvicorn

from tts_proxy.api.dependencies import get_app_config, reset_dependencies
from tts_proxy.core.logging import configure_logging, get_logger, info


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="tts-proxy (rate-limited streaming TTS)")

    parser.add_argument("--host", help="Bind address override")
    parser.add_argument("--port", type=int, help="Port override")
    parser.add_argument("--config", help="Settings YAML path")
    parser.add_argument("--log-level", help="Log level (1-4 or MINIMAL/NORMAL/VERBOSE/DEBUG)")

    parser.add_argument("--check", action="store_true",
                        help="Validate and print the resolved config, then exit")
    parser.add_argument("--json", action="store_true",
                        help="Print --check output as JSON")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Optional list of command-line arguments.

    Returns:
        Exit code (0 for success).
    """
    args = _parse_args(argv)

    # Settings and logging are read from the environment, set before loading
    if args.config:
        os.environ["TTS_PROXY_SETTINGS"] = args.config
    if args.log_level:
        os.environ["TTS_PROXY_LOG_LEVEL"] = str(args.log_level)

    reset_dependencies()
    configure_logging(force=True)
    log = get_logger("tts-proxy.cli")

    config = get_app_config()
    host = args.host or config.server.host
    port = args.port or config.server.port

    if args.check:
        payload = {"ok": True, "host": host, "port": port, **asdict(config)}
        if args.json:
            print(json.dumps(payload))
        else:
            print(payload)
        print("CONFIG_OK")
        return 0

    info(log, "server_starting", host=host, port=port,
         daily_limit=config.quota.daily_limit, region=config.provider.region)

    uvicorn.run("tts_proxy.main:create_app", factory=True, host=host, port=port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
