from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from noteboard.server.runtime import ServerRuntime

log = logging.getLogger("noteboard.cmd.server")


def load_config(
    config_path: Optional[Path] = None,
    env: Mapping[str, str] = os.environ,
) -> Dict[str, Any]:
    """YAML file (optional) overlaid with environment variables."""

    config: Dict[str, Any] = {}
    if config_path is not None:
        config = yaml.safe_load(config_path.read_text()) or {}

    if env.get("NOTEBOARD_LISTEN"):
        config["listen"] = env["NOTEBOARD_LISTEN"]
    if env.get("PORT"):
        host = config.get("listen", "0.0.0.0:3001").rsplit(":", 1)[0]
        config["listen"] = f"{host}:{int(env['PORT'])}"
    if env.get("NOTEBOARD_DB"):
        config["db_path"] = env["NOTEBOARD_DB"]
    return config


async def _run(config: Dict[str, Any]) -> None:
    runtime = ServerRuntime(config)
    await runtime.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop_event.set)
    except NotImplementedError:
        pass

    log.info("Server running. Press Ctrl+C to stop.")
    try:
        await stop_event.wait()
    finally:
        await runtime.stop()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="noteboard collaborative note server")
    parser.add_argument("--config", help="Path to server YAML config")
    parser.add_argument("--listen", help="host:port to bind (overrides config)")
    parser.add_argument("--db", dest="db_path", help="SQLite database path (overrides config)")
    args = parser.parse_args(argv)

    config = load_config(Path(args.config) if args.config else None)
    if args.listen:
        config["listen"] = args.listen
    if args.db_path:
        config["db_path"] = args.db_path

    level = str(config.get("log_level", "INFO")).upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    asyncio.run(_run(config))


if __name__ == "__main__":
    main()
