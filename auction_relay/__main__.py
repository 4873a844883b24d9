"""Run the relay with uvicorn using the configured listen address."""

from __future__ import annotations

import uvicorn

from .config import get_server_config


def main() -> None:
    listen = get_server_config().listen
    uvicorn.run(
        "auction_relay.main:app",
        host=str(listen.get("host", "0.0.0.0")),
        port=int(listen.get("port", 3000)),
        log_level=str(listen.get("log_level", "info")),
    )


if __name__ == "__main__":
    main()
