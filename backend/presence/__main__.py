"""Run the presence server: python -m presence."""

import uvicorn

from presence.server.settings import PresenceServerSettings


def main() -> None:
    settings = PresenceServerSettings()
    uvicorn.run(
        "presence.server.app:get_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        # transport-level pings back up the application heartbeat
        ws_ping_interval=settings.heartbeat_interval_seconds,
        ws_ping_timeout=settings.heartbeat_timeout_seconds,
        log_config=None,
    )


if __name__ == "__main__":
    main()
