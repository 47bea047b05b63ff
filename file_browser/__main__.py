from __future__ import annotations

import sys

import uvicorn

from file_browser.api.main import create_app
from file_browser.config import ConfigError, configure_logging, load_settings


def main() -> int:
    try:
        settings = load_settings()
    except ConfigError as exc:
        configure_logging().error("%s", exc)
        return 2

    logger = configure_logging(settings.log_level)
    app = create_app(settings)

    logger.info(
        "File Browser serving %s on %s (TLS=%s)",
        settings.root_dir,
        settings.bind_address,
        settings.use_tls,
    )
    tls = {}
    if settings.use_tls:
        tls = {"ssl_certfile": str(settings.cert_file), "ssl_keyfile": str(settings.key_file)}
    uvicorn.run(app, host=settings.host, port=settings.port, **tls)
    return 0


if __name__ == "__main__":
    sys.exit(main())
