from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

DEFAULT_ROOT_DIR = "/data"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080
DEFAULT_CERT_FILE = "certs/cert.pem"
DEFAULT_KEY_FILE = "certs/key.pem"

LOG_FORMAT = "%(levelname)s %(name)s - %(message)s"


class ConfigError(ValueError):
    """Raised when the environment describes an unusable configuration."""


@dataclass(frozen=True)
class Settings:
    root_dir: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    use_tls: bool = False
    cert_file: Path = Path(DEFAULT_CERT_FILE)
    key_file: Path = Path(DEFAULT_KEY_FILE)
    confine_symlinks: bool = False
    log_level: str = "INFO"

    @property
    def bind_address(self) -> str:
        return f"{self.host}:{self.port}"


def _getenv(environ: Mapping[str, str], key: str, default: str) -> str:
    value = environ.get(key)
    return value if value else default


def _flag(environ: Mapping[str, str], key: str) -> bool:
    return _getenv(environ, key, "false").strip().lower() == "true"


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings from the environment and prepare the browsing root.

    The root directory is created if missing. TLS material must already exist
    when ``USE_TLS`` is enabled.
    """

    environ = os.environ if environ is None else environ

    raw_port = _getenv(environ, "PORT", str(DEFAULT_PORT))
    try:
        port = int(raw_port)
    except ValueError as exc:
        raise ConfigError(f"PORT must be an integer, got {raw_port!r}") from exc

    root_dir = Path(os.path.abspath(_getenv(environ, "ROOT_DIR", DEFAULT_ROOT_DIR)))
    try:
        root_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"failed to ensure ROOT_DIR {root_dir}: {exc}") from exc
    if not root_dir.is_dir():
        raise ConfigError(f"ROOT_DIR {root_dir} is not a directory")

    settings = Settings(
        root_dir=root_dir,
        host=_getenv(environ, "HOST", DEFAULT_HOST),
        port=port,
        use_tls=_flag(environ, "USE_TLS"),
        cert_file=Path(_getenv(environ, "CERT_FILE", DEFAULT_CERT_FILE)),
        key_file=Path(_getenv(environ, "KEY_FILE", DEFAULT_KEY_FILE)),
        confine_symlinks=_flag(environ, "FILE_BROWSER_CONFINE_SYMLINKS"),
        log_level=_getenv(environ, "LOG_LEVEL", "INFO").upper(),
    )

    if not isinstance(logging.getLevelName(settings.log_level), int):
        raise ConfigError(f"LOG_LEVEL {settings.log_level!r} is not a logging level")

    if settings.use_tls:
        for path, what in ((settings.cert_file, "certificate"), (settings.key_file, "private key")):
            if not path.is_file():
                raise ConfigError(f"{what} not found at {path}")

    return settings


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("file_browser")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
