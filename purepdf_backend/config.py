from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


# purepdf_backend/ -> project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_PORT = 3000
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024  # 50MB

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    upload_dir: Path = PROJECT_ROOT / "uploads"
    files_dir: Path = PROJECT_ROOT / "files"
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    # Wait after the download finished before deleting both temp files.
    cleanup_delay_seconds: float = 1.0
    chromium_executable: Optional[str] = None
    render_timeout_seconds: float = 60.0
    max_concurrent_renders: int = 2
    render_queue_timeout_seconds: float = 30.0
    # Append engine/exception text to error messages sent to the client.
    expose_error_details: bool = True
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _int(environ: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = _get(environ, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(environ, name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def _bool(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(environ, name)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def _dir(environ: Mapping[str, str], name: str, default: Path) -> Path:
    raw = _get(environ, name)
    return (Path(raw) if raw else default).resolve()


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Resolve settings from environment variables.

    PORT and PUPPETEER_EXECUTABLE_PATH are read under their conventional names
    so existing container configs keep working.
    """
    env = os.environ if environ is None else environ

    executable = _get(env, "PUREPDF_CHROMIUM_EXECUTABLE") or _get(env, "PUPPETEER_EXECUTABLE_PATH")
    origins_raw = _get(env, "PUREPDF_CORS_ORIGINS") or "*"
    origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip()) or ("*",)

    return Settings(
        host=_get(env, "HOST") or "0.0.0.0",
        port=_int(env, "PORT", DEFAULT_PORT, minimum=1),
        upload_dir=_dir(env, "PUREPDF_UPLOAD_DIR", PROJECT_ROOT / "uploads"),
        files_dir=_dir(env, "PUREPDF_FILES_DIR", PROJECT_ROOT / "files"),
        max_upload_bytes=_int(env, "PUREPDF_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES, minimum=1),
        cleanup_delay_seconds=_float(env, "PUREPDF_CLEANUP_DELAY_SECONDS", 1.0),
        chromium_executable=executable,
        render_timeout_seconds=_float(env, "PUREPDF_RENDER_TIMEOUT_SECONDS", 60.0),
        max_concurrent_renders=_int(env, "PUREPDF_MAX_CONCURRENT_RENDERS", 2, minimum=1),
        render_queue_timeout_seconds=_float(env, "PUREPDF_RENDER_QUEUE_TIMEOUT_SECONDS", 30.0),
        expose_error_details=_bool(env, "PUREPDF_EXPOSE_ERROR_DETAILS", True),
        cors_origins=origins,
        log_level=(_get(env, "PUREPDF_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
