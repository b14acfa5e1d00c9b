"""Provider/runtime configuration for the image-editing layer.

Architectural role:
    Centralizes model selection, endpoint layout, and credential lookup for
    `watermark_nuker.editing.client` and the HTTP adapter.

Model call flow integration:
    - `load_settings()` snapshots the process environment into `Settings`.
    - `GeminiImageClient.from_settings` consumes the endpoint, model, key and
      timeout values; nothing reads the environment after construction.

Determinism:
    Deterministic for a fixed process environment and key files. `.env` is loaded
    once at import time.

Failure behavior:
    Missing key material is represented as `None`. The client reports it as a
    `RemoteCallError` at call time so the server can still start and serve
    previews without a credential.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


PROJECT_ROOT = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)

# Image editing model. The flash image model accepts an image plus text and
# answers with an edited image as inline data.
DEFAULT_MODEL_NAME = "gemini-2.5-flash-image"

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com/v1beta"

GEMINI_URL_TEMPLATE = "{base}/models/{model}:generateContent"

DEFAULT_KEY_FILE = os.path.join("config", "gemini.key")

# Inline request data to the image model is capped around 20 MB.
DEFAULT_MAX_UPLOAD_MB = 20.0

DEFAULT_SESSION_TTL = 3600.0


@dataclass(frozen=True)
class Settings:
    """Resolved runtime configuration.

    Attributes:
        api_key: Gemini credential, or `None` when not configured.
        model_name: Remote model identifier.
        api_base: REST base URL without trailing slash.
        timeout: Transport timeout in seconds; `None` keeps the transport default.
        upload_dir: Directory receiving spooled uploads.
        max_upload_mb: Largest accepted upload; `None` disables the cap.
        session_ttl: Seconds of inactivity after which a session is evicted;
            `None` keeps sessions until they are ended explicitly.
    """

    api_key: Optional[str]
    model_name: str = DEFAULT_MODEL_NAME
    api_base: str = DEFAULT_API_BASE
    timeout: Optional[float] = None
    upload_dir: str = os.path.join(PROJECT_ROOT, "uploads")
    max_upload_mb: Optional[float] = DEFAULT_MAX_UPLOAD_MB
    session_ttl: Optional[float] = DEFAULT_SESSION_TTL

    @property
    def max_upload_bytes(self) -> Optional[int]:
        if self.max_upload_mb is None:
            return None
        return int(self.max_upload_mb * 1024 * 1024)

    @property
    def generate_url(self) -> str:
        return GEMINI_URL_TEMPLATE.format(
            base=self.api_base.rstrip("/"), model=self.model_name
        )


def load_key(path):
    """Load API key from environment override or key file.

    Resolution order:
        1. Environment variable inferred from file stem (for example
           `config/gemini.key` -> `GEMINI_API_KEY`).
        2. Raw file contents at `path`.

    Args:
        path: Configured key file path or `None`.

    Returns:
        Key string or `None` when not available.

    Edge cases:
        - `None` path returns `None`.
        - Missing file returns `None`.
        - Whitespace-only content is treated as missing.
    """
    if not path:
        return None
    key_name = os.path.splitext(os.path.basename(path))[0].upper() + "_API_KEY"
    env_value = os.getenv(key_name)
    if env_value:
        return env_value.strip()
    if not os.path.exists(path):
        return None
    with open(path, "r") as f:
        return f.read().strip() or None


def _parse_positive(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    value = float(raw)
    return value if value > 0 else None


def _env_limit(name: str, default: Optional[float]) -> Optional[float]:
    """Positive number from `name`; unset keeps `default`, `0` disables the limit."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return _parse_positive(raw)


def load_settings() -> Settings:
    """Build `Settings` from the current environment.

    Raises:
        ValueError: `GEMINI_TIMEOUT`, `MAX_UPLOAD_MB` or `SESSION_TTL_SECONDS`
            is set but not a number.
    """
    return Settings(
        api_key=load_key(os.getenv("GEMINI_KEY_FILE", DEFAULT_KEY_FILE)),
        model_name=os.getenv("GEMINI_MODEL", DEFAULT_MODEL_NAME),
        api_base=os.getenv("GEMINI_API_BASE", DEFAULT_API_BASE),
        timeout=_parse_positive(os.getenv("GEMINI_TIMEOUT")),
        upload_dir=os.path.realpath(
            os.getenv("UPLOAD_DIR", os.path.join(PROJECT_ROOT, "uploads"))
        ),
        max_upload_mb=_env_limit("MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB),
        session_ttl=_env_limit("SESSION_TTL_SECONDS", DEFAULT_SESSION_TTL),
    )
