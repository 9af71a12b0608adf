from dataclasses import dataclass
import os
from typing import Mapping, Optional

DEFAULT_API_PORT = "5000"
DEFAULT_TIMEOUT = 30.0
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50 MB per file

KEYS_PATH = "/keys/{recipient_id}"
UPLOAD_PATH = "/files/upload"


def resolve_api_base(env: Optional[Mapping[str, str]] = None) -> str:
    """
    Backend base URL: PQSHARE_API_BASE_URL when set (without a trailing
    slash), otherwise localhost on PQSHARE_API_PORT.
    """
    env = os.environ if env is None else env
    url = (env.get("PQSHARE_API_BASE_URL") or "").strip()
    if url:
        return url.rstrip("/")
    port = (env.get("PQSHARE_API_PORT") or DEFAULT_API_PORT).strip()
    return f"http://localhost:{port}"


@dataclass(frozen=True)
class ClientConfig:
    api_base: str
    request_timeout: float = DEFAULT_TIMEOUT
    max_file_size: int = MAX_FILE_SIZE

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ClientConfig":
        env = os.environ if env is None else env
        timeout = env.get("PQSHARE_TIMEOUT")
        return cls(
            api_base=resolve_api_base(env),
            request_timeout=float(timeout) if timeout else DEFAULT_TIMEOUT,
        )
