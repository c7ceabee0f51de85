"""Local configuration for the agent-side CLI."""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel

APP_NAME = "claude-afk"
DEFAULT_API_URL = "https://claude-afk.treeleaf.dev"

POLL_INTERVAL = 2.0  # seconds
SETUP_TIMEOUT = 300.0  # 5 minutes
DECISION_POLL_INTERVAL = 2.0
DECISION_TIMEOUT = 120.0  # 2 minutes

logger = logging.getLogger(__name__)


def config_dir() -> Path:
    override = os.getenv("CLAUDE_AFK_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / f".{APP_NAME}"


def config_path() -> Path:
    return config_dir() / "config.json"


def log_file_path() -> Path:
    return config_dir() / "debug.log"


def get_backend_url(config: "CliConfig | None" = None) -> str:
    # Env var (local development) > URL saved at pairing time > production default
    url = os.getenv("CLAUDE_AFK_API_URL") or (config.backend_url if config else "") or DEFAULT_API_URL
    return url.rstrip("/")


def get_app_url(config: "CliConfig | None" = None) -> str:
    """Origin of the phone web app that serves /pair/{token}.

    The relay API only exposes the page data (/api/pair/{token}); the page itself
    lives with the web app, which by default shares the API's origin.
    """
    url = os.getenv("CLAUDE_AFK_APP_URL") or get_backend_url(config)
    return url.rstrip("/")


class CliConfig(BaseModel):
    device_token: str | None = None
    backend_url: str = DEFAULT_API_URL
    active: bool = False

    @property
    def should_notify(self) -> bool:
        return bool(self.device_token) and self.active

    @classmethod
    def load(cls) -> "CliConfig":
        path = config_path()
        if not path.exists():
            return cls()
        try:
            return cls.model_validate(json.loads(path.read_text()))
        except (ValueError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", path, exc)
            return cls()

    def save(self) -> None:
        path = config_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2))


LOG_HANDLER_NAME = f"{APP_NAME}-cli"


def configure_logging() -> None:
    """File logging next to the config, only when CLAUDE_AFK_DEBUG is set.

    Hooks talk to the agent over stdout/stderr, so nothing is logged to the console.
    Safe to call repeatedly: the handler installed by a previous call is replaced.
    """
    root = logging.getLogger("afk_relay")
    for old in [h for h in root.handlers if h.get_name() == LOG_HANDLER_NAME]:
        root.removeHandler(old)
        old.close()

    handler: logging.Handler
    if os.getenv("CLAUDE_AFK_DEBUG"):
        path = log_file_path()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path)
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s - %(name)s - %(message)s"))
        root.setLevel(logging.DEBUG)
    else:
        handler = logging.NullHandler()
    handler.set_name(LOG_HANDLER_NAME)
    root.addHandler(handler)
