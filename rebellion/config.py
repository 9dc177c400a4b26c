"""
Configuration - Environment-driven settings for the engine and API.

All settings come from environment variables so the same build runs in
development, tests and production. Values are read once per call to
load_settings(); the API factory and the CLI each load their own copy.
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import os


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


@dataclass
class Settings:
    """Runtime settings for a rebellion process."""
    env: str = "development"
    allowed_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    # Rules knobs
    event_ttl_ms: int = 3000
    victory_points_to_win: int = 50
    initial_hand_size: int = 7
    auto_advance: bool = True

    # Test hook: None means "decide by leader initial points"
    force_first_player: int | None = None

    # Randomness
    seed_salt: str = "rebellion"

    # Card data directory override (None = packaged data)
    card_data_dir: str | None = None

    enable_test_routes: bool = True

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    env = os.getenv("REBELLION_ENV", "development")
    force_first = _env_optional_int("REBELLION_FORCE_FIRST_PLAYER")
    if force_first is not None and force_first not in (0, 1):
        raise ValueError("REBELLION_FORCE_FIRST_PLAYER must be 0 or 1")

    return Settings(
        env=env,
        allowed_origins=os.getenv("ALLOWED_ORIGINS", "*").split(","),
        log_level=os.getenv("REBELLION_LOG_LEVEL", "INFO").upper(),
        event_ttl_ms=int(os.getenv("REBELLION_EVENT_TTL_MS", "3000")),
        victory_points_to_win=int(os.getenv("REBELLION_VICTORY_POINTS", "50")),
        auto_advance=_env_flag("REBELLION_AUTO_ADVANCE", True),
        force_first_player=force_first,
        seed_salt=os.getenv("REBELLION_SEED_SALT", "rebellion"),
        card_data_dir=os.getenv("REBELLION_CARD_DATA") or None,
        enable_test_routes=_env_flag("REBELLION_ENABLE_TEST_ROUTES", env != "production"),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a basic root handler once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    root.setLevel(level)
