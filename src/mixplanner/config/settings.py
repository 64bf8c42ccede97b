"""
Configuration management for the mix planner.

Settings come from environment variables, optionally seeded from a ``.env``
file in the working directory. Variables already set in the environment win
over the file.

The forecasting and optimization engine never reads these settings; they only
supply defaults to the API and CLI layers, which pass every value explicitly.
"""
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from mixplanner.utils.exceptions import ConfigurationError


class Environment(Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


@dataclass
class ForecastConfig:
    """Forecast defaults."""
    default_domain: str = "skincare"
    default_horizon_periods: int = 30


@dataclass
class OptimizationConfig:
    """Grid search and response curve defaults."""
    default_grid_step_pct: float = 5.0
    default_auxiliary_grid_step: Optional[float] = None
    max_workers: Optional[int] = None  # None runs the sweep serially
    curve_resolution: int = 50


@dataclass
class APIConfig:
    """API server configuration."""
    version: str = "0.1.0"
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    cors_methods: List[str] = field(default_factory=lambda: ["GET", "POST"])


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_dir: str = "logs"
    max_file_size_mb: int = 10
    backup_count: int = 5
    use_json: bool = True


def read_env_file(path: Path) -> None:
    """Copy KEY=VALUE lines from ``path`` into os.environ without overriding."""
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


def _env(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{name}={raw!r} is not a valid {cast.__name__}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Main application settings class."""

    def __init__(self, env: Optional[Environment] = None, env_file: Optional[Path] = Path(".env")):
        if env_file is not None and env_file.exists():
            read_env_file(env_file)
        self.env = env or Environment(os.getenv("MIXPLANNER_ENV", "development"))

        self.forecast = ForecastConfig(
            default_domain=os.getenv("DEFAULT_DOMAIN", "skincare"),
            default_horizon_periods=_env("DEFAULT_HORIZON_PERIODS", 30, int)
        )
        self.optimization = OptimizationConfig(
            default_grid_step_pct=_env("DEFAULT_GRID_STEP_PCT", 5.0, float),
            default_auxiliary_grid_step=_env("DEFAULT_AUXILIARY_GRID_STEP", None, float),
            max_workers=_env("OPTIMIZER_MAX_WORKERS", None, int),
            curve_resolution=_env("RESPONSE_CURVE_POINTS", 50, int)
        )
        self.api = APIConfig(
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env("PORT", 8000, int),
            reload=self.is_development(),
            cors_origins=_env_list("CORS_ORIGINS", ["*"])
        )
        self.logging = LoggingConfig(
            level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=os.getenv("LOG_DIR", "logs"),
            use_json=_env_bool("USE_JSON_LOGGING", True)
        )

    def is_development(self) -> bool:
        return self.env == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.env == Environment.PRODUCTION

    def setup_directories(self):
        """Creates the log directory."""
        Path(self.logging.log_dir).mkdir(parents=True, exist_ok=True)


# Global settings instance
settings = Settings()
