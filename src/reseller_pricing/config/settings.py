"""
Centralized settings and path configuration for the reseller pricing engine.

Every field can be overridden with a RESELLER_PRICING_<FIELD> environment
variable.
"""
import os
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

ENV_PREFIX = "RESELLER_PRICING_"


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


def _env(name: str, default: str) -> str:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def _env_bool(name: str, default: bool) -> bool:
    return _env(name, str(default)).strip().lower() in ('true', '1', 'yes', 'on')


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Store files
    rules_csv: Path
    decisions_csv: Path

    # Applied by the HTTP layer when a caller omits baseCost
    default_base_cost: Decimal = Decimal("0.01")

    # Rule review
    percentage_warning_ceiling: Decimal = Decimal("1000")

    # Analytics
    analytics_default_days: int = 30
    recent_decisions_limit: int = 10
    high_volume_threshold: int = 100

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()
        data_dir = Path(_env("DATA_DIR", str(root / 'data')))

        return cls(
            project_root=root,
            data_dir=data_dir,
            rules_csv=Path(_env("RULES_CSV", str(data_dir / 'markup_rules.csv'))),
            decisions_csv=Path(_env("DECISIONS_CSV", str(data_dir / 'pricing_decisions.csv'))),
            default_base_cost=Decimal(_env("DEFAULT_BASE_COST", "0.01")),
            percentage_warning_ceiling=Decimal(_env("PERCENTAGE_WARNING_CEILING", "1000")),
            analytics_default_days=int(_env("ANALYTICS_DEFAULT_DAYS", "30")),
            recent_decisions_limit=int(_env("RECENT_DECISIONS_LIMIT", "10")),
            high_volume_threshold=int(_env("HIGH_VOLUME_THRESHOLD", "100")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            json_logs=_env_bool("JSON_LOGS", False),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
