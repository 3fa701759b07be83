"""
Centralized settings for the pricing engine and the tooling around it.
"""
from decimal import ROUND_HALF_EVEN
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class EngineSettings:
    """
    Evaluation settings, passed explicitly into every engine instance.

    rounding is applied when quantizing amounts to the currency minor unit.
    strict_config rejects the whole configuration on the first bad rule
    instead of dropping just that rule.
    """
    default_minor_units: int = 2
    rounding: str = ROUND_HALF_EVEN
    strict_config: bool = False


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 3 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Tooling settings (rule compiler, API harness) with sensible defaults."""

    project_root: Path

    # Merchant rule sheet (.csv or .xlsx)
    rules_source: Path

    # Compiled configuration, shaped like the discount metafield value
    compiled_config: Path

    engine: EngineSettings = EngineSettings()

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure."""
        root = project_root or get_project_root()
        rules_dir = root / 'rules'

        rules_source = rules_dir / 'pricing_rules.csv'
        xlsx_source = rules_dir / 'pricing_rules.xlsx'
        if not rules_source.exists() and xlsx_source.exists():
            rules_source = xlsx_source

        return cls(
            project_root=root,
            rules_source=rules_source,
            compiled_config=rules_dir / 'compiled_config.json',
        )


# Default settings instance (tooling only; the engine never reads it)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
