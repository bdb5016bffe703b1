"""
Runtime settings for the campus feed, loaded from YAML.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional

import yaml

from campus_feed.constants import DB_NAME, SETTINGS_PATH
from util.constants import DEFAULT_MODEL_NAME, REPO_ROOT
from util.logging_util import setup_logger

logger = setup_logger(__name__)


@dataclass
class Settings:
    """Tunable knobs for ingestion, enrichment and ranking."""
    database_url: str = f"sqlite:///{DB_NAME}"
    model_name: str = DEFAULT_MODEL_NAME
    # Pause between successive inference calls during ingestion
    rate_limit_delay_seconds: float = 4.5
    ranking_timeout_seconds: float = 2.5
    ranking_prefix_size: int = 10
    # Share of dateless records turned into activities
    activity_sampling_rate: float = 0.3
    guard_min_items: int = 20
    guard_min_activity_ratio: float = 0.2
    summary_max_input_chars: int = 10000
    summary_language: str = "Spanish"
    summarize_on_ingest: bool = True
    fetch_articles: bool = True
    article_fetch_timeout_seconds: float = 15.0
    news_csv: Optional[str] = str(REPO_ROOT / "noticias_uc_5paginas.csv")
    activities_csv: Optional[str] = None


def load_settings(config_path: Path = SETTINGS_PATH) -> Settings:
    """Load settings from a YAML file.

    Keys missing from the file keep their defaults and unknown keys are
    ignored with a warning. A missing file yields the defaults.

    Raises:
        ValueError: if the top level of the file is not a mapping.
    """
    if not config_path.exists():
        logger.warning(f"Settings file not found at {config_path}, using defaults")
        return Settings()

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {config_path} must contain a mapping, got {type(data).__name__}")

    known = {f.name for f in fields(Settings)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown settings: {', '.join(sorted(unknown))}")

    return Settings(**{key: value for key, value in data.items() if key in known})


def resolve_path(value: Optional[str]) -> Optional[Path]:
    """Resolve a configured path; relative paths are taken from the repo root."""
    if not value:
        return None
    path = Path(value)
    if not path.is_absolute():
        path = REPO_ROOT / path
    return path
