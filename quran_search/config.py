# quran_search/config.py
"""
Central configuration management with persistence.
"""
import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from .engine.query import DEFAULT_BOOST, SearchOptions
from .engine.service import INDEX_CACHE_KEY
from .exceptions import ConfigurationError
from .utils.corpus import DEFAULT_EDITIONS

logger = logging.getLogger(__name__)


@dataclass
class SearchConfig:
    """Matching and ranking settings."""
    boost: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BOOST))
    fuzzy: float = 0.15
    max_fuzzy: int = 6
    prefix: bool = True
    combine_with: str = "AND"
    cache_key: str = INDEX_CACHE_KEY

    def to_dict(self) -> dict:
        return {
            "boost": dict(self.boost),
            "fuzzy": self.fuzzy,
            "max_fuzzy": self.max_fuzzy,
            "prefix": self.prefix,
            "combine_with": self.combine_with,
            "cache_key": self.cache_key
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SearchConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def to_options(self, limit: Optional[int] = None) -> SearchOptions:
        try:
            return SearchOptions(
                boost=dict(self.boost),
                fuzzy=self.fuzzy,
                max_fuzzy=self.max_fuzzy,
                prefix=self.prefix,
                combine_with=self.combine_with,
                limit=limit
            )
        except ValueError as e:
            raise ConfigurationError(str(e)) from e


@dataclass
class CorpusConfig:
    """Which editions make up the corpus."""
    editions: List[str] = field(default_factory=lambda: list(DEFAULT_EDITIONS))

    def to_dict(self) -> dict:
        return {"editions": list(self.editions)}

    @classmethod
    def from_dict(cls, data: dict) -> "CorpusConfig":
        return cls(editions=list(data.get("editions", DEFAULT_EDITIONS)))


@dataclass
class DownloadConfig:
    """Settings for fetching the dataset."""
    api_base: str = "https://api.alquran.cloud/v1"
    timeout: int = 15
    max_retries: int = 3
    delay: float = 0.2

    def to_dict(self) -> dict:
        return {
            "api_base": self.api_base,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "delay": self.delay
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DownloadConfig":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


class Config:
    """
    Main configuration container with persistence.

    Usage:
        # Create new or load existing
        config = Config.load_or_create(data_dir)

        # Make changes
        config.search.fuzzy = 0.2
        config.save()

        # Reload from disk
        config.reload()
    """

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

        # Derived paths
        self.quran_dir = self.data_dir / "quran"
        self.surah_dir = self.quran_dir / "surah"
        self.surah_list_path = self.quran_dir / "surah-list.json"
        self.search_dir = self.quran_dir / "search"
        self.index_path = self.search_dir / "full-quran-index.json"
        self.compact_path = self.search_dir / "all-ayat.json"
        self.cache_dir = self.data_dir / "cache"
        self.config_path = self.data_dir / "config.json"

        # Component configs
        self.search = SearchConfig()
        self.corpus = CorpusConfig()
        self.download = DownloadConfig()

        # Create directories
        for d in [self.quran_dir, self.cache_dir]:
            d.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "data_dir": str(self.data_dir),
            "search": self.search.to_dict(),
            "corpus": self.corpus.to_dict(),
            "download": self.download.to_dict()
        }

    def _update_from_dict(self, data: dict):
        """Update config from dictionary."""
        if "search" in data:
            self.search = SearchConfig.from_dict(data["search"])
        if "corpus" in data:
            self.corpus = CorpusConfig.from_dict(data["corpus"])
        if "download" in data:
            self.download = DownloadConfig.from_dict(data["download"])

    def save(self):
        """Save configuration to disk."""
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        logger.debug(f"Config saved to {self.config_path}")

    def reload(self):
        """Reload configuration from disk."""
        if not self.config_path.exists():
            logger.warning(f"No config file at {self.config_path}")
            return
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except ValueError as e:
            raise ConfigurationError(f"Invalid config file {self.config_path}: {e}") from e
        self._update_from_dict(data)
        logger.info(f"Config reloaded from {self.config_path}")

    @classmethod
    def load_or_create(cls, data_dir: Path) -> "Config":
        """
        Load existing config or create new one.
        Does NOT overwrite existing config.
        """
        data_dir = Path(data_dir)
        # Allow callers to pass either a data directory or a full config path
        if data_dir.suffix == ".json":
            data_dir = data_dir.parent

        config = cls(data_dir=data_dir)

        if config.config_path.exists():
            logger.info(f"Loading existing config from {config.config_path}")
            config.reload()
        else:
            logger.info(f"Creating new config at {config.config_path}")
            config.save()

        return config

    def print_status(self):
        """Print current configuration status."""
        print("\n" + "=" * 60)
        print("QURAN SEARCH STATUS")
        print("=" * 60)
        print(f"Data directory: {self.data_dir}")
        print(f"Surah list: {'✓' if self.surah_list_path.exists() else '✗ Not downloaded'}")
        print(f"\nEditions ({len(self.corpus.editions)}):")
        for edition in self.corpus.editions:
            edition_dir = self.surah_dir / edition
            count = len(list(edition_dir.glob("*.json"))) if edition_dir.is_dir() else 0
            print(f"  {edition:<20} {count} surah files")
        print(f"\nBundled index: {'✓' if self.index_path.exists() else '✗ Not built'}")
        print(f"Compact export: {'✓' if self.compact_path.exists() else '✗ Not built'}")
        print(f"Cached index key: {self.search.cache_key}")
        print("=" * 60 + "\n")


def get_config() -> Config:
    """
    Get the global configuration instance.

    QURAN_SEARCH_CONFIG should point directly to the config JSON file.
    """
    env_path = os.environ.get("QURAN_SEARCH_CONFIG")
    config_path = Path(env_path).expanduser() if env_path else Path("./quran_data/config.json")
    return Config.load_or_create(config_path)
