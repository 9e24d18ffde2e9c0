"""
Configuration management for the search index crawler.
"""

import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, field, fields


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""
    pass


@dataclass
class CrawlerConfig:
    """Configuration for crawl loop and fetch behavior."""
    seed_file: str = "data/tocrawl.txt"
    feed_file: str = "data/feeds.txt"
    user_agent: str = "OpenSearchIndexBot/1.0"
    fetch_timeout: float = 5.0
    crawl_interval: float = 3.0
    feed_discovery_chance: float = 0.1
    max_content_bytes: int = 10 * 1024 * 1024


@dataclass
class FrontierConfig:
    """Configuration for URL selection and recrawl pacing."""
    top_window: int = 100
    recrawl_wait_days: float = 7.0
    max_crawl_additions_per_host: int = 5


@dataclass
class IndexConfig:
    """Configuration for keyword qualification."""
    min_word_count_as_keyword: int = 3


@dataclass
class StorageConfig:
    """Configuration for on-disk state."""
    data_directory: str = "data"


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    file: str = "logs/crawler.log"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    json: bool = False


@dataclass
class MonitoringConfig:
    """Configuration for monitoring."""
    prometheus_port: int = 8000
    metrics_enabled: bool = False


@dataclass
class Config:
    """Main configuration class."""
    crawler: CrawlerConfig = field(default_factory=CrawlerConfig)
    frontier: FrontierConfig = field(default_factory=FrontierConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def _build_section(section_cls, data: Optional[Dict[str, Any]], name: str):
    """Build a section dataclass, rejecting unknown keys."""
    if data is None:
        return section_cls()
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    unknown = set(data) - known
    if unknown:
        raise ConfigError(f"Unknown keys in section '{name}': {', '.join(sorted(unknown))}")
    return section_cls(**data)


class ConfigManager:
    """Manages configuration loading and validation."""

    sections = {
        'crawler': CrawlerConfig,
        'frontier': FrontierConfig,
        'index': IndexConfig,
        'storage': StorageConfig,
        'logging': LoggingConfig,
        'monitoring': MonitoringConfig,
    }

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as file:
            config_data = yaml.safe_load(file) or {}

        if not isinstance(config_data, dict):
            raise ConfigError("Configuration root must be a mapping")

        self._config = self.from_dict(config_data)
        return self._config

    def from_dict(self, config_data: Dict[str, Any]) -> Config:
        """Build and validate a configuration from already-parsed data."""
        unknown = set(config_data) - set(self.sections)
        if unknown:
            raise ConfigError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

        self._config = Config(**{
            name: _build_section(section_cls, config_data.get(name), name)
            for name, section_cls in self.sections.items()
        })
        self._validate_config()
        return self._config

    def _validate_config(self):
        """Validate configuration values."""
        if not self._config:
            raise ConfigError("Configuration not loaded")

        crawler = self._config.crawler
        if crawler.fetch_timeout <= 0:
            raise ConfigError("fetch_timeout must be positive")

        if crawler.crawl_interval < 0:
            raise ConfigError("crawl_interval must be non-negative")

        if not 0 <= crawler.feed_discovery_chance <= 1:
            raise ConfigError("feed_discovery_chance must be between 0 and 1")

        frontier = self._config.frontier
        if frontier.top_window < 0:
            raise ConfigError("top_window must be non-negative")

        if frontier.recrawl_wait_days < 0:
            raise ConfigError("recrawl_wait_days must be non-negative")

        if frontier.max_crawl_additions_per_host < 0:
            raise ConfigError("max_crawl_additions_per_host must be non-negative")

        if self._config.index.min_word_count_as_keyword < 0:
            raise ConfigError("min_word_count_as_keyword must be non-negative")

        if not isinstance(getattr(logging, self._config.logging.level.upper(), None), int):
            raise ConfigError(f"Unknown log level: {self._config.logging.level}")

        logging.getLogger(__name__).debug("Configuration validation passed")

    @property
    def config(self) -> Config:
        """Get the loaded configuration."""
        if not self._config:
            raise ConfigError("Configuration not loaded. Call load_config() first.")
        return self._config


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> Config:
    """Get the global configuration instance."""
    return config_manager.config


def load_config(config_path: str = "config.yaml") -> Config:
    """Load configuration from file."""
    global config_manager
    config_manager = ConfigManager(config_path)
    return config_manager.load_config()
