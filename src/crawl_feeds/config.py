"""Configuration loader for crawl_feeds."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from common.config import find_config_path, load_yaml
from crawl_feeds.fetch_page import DEFAULT_TIMEOUT, DEFAULT_USER_AGENT

CONFIG_DIR = Path(__file__).parent / "configs"
DEFAULT_DSN = "dbname=feedme sslmode=disable"


def _default_dsn() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DSN)


@dataclass
class StoreConfig:
    backend: str = "postgres"  # "postgres" or "memory"
    dsn: str = field(default_factory=_default_dsn)
    min_conns: int = 1
    max_conns: int = 10


@dataclass
class FetchConfig:
    timeout: int = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT


@dataclass
class SourceConfig:
    """Source seeded into the memory store."""
    name: str
    url: str
    transform: str


@dataclass
class Config:
    workers: int = 1
    store: StoreConfig = field(default_factory=StoreConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    sources: list[SourceConfig] = field(default_factory=list)


def load_config(config_name: str | None = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_name: Name of a config in configs/ (without .yaml) or a path
                    to a YAML file. If None, uses CONFIG_ENV env var or "prod".

    Returns:
        Loaded Config object
    """
    config_path = find_config_path(config_name, CONFIG_DIR, env_var="CONFIG_ENV")
    return parse_config(load_yaml(config_path))


def parse_config(data: dict) -> Config:
    """Parse config dictionary into Config object."""
    store_data = data.get("store") or {}
    fetch_data = data.get("fetch") or {}

    store = StoreConfig(
        backend=store_data.get("backend", "postgres"),
        dsn=store_data.get("dsn") or _default_dsn(),
        min_conns=int(store_data.get("min_conns", 1)),
        max_conns=int(store_data.get("max_conns", 10)),
    )

    fetch = FetchConfig(
        timeout=int(fetch_data.get("timeout", DEFAULT_TIMEOUT)),
        user_agent=fetch_data.get("user_agent", DEFAULT_USER_AGENT),
    )

    return Config(
        workers=max(1, int(data.get("workers", 1))),
        store=store,
        fetch=fetch,
        sources=[_parse_source(s) for s in data.get("sources") or []],
    )


def _parse_source(data: dict) -> SourceConfig:
    transform = data["transform"]
    # Inline YAML transforms are stored the way operators write them: as JSON
    if not isinstance(transform, str):
        transform = json.dumps(transform)
    return SourceConfig(name=data["name"], url=data["url"], transform=transform)
