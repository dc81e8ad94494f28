# safepath/settings.py
from __future__ import annotations
from pathlib import Path
from typing import Dict
from pydantic import BaseModel, Field

DEFAULT_DATA_DIR = str(Path(__file__).resolve().parent / "data")

class DataConfig(BaseModel):
    data_dir: str = DEFAULT_DATA_DIR

class SearchConfig(BaseModel):
    base_url: str = "https://api.gdeltproject.org/api/v2/doc/doc"
    timeout_sec: float = 10.0
    max_retries: int = 1
    backoff_initial_sec: float = 0.5
    backoff_max_sec: float = 5.0
    request_delay_sec: float = 0.3
    country: str = "Nigeria"

class ClassifierConfig(BaseModel):
    threshold: int = 15                       # score >= threshold is accepted

class RetrievalConfig(BaseModel):
    area_display_limit: int = 5
    segment_article_limit: int = 3
    states_display_limit: int = 10
    segment_fetch_budget: int = 50
    min_level_results: int = 2
    time_windows: Dict[str, str] = Field(default_factory=lambda: {
        "EXTREME": "30d",
        "VERY HIGH": "21d",
        "HIGH": "14d",
    })
    max_articles: Dict[str, int] = Field(default_factory=lambda: {
        "EXTREME": 25,
        "VERY HIGH": 20,
        "HIGH": 15,
    })
    default_time_window: str = "7d"
    default_max_articles: int = 10

    def time_window_for(self, tier: str | None) -> str:
        return self.time_windows.get((tier or "").upper(), self.default_time_window)

    def max_articles_for(self, tier: str | None) -> int:
        return self.max_articles.get((tier or "").upper(), self.default_max_articles)

class CacheConfig(BaseModel):
    backend: str = "memory"                   # memory | sqlite
    sqlite_path: str = "/data/safepath-cache.db"
    ttl_sec: int = 3600
    retention_sec: int = 86400
    memory_max_entries: int = 5000            # in-memory backend size cap

class Observability(BaseModel):
    http_port: int = 8099
    metrics_enabled: bool = True
    service_name: str = "SafePath"
    build_version: str = "0.2.0"
    build_date: str = "2025-01-01"
    log_level: str = "INFO"
    log_format: str = "console"                # console | json

class Settings(BaseModel):
    data: DataConfig = Field(default_factory=DataConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    observability: Observability = Field(default_factory=Observability)
