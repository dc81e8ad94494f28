# safepath/main.py
import os, asyncio
import uvicorn
from safepath.adapters.gdelt import GdeltSearchClient
from safepath.adapters.static_data import RegionDataLoader
from safepath.adapters.storage import InMemoryKVStore, SQLiteKVStore
from safepath.cache import ResultCache
from safepath.core.classifier import IncidentClassifier
from safepath.observability.health import create_app
from safepath.observability.logging_setup import setup_logging, get_logger
from safepath.orchestrators import RouteSafetyService, TieredRetrievalCoordinator
from safepath.settings import Settings

def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def build_settings() -> Settings:
    s = Settings()

    # static data
    s.data.data_dir = os.getenv("SAFEPATH_DATA_DIR", s.data.data_dir)

    # news search
    s.search.base_url = os.getenv("GDELT_BASE_URL", s.search.base_url)
    s.search.timeout_sec = float(os.getenv("SEARCH_TIMEOUT_SEC", s.search.timeout_sec))
    s.search.max_retries = int(os.getenv("SEARCH_MAX_RETRIES", s.search.max_retries))
    s.search.request_delay_sec = float(os.getenv("SEARCH_REQUEST_DELAY_SEC", s.search.request_delay_sec))
    s.search.country = os.getenv("SEARCH_COUNTRY", s.search.country)

    # classifier
    s.classifier.threshold = int(os.getenv("CLASSIFIER_THRESHOLD", s.classifier.threshold))

    # retrieval
    s.retrieval.area_display_limit = int(os.getenv("AREA_DISPLAY_LIMIT", s.retrieval.area_display_limit))
    s.retrieval.segment_article_limit = int(os.getenv("SEGMENT_ARTICLE_LIMIT", s.retrieval.segment_article_limit))

    # cache
    s.cache.backend = os.getenv("CACHE_BACKEND", s.cache.backend)
    s.cache.sqlite_path = os.getenv("CACHE_SQLITE_PATH", s.cache.sqlite_path)
    s.cache.ttl_sec = int(os.getenv("CACHE_TTL_SEC", s.cache.ttl_sec))
    s.cache.retention_sec = int(os.getenv("CACHE_RETENTION_SEC", s.cache.retention_sec))
    s.cache.memory_max_entries = int(os.getenv("CACHE_MAX_ENTRIES", s.cache.memory_max_entries))

    # observability
    s.observability.metrics_enabled = _b("METRICS_ENABLED", s.observability.metrics_enabled)
    s.observability.http_port = int(os.getenv("HTTP_PORT", s.observability.http_port))
    s.observability.log_level = os.getenv("LOG_LEVEL", s.observability.log_level)
    s.observability.log_format = os.getenv("LOG_FORMAT", s.observability.log_format)

    return s

async def build_cache(s: Settings) -> ResultCache:
    if s.cache.backend == "sqlite":
        store = SQLiteKVStore(s.cache.sqlite_path)
        await store.init()
    else:
        store = InMemoryKVStore(max_size=s.cache.memory_max_entries)
    return ResultCache(store, ttl_sec=s.cache.ttl_sec, retention_sec=s.cache.retention_sec)

async def main():
    s = build_settings()
    setup_logging(s.observability.log_level, json_lines=s.observability.log_format == "json")
    log = get_logger()
    log.info("settings loaded")

    loader = RegionDataLoader(s.data.data_dir)
    loader.load()
    cache = await build_cache(s)

    async with GdeltSearchClient(
        s.search.base_url,
        timeout=s.search.timeout_sec,
        max_retries=s.search.max_retries,
        backoff_initial=s.search.backoff_initial_sec,
        backoff_max=s.search.backoff_max_sec,
    ) as search:
        route_service = RouteSafetyService(loader, cache)
        coordinator = TieredRetrievalCoordinator(
            search,
            cache,
            classifier=IncidentClassifier(threshold=s.classifier.threshold),
            loader=loader,
            search_config=s.search,
            retrieval_config=s.retrieval,
        )
        app = create_app(s, route_service=route_service, coordinator=coordinator)
        log.info(f"serving on :{s.observability.http_port} cache:{s.cache.backend}")
        await uvicorn.Server(
            uvicorn.Config(app, host="0.0.0.0", port=s.observability.http_port, log_level="info")
        ).serve()

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
