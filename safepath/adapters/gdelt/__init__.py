from .client import GdeltSearchClient, parse_articles

__all__ = ["GdeltSearchClient", "parse_articles"]
