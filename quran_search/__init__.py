# quran_search/__init__.py
"""
Quran Search - Offline full-text search over Quran script editions.
"""
from .config import Config, get_config
from .engine.index import SearchIndex
from .engine.query import SearchOptions
from .engine.service import QuranSearchService, IndexState
from .models import VerseDocument, SearchResult, SurahInfo
from .normalizer import normalize_arabic, tokenize

__version__ = "1.0.0"
__all__ = [
    "Config",
    "get_config",
    "SearchIndex",
    "SearchOptions",
    "QuranSearchService",
    "IndexState",
    "VerseDocument",
    "SearchResult",
    "SurahInfo",
    "normalize_arabic",
    "tokenize"
]
