# quran_search/engine/service.py
"""
Caller-facing search surface: lazy index lifecycle plus queries.
"""
import enum
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, List, Optional
import logging

from ..exceptions import IndexFormatError
from ..models import SearchResult, VerseDocument
from ..utils.storage import KeyValueStore, MemoryStore
from .index import SearchIndex
from .query import SearchOptions

logger = logging.getLogger(__name__)

INDEX_CACHE_KEY = "quran_search_index_v3"

CorpusSource = Callable[[], Iterable[VerseDocument]]


class IndexState(enum.Enum):
    NOT_STARTED = "not_started"
    BUILDING = "building"
    READY = "ready"


class QuranSearchService:
    """
    Owns one search index and answers queries against it.

    Usage:
        service = QuranSearchService(CorpusLoader(quran_dir), store=FileStore(cache_dir))

        # Optional warm-up; search() does this on demand
        service.build_or_restore_index()

        results = service.search("الرحمن")
        service.clear()

    The index is restored from `store` when a valid serialized copy is
    there, otherwise loaded from `bundled_index`, otherwise built from the
    corpus. Concurrent callers share a single in-flight build.
    """

    def __init__(
        self,
        corpus_source: CorpusSource,
        store: Optional[KeyValueStore] = None,
        options: Optional[SearchOptions] = None,
        cache_key: str = INDEX_CACHE_KEY,
        bundled_index: Optional[Path] = None
    ):
        self.corpus_source = corpus_source
        self.store = store if store is not None else MemoryStore()
        self.options = options or SearchOptions()
        self.cache_key = cache_key
        self.bundled_index = Path(bundled_index) if bundled_index else None

        self.results: List[SearchResult] = []

        self._lock = threading.Lock()
        self._index: Optional[SearchIndex] = None
        self._pending: Optional[Future] = None
        self._state = IndexState.NOT_STARTED
        self._writer: Optional[ThreadPoolExecutor] = None
        self._writes: List[Future] = []
        # Bumped by invalidate(); builds started under an older value are discarded
        self._generation = 0

    @property
    def state(self) -> IndexState:
        return self._state

    @property
    def index(self) -> Optional[SearchIndex]:
        """The ready index, or None before the first build completes."""
        return self._index

    # -------------------------------------------------------------------------
    # Index lifecycle
    # -------------------------------------------------------------------------

    def build_or_restore_index(self) -> SearchIndex:
        """
        Make the index ready and return it.

        Safe to call repeatedly and from several threads: only the first
        caller does the work, the others wait for its result. A build
        that was invalidated while in flight is handed to its waiters but
        neither kept nor persisted.
        """
        with self._lock:
            if self._index is not None:
                return self._index
            future = self._pending
            owner = future is None
            if owner:
                future = self._pending = Future()
                self._state = IndexState.BUILDING
            generation = self._generation

        if not owner:
            logger.debug("Index build already in flight, waiting")
            return future.result()

        try:
            index, fresh = self._load_or_build()
        except BaseException as e:
            with self._lock:
                if self._pending is future:
                    self._pending = None
                    self._state = IndexState.NOT_STARTED
            future.set_exception(e)
            raise

        with self._lock:
            current = generation == self._generation
            if current:
                self._index = index
                self._state = IndexState.READY
            if self._pending is future:
                self._pending = None
        future.set_result(index)

        if not current:
            logger.info("Search index was invalidated during its build, discarding it")
        elif fresh:
            self._persist(index)
        return index

    def _load_or_build(self):
        index = self._restore()
        if index is not None:
            return index, False

        index = self._load_bundled()
        if index is not None:
            return index, True

        return self._build(), True

    def _restore(self) -> Optional[SearchIndex]:
        try:
            cached = self.store.get(self.cache_key)
        except Exception as e:
            logger.warning(f"Could not read cached index {self.cache_key}: {e}")
            return None

        if not cached:
            logger.info(f"No cached search index under {self.cache_key}")
            return None

        try:
            index = SearchIndex.load_json(cached, options=self.options)
        except IndexFormatError as e:
            logger.warning(f"Discarding cached search index: {e}")
            return None

        logger.info(f"Restored search index ({len(index)} verses) from {self.cache_key}")
        return index

    def _load_bundled(self) -> Optional[SearchIndex]:
        if not self.bundled_index or not self.bundled_index.exists():
            return None
        try:
            with open(self.bundled_index, "r", encoding="utf-8") as f:
                index = SearchIndex.load_json(f.read(), options=self.options)
        except (OSError, IndexFormatError) as e:
            logger.warning(f"Ignoring bundled index {self.bundled_index}: {e}")
            return None

        logger.info(f"Loaded bundled search index ({len(index)} verses)")
        return index

    def _build(self) -> SearchIndex:
        index = SearchIndex(options=self.options)
        count = index.add_all(self.corpus_source())
        if count == 0:
            logger.warning("Corpus is empty, search index has no documents")
        logger.info(f"Built search index: {len(index)} verses, {index.term_count} terms")
        return index

    def _persist(self, index: SearchIndex):
        """Queue a write of `index`; the caller does not wait for it."""
        with self._lock:
            if self._writer is None:
                self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="index-writer")
            self._writes = [w for w in self._writes if not w.done()]
            self._writes.append(self._writer.submit(self._write, index))

    def _write(self, index: SearchIndex) -> bool:
        try:
            ok = self.store.set(self.cache_key, index.to_json())
        except Exception as e:
            logger.warning(f"Failed to persist search index: {e}")
            return False
        if ok:
            logger.debug(f"Persisted search index under {self.cache_key}")
        else:
            logger.warning(f"Store rejected search index under {self.cache_key}")
        return ok

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait for queued index writes. Returns True if all succeeded."""
        with self._lock:
            writes = list(self._writes)
        return all(w.result(timeout=timeout) for w in writes)

    def invalidate(self, drop_persisted: bool = False):
        """
        Forget the in-memory index so the next call restores or rebuilds.

        A build still in flight finishes for the callers already waiting on
        it, but its result is dropped and later calls start a new build.
        """
        with self._lock:
            self._generation += 1
            self._index = None
            self._pending = None
            self._state = IndexState.NOT_STARTED
        if drop_persisted:
            self.flush()
            self.store.delete(self.cache_key)
        logger.info(f"Search index invalidated (persisted copy dropped: {drop_persisted})")

    def close(self):
        """Flush pending writes and stop the writer thread."""
        self.flush()
        with self._lock:
            writer, self._writer = self._writer, None
        if writer:
            writer.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def search(self, text: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """
        Ranked verses matching `text`.

        An empty or non-string query returns [] without loading the index;
        anything else waits for the index to be ready first.
        """
        if not isinstance(text, str) or not text.strip():
            self.results = []
            return []

        index = self.build_or_restore_index()
        results = index.search(text, options or self.options)
        self.results = results
        return results

    def clear(self):
        """Discard the last results; the index is kept."""
        self.results = []
