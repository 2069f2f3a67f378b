# quran_search/engine/index.py
"""
Inverted index over verse documents.
"""
import json
from collections import Counter
from typing import Dict, Iterable, List, Optional
import logging

from ..exceptions import IndexFormatError
from ..models import VerseDocument, SearchResult
from ..normalizer import NORMALIZATION_SIGNATURE, tokenize
from .query import (
    INDEXED_FIELDS, NAME_FIELD, NORMALIZED_FIELD, RAW_FIELD,
    SearchOptions, execute
)
from .trie import TermTrie

logger = logging.getLogger(__name__)

INDEX_FORMAT = "quran-search-index"
SERIAL_VERSION = 1

_STORED_KEYS = (
    "id", "surah_number", "surah_name", "surah_english_name",
    "verse_number", "raw_text", "edition",
)


def _field_values(stored: dict) -> Dict[str, str]:
    # normalized_text is derived from raw_text, so stored fields are enough
    # to re-tokenize a document when it is replaced
    return {
        NORMALIZED_FIELD: stored["raw_text"],
        RAW_FIELD: stored["raw_text"],
        NAME_FIELD: stored["surah_name"],
    }


class SearchIndex:
    """
    Postings, document store and term trie for one corpus snapshot.

    Usage:
        index = SearchIndex()
        index.add_all(documents)
        results = index.search("الرحمن")

        # Persist and restore
        text = index.to_json()
        restored = SearchIndex.load_json(text)

    Queries never mutate the index. Build it completely before sharing it
    between threads.
    """

    def __init__(self, options: Optional[SearchOptions] = None):
        self.options = options or SearchOptions()
        self.trie = TermTrie()

        self._documents: Dict[int, dict] = {}
        self._ids: Dict[str, int] = {}
        self._next_id = 0

        # term -> field -> {doc_id: term frequency}
        self._postings: Dict[str, Dict[str, Dict[int, int]]] = {}
        self._field_lengths: Dict[int, Dict[str, int]] = {}
        self._total_lengths: Dict[str, int] = {f: 0 for f in INDEXED_FIELDS}

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def add(self, doc: VerseDocument) -> None:
        """Index a document; a document with the same id is replaced."""
        doc_id = self._ids.get(doc.id)
        if doc_id is None:
            doc_id = self._next_id
            self._next_id += 1
            self._ids[doc.id] = doc_id
        else:
            logger.debug(f"Replacing document {doc.id}")
            self._remove_postings(doc_id)

        stored = doc.stored_fields()
        self._documents[doc_id] = stored
        self._index_fields(doc_id, {
            NORMALIZED_FIELD: doc.normalized_text,
            RAW_FIELD: doc.raw_text,
            NAME_FIELD: doc.surah_name,
        })

    def add_all(self, docs: Iterable[VerseDocument]) -> int:
        """Index documents in order. Returns the number of documents added."""
        count = 0
        for doc in docs:
            self.add(doc)
            count += 1
        logger.debug(f"Indexed {count} documents ({len(self)} unique)")
        return count

    def _index_fields(self, doc_id: int, values: Dict[str, str]):
        lengths = {}
        for field_name, value in values.items():
            terms = tokenize(value)
            lengths[field_name] = len(terms)
            self._total_lengths[field_name] += len(terms)
            for term, tf in Counter(terms).items():
                fields = self._postings.get(term)
                if fields is None:
                    fields = self._postings[term] = {}
                    self.trie.add(term)
                fields.setdefault(field_name, {})[doc_id] = tf
        self._field_lengths[doc_id] = lengths

    def _remove_postings(self, doc_id: int):
        stored = self._documents[doc_id]
        for field_name, value in _field_values(stored).items():
            self._total_lengths[field_name] -= self._field_lengths[doc_id].get(field_name, 0)
            for term in set(tokenize(value)):
                fields = self._postings.get(term)
                if not fields or field_name not in fields:
                    continue
                fields[field_name].pop(doc_id, None)
                if not fields[field_name]:
                    del fields[field_name]
                if not fields:
                    del self._postings[term]
                    self.trie.discard(term)
        del self._field_lengths[doc_id]

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._ids

    @property
    def term_count(self) -> int:
        return len(self._postings)

    def get_document(self, document_id: str) -> Optional[dict]:
        """Stored fields of a document, by its composite id."""
        doc_id = self._ids.get(document_id)
        return dict(self._documents[doc_id]) if doc_id is not None else None

    def stored(self, doc_id: int) -> dict:
        return self._documents[doc_id]

    def postings(self, term: str) -> Dict[str, Dict[int, int]]:
        return self._postings.get(term, {})

    def field_length(self, doc_id: int, field_name: str) -> int:
        return self._field_lengths[doc_id].get(field_name, 0)

    def average_field_length(self, field_name: str) -> float:
        if not self._documents:
            return 0.0
        return self._total_lengths.get(field_name, 0) / len(self._documents)

    def search(self, query: str, options: Optional[SearchOptions] = None) -> List[SearchResult]:
        """Ranked results for a free-text query."""
        return execute(self, query, options)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Self-contained serializable form."""
        field_pos = {f: i for i, f in enumerate(INDEXED_FIELDS)}
        return {
            "format": INDEX_FORMAT,
            "version": SERIAL_VERSION,
            "normalization": NORMALIZATION_SIGNATURE,
            "fields": list(INDEXED_FIELDS),
            "options": self.options.to_dict(),
            "next_id": self._next_id,
            "documents": [
                [doc_id] + [stored[k] for k in _STORED_KEYS]
                for doc_id, stored in self._documents.items()
            ],
            "field_lengths": {
                str(doc_id): [lengths.get(f, 0) for f in INDEXED_FIELDS]
                for doc_id, lengths in self._field_lengths.items()
            },
            "postings": {
                term: {
                    str(field_pos[f]): {str(d): tf for d, tf in docs.items()}
                    for f, docs in fields.items()
                }
                for term, fields in self._postings.items()
            }
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict, options: Optional[SearchOptions] = None) -> "SearchIndex":
        """
        Rebuild an index from `to_dict` output without the source corpus.

        Raises:
            IndexFormatError: data is not a compatible serialized index
        """
        if not isinstance(data, dict) or data.get("format") != INDEX_FORMAT:
            raise IndexFormatError("Not a serialized search index")
        if data.get("version") != SERIAL_VERSION:
            raise IndexFormatError(f"Unsupported index version {data.get('version')!r}")
        if data.get("normalization") != NORMALIZATION_SIGNATURE:
            raise IndexFormatError("Index was built with a different normalization")
        if data.get("fields") != list(INDEXED_FIELDS):
            raise IndexFormatError(f"Unexpected indexed fields {data.get('fields')!r}")

        try:
            if options is None:
                options = SearchOptions.from_dict(data.get("options") or {})
            index = cls(options=options)
            index._next_id = int(data["next_id"])

            for row in data["documents"]:
                doc_id = int(row[0])
                stored = dict(zip(_STORED_KEYS, row[1:]))
                if len(stored) != len(_STORED_KEYS):
                    raise IndexFormatError(f"Truncated document record {row!r}")
                index._documents[doc_id] = stored
                index._ids[stored["id"]] = doc_id

            for doc_id, lengths in data["field_lengths"].items():
                doc_id = int(doc_id)
                if doc_id not in index._documents:
                    raise IndexFormatError(f"Field lengths for unknown document {doc_id}")
                index._field_lengths[doc_id] = dict(zip(INDEXED_FIELDS, map(int, lengths)))
                for f, length in index._field_lengths[doc_id].items():
                    index._total_lengths[f] += length

            for term, fields in data["postings"].items():
                restored = {}
                for pos, docs in fields.items():
                    restored[INDEXED_FIELDS[int(pos)]] = {int(d): int(tf) for d, tf in docs.items()}
                index._postings[term] = restored
                index.trie.add(term)
        except IndexFormatError:
            raise
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise IndexFormatError(f"Malformed serialized index: {e}") from e

        if set(index._field_lengths) != set(index._documents):
            raise IndexFormatError("Field lengths do not cover every document")

        logger.debug(f"Restored index with {len(index)} documents, {index.term_count} terms")
        return index

    @classmethod
    def load_json(cls, text: str, options: Optional[SearchOptions] = None) -> "SearchIndex":
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise IndexFormatError(f"Serialized index is not valid JSON: {e}") from e
        return cls.from_dict(data, options=options)
