# quran_search/engine/query.py
"""
Query evaluation: term expansion (exact, prefix, fuzzy) and scoring.

Scoring is a BM25-style sum over matching fields:

    weight * boost * idf * (1 + tf / (tf + k * (1 - b + b * len / avg_len)))

`weight` is 1.0 for an exact term and strictly less for prefix and fuzzy
expansions; `idf` is shared by all expansions of one query term. Results
are ranked first by how many query terms a document matched exactly, so
an exact match always outranks a prefix or fuzzy one.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import logging

from ..normalizer import tokenize
from ..models import SearchResult

logger = logging.getLogger(__name__)

NORMALIZED_FIELD = "normalized_text"
RAW_FIELD = "raw_text"
NAME_FIELD = "surah_name"
INDEXED_FIELDS = (NORMALIZED_FIELD, RAW_FIELD, NAME_FIELD)

DEFAULT_BOOST = {NORMALIZED_FIELD: 3.0, RAW_FIELD: 2.0, NAME_FIELD: 1.0}

EXACT_WEIGHT = 1.0
PREFIX_WEIGHT = 0.375
FUZZY_WEIGHT = 0.45

BM25_K = 1.2
BM25_B = 0.7

COMBINE_AND = "AND"
COMBINE_OR = "OR"


@dataclass
class SearchOptions:
    """How a query is matched and ranked."""
    boost: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_BOOST))
    fuzzy: float = 0.15
    max_fuzzy: int = 6
    prefix: bool = True
    combine_with: str = COMBINE_AND
    limit: Optional[int] = None

    def __post_init__(self):
        self.combine_with = self.combine_with.upper()
        if self.combine_with not in (COMBINE_AND, COMBINE_OR):
            raise ValueError(f"combine_with must be AND or OR, got {self.combine_with!r}")

    def to_dict(self) -> dict:
        return {
            "boost": dict(self.boost),
            "fuzzy": self.fuzzy,
            "max_fuzzy": self.max_fuzzy,
            "prefix": self.prefix,
            "combine_with": self.combine_with,
            "limit": self.limit
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SearchOptions":
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def fuzzy_distance(term: str, fraction: float, max_fuzzy: int = 6) -> int:
    """
    Edit distance tolerated for `term`.

    A fraction of the term length, rounded half up, at least 1 for terms
    longer than three characters and never above `max_fuzzy`.
    """
    if fraction <= 0:
        return 0
    distance = math.floor(fraction * len(term) + 0.5)
    if len(term) > 3:
        distance = max(distance, 1)
    return min(distance, max_fuzzy)


def expand_term(trie, term: str, options: SearchOptions) -> Dict[str, float]:
    """
    Index terms a query term matches, with their match weight.

    A term reachable several ways (exact, prefix, fuzzy) keeps the
    highest weight.
    """
    expansions: Dict[str, float] = {}
    length = len(term)

    def offer(candidate: str, weight: float):
        if weight > expansions.get(candidate, 0.0):
            expansions[candidate] = weight

    if term in trie:
        offer(term, EXACT_WEIGHT)

    if options.prefix:
        for candidate in trie.with_prefix(term):
            extra = len(candidate) - length
            if extra > 0:
                offer(candidate, PREFIX_WEIGHT * length / (length + 0.3 * extra))

    max_distance = fuzzy_distance(term, options.fuzzy, options.max_fuzzy)
    if max_distance > 0:
        for candidate, distance in trie.fuzzy(term, max_distance).items():
            if distance > 0:
                offer(candidate, FUZZY_WEIGHT * length / (length + distance))

    return expansions


Scores = Dict[int, Tuple[float, int, Dict[str, List[str]]]]


def _score_term(index, term: str, options: SearchOptions) -> Scores:
    """
    Score every document matching one query term.

    Values are (score, exact hits, match). All expansions of the term share
    one idf, computed over every document any expansion matches, so a rare
    fuzzy neighbour cannot outweigh a common exact term.
    """
    scores: Scores = {}
    total_docs = len(index)

    # Fixed summation order keeps scores identical across rebuild and restore
    expansions = sorted(expand_term(index.trie, term, options).items())

    matching = set()
    for candidate, _ in expansions:
        for docs in index.postings(candidate).values():
            matching.update(docs)
    df = len(matching)
    idf = math.log(1 + (total_docs - df + 0.5) / (df + 0.5))

    for candidate, weight in expansions:
        postings = index.postings(candidate)
        exact = 1 if candidate == term else 0

        for field_name in INDEXED_FIELDS:
            docs = postings.get(field_name)
            boost = options.boost.get(field_name, 0.0)
            if not docs or not boost:
                continue
            avg_length = index.average_field_length(field_name) or 1.0
            for doc_id, tf in docs.items():
                length = index.field_length(doc_id, field_name)
                norm = tf / (tf + BM25_K * (1 - BM25_B + BM25_B * length / avg_length))
                gained = weight * boost * idf * (1 + norm)

                score, hits, match = scores.get(doc_id, (0.0, 0, {}))
                fields = match.setdefault(candidate, [])
                if field_name not in fields:
                    fields.append(field_name)
                scores[doc_id] = (score + gained, max(hits, exact), match)

    return scores


def _combine(acc: Optional[Scores], scores: Scores, combine_with: str) -> Scores:
    if acc is None:
        return scores

    combined = {}
    if combine_with == COMBINE_AND:
        doc_ids = acc.keys() & scores.keys()
    else:
        doc_ids = acc.keys() | scores.keys()

    for doc_id in doc_ids:
        score_a, hits_a, match_a = acc.get(doc_id, (0.0, 0, {}))
        score_b, hits_b, match_b = scores.get(doc_id, (0.0, 0, {}))
        match = {term: list(fields) for term, fields in match_a.items()}
        for term, fields in match_b.items():
            merged = match.setdefault(term, [])
            merged.extend(f for f in fields if f not in merged)
        combined[doc_id] = (score_a + score_b, hits_a + hits_b, match)
    return combined


def execute(index, query, options: Optional[SearchOptions] = None) -> List[SearchResult]:
    """
    Run a free-text query against a built index.

    Args:
        index: SearchIndex (read only here)
        query: Free-text query
        options: Matching options; the index defaults when omitted

    Returns:
        Results ordered by the number of query terms matched exactly, then
        descending score, ties by surah, verse and corpus order
    """
    options = options or index.options
    terms = tokenize(query)
    if not terms:
        return []

    acc = None
    for term in terms:
        acc = _combine(acc, _score_term(index, term, options), options.combine_with)
        if not acc and options.combine_with == COMBINE_AND:
            break

    if not acc:
        return []

    def order(doc_id):
        score, hits, _ = acc[doc_id]
        stored = index.stored(doc_id)
        return (-hits, -score, stored["surah_number"], stored["verse_number"], doc_id)

    ranked = sorted(acc, key=order)
    if options.limit is not None:
        ranked = ranked[:options.limit]

    logger.debug(f"Query {query!r} -> {len(terms)} terms, {len(acc)} matches")
    return [
        SearchResult.from_stored(index.stored(doc_id), acc[doc_id][0], acc[doc_id][2])
        for doc_id in ranked
    ]
