# quran_search/models.py
"""
Data models for the search engine.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Dict

from .normalizer import normalize_arabic


@dataclass(frozen=True)
class VerseDocument:
    """One verse of one edition, as fed to the index."""
    surah_number: int
    verse_number: int
    edition: str
    surah_name: str = ""
    surah_english_name: str = ""
    raw_text: str = ""
    normalized_text: str = field(init=False, default="")

    def __post_init__(self):
        object.__setattr__(self, "normalized_text", normalize_arabic(self.raw_text))

    @property
    def id(self) -> str:
        return f"{self.surah_number}:{self.verse_number}:{self.edition}"

    def stored_fields(self) -> dict:
        """Fields kept in the index document store for rendering results."""
        return {
            "id": self.id,
            "surah_number": self.surah_number,
            "surah_name": self.surah_name,
            "surah_english_name": self.surah_english_name,
            "verse_number": self.verse_number,
            "raw_text": self.raw_text,
            "edition": self.edition,
        }

    def to_dict(self) -> dict:
        data = self.stored_fields()
        data["normalized_text"] = self.normalized_text
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "VerseDocument":
        # normalized_text is always recomputed, never trusted from input
        return cls(
            surah_number=int(data["surah_number"]),
            verse_number=int(data["verse_number"]),
            edition=data["edition"],
            surah_name=data.get("surah_name", ""),
            surah_english_name=data.get("surah_english_name", ""),
            raw_text=data.get("raw_text", ""),
        )

    def to_compact(self) -> dict:
        """Short-key record used by the compact export."""
        return {
            "id": self.id,
            "s": self.surah_number,
            "n": self.surah_name,
            "e": self.surah_english_name,
            "a": self.verse_number,
            "t": self.raw_text,
            "ed": self.edition,
        }

    @classmethod
    def from_compact(cls, item: dict) -> "VerseDocument":
        return cls(
            surah_number=int(item["s"]),
            verse_number=int(item["a"]),
            edition=item["ed"],
            surah_name=item.get("n") or "",
            surah_english_name=item.get("e") or "",
            raw_text=item.get("t") or "",
        )


@dataclass
class SearchResult:
    """A ranked hit with the display fields of its verse."""
    id: str
    surah_number: int
    surah_name: str
    surah_english_name: str
    verse_number: int
    raw_text: str
    edition: str
    score: float
    terms: List[str] = field(default_factory=list)
    match: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def from_stored(
        cls,
        stored: dict,
        score: float,
        match: Optional[Dict[str, List[str]]] = None
    ) -> "SearchResult":
        match = match or {}
        return cls(
            id=stored["id"],
            surah_number=stored["surah_number"],
            surah_name=stored["surah_name"],
            surah_english_name=stored["surah_english_name"],
            verse_number=stored["verse_number"],
            raw_text=stored["raw_text"],
            edition=stored["edition"],
            score=score,
            terms=sorted(match),
            match=match,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "surah_number": self.surah_number,
            "surah_name": self.surah_name,
            "surah_english_name": self.surah_english_name,
            "verse_number": self.verse_number,
            "raw_text": self.raw_text,
            "edition": self.edition,
            "score": self.score,
            "terms": self.terms,
            "match": self.match,
        }


@dataclass
class SurahInfo:
    """Surah metadata from the bundled surah list."""
    number: int
    name: str
    english_name: str = ""
    english_name_translation: str = ""
    number_of_ayahs: int = 0
    revelation_type: str = ""

    def to_dict(self) -> dict:
        return {
            "number": self.number,
            "name": self.name,
            "englishName": self.english_name,
            "englishNameTranslation": self.english_name_translation,
            "numberOfAyahs": self.number_of_ayahs,
            "revelationType": self.revelation_type
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SurahInfo":
        """Parse an API / surah-list.json entry."""
        return cls(
            number=int(data["number"]),
            name=data.get("name", ""),
            english_name=data.get("englishName", ""),
            english_name_translation=data.get("englishNameTranslation", ""),
            number_of_ayahs=int(data.get("numberOfAyahs", 0)),
            revelation_type=data.get("revelationType", "")
        )
