# quran_search/utils/corpus.py
"""
Reader for the bundled offline Quran dataset.

Layout under the dataset directory:
    surah-list.json
    surah/<edition>/<surah_number>.json
    search/all-ayat.json            compact export
    search/full-quran-index.json    prebuilt serialized index
"""
import json
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence
import logging

from ..exceptions import CorpusError
from ..models import SurahInfo, VerseDocument

logger = logging.getLogger(__name__)

DEFAULT_EDITIONS = ("quran-uthmani", "quran-tajweed", "quran-warsh")


def _read_json(path: Path):
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        raise CorpusError(path, str(e)) from e


def write_compact_export(docs: Iterable[VerseDocument], path: Path) -> int:
    """Write short-key verse records. Returns the record count."""
    records = [doc.to_compact() for doc in docs]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False, separators=(",", ":"))
    logger.info(f"Wrote compact export: {path} ({len(records)} verses)")
    return len(records)


def load_compact_export(path: Path) -> List[VerseDocument]:
    """Read documents back from a compact export."""
    data = _read_json(Path(path))
    if not isinstance(data, list):
        raise CorpusError(path, "expected a list of verse records")
    try:
        return [VerseDocument.from_compact(item) for item in data]
    except (KeyError, TypeError, ValueError) as e:
        raise CorpusError(path, f"bad verse record: {e}") from e


class CorpusLoader:
    """
    Yields VerseDocuments from the bundled dataset.

    A loader is callable, so it can be handed directly to
    QuranSearchService as its corpus source.
    """

    def __init__(
        self,
        quran_dir: Path,
        editions: Sequence[str] = DEFAULT_EDITIONS,
        prefer_compact: bool = True
    ):
        self.quran_dir = Path(quran_dir)
        self.editions = list(editions)
        self.prefer_compact = prefer_compact
        self._surahs: Optional[Dict[int, SurahInfo]] = None

    @property
    def surah_list_path(self) -> Path:
        return self.quran_dir / "surah-list.json"

    @property
    def compact_path(self) -> Path:
        return self.quran_dir / "search" / "all-ayat.json"

    def edition_dir(self, edition: str) -> Path:
        return self.quran_dir / "surah" / edition

    def load_surah_list(self) -> Dict[int, SurahInfo]:
        """Surah metadata keyed by number; empty if the list is missing."""
        if self._surahs is None:
            if self.surah_list_path.exists():
                data = _read_json(self.surah_list_path)
                self._surahs = {s.number: s for s in map(SurahInfo.from_dict, data)}
            else:
                logger.warning(f"No surah list at {self.surah_list_path}")
                self._surahs = {}
        return self._surahs

    def available_editions(self) -> List[str]:
        """Configured editions that have a directory in the dataset."""
        return [e for e in self.editions if self.edition_dir(e).is_dir()]

    def iter_edition(self, edition: str) -> Iterator[VerseDocument]:
        """Verses of one edition, surah files in numeric order."""
        edition_dir = self.edition_dir(edition)
        if not edition_dir.is_dir():
            logger.debug(f"Edition {edition} not present at {edition_dir}")
            return

        surahs = self.load_surah_list()
        files = sorted(
            (p for p in edition_dir.glob("*.json") if p.stem.isdigit()),
            key=lambda p: int(p.stem)
        )
        for path in files:
            surah_number = int(path.stem)
            surah_data = _read_json(path)
            info = surahs.get(surah_number)
            surah_name = info.name if info else surah_data.get("name", "")
            english_name = info.english_name if info else surah_data.get("englishName", "")

            for ayah in surah_data.get("ayahs", []):
                yield VerseDocument(
                    surah_number=surah_number,
                    verse_number=int(ayah["numberInSurah"]),
                    edition=edition,
                    surah_name=surah_name,
                    surah_english_name=english_name,
                    raw_text=ayah.get("text", "")
                )

    def iter_documents(self) -> Iterator[VerseDocument]:
        """
        All verses, edition by edition.

        Uses the compact export when present (and preferred), otherwise
        the per-surah files. A missing dataset yields nothing.
        """
        if self.prefer_compact and self.compact_path.exists():
            logger.info(f"Loading corpus from compact export {self.compact_path}")
            editions = set(self.editions)
            for doc in load_compact_export(self.compact_path):
                if doc.edition in editions:
                    yield doc
            return

        for edition in self.editions:
            yield from self.iter_edition(edition)

    def __call__(self) -> Iterator[VerseDocument]:
        return self.iter_documents()


def build_bundled_index(
    loader: CorpusLoader,
    index_path: Path,
    compact_path: Optional[Path] = None,
    options=None
):
    """
    Offline build step: index the whole corpus and write it to disk.

    Args:
        loader: Corpus to index (read from the per-surah files)
        index_path: Where the serialized index goes
        compact_path: Where the compact export goes, if wanted
        options: SearchOptions stored with the index

    Returns:
        The built SearchIndex
    """
    from ..engine.index import SearchIndex

    docs = [doc for edition in loader.editions for doc in loader.iter_edition(edition)]
    if not docs:
        # Dataset shipped without per-surah files
        docs = list(loader.iter_documents())
    logger.info(f"Indexing {len(docs)} verses from {len(set(d.edition for d in docs))} editions...")

    index = SearchIndex(options=options)
    index.add_all(docs)

    index_path = Path(index_path)
    index_path.parent.mkdir(parents=True, exist_ok=True)
    serialized = index.to_json()
    with open(index_path, "w", encoding="utf-8") as f:
        f.write(serialized)
    logger.info(f"Search index saved to {index_path} ({len(serialized) / 1024 / 1024:.2f} MB)")

    if compact_path:
        write_compact_export(docs, compact_path)

    return index
