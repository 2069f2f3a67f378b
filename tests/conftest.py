import json
from pathlib import Path

import pytest

from quran_search.config import Config
from quran_search.models import VerseDocument


BASMALAH = "بِسْمِ اللَّهِ الرَّحْمَـٰنِ الرَّحِيمِ"
RAHMAN_RAHEEM = "الرَّحْمَـٰنِ الرَّحِيمِ"

# Uthmani-style verses (alef wasla) used for the on-disk dataset
FATIHA_UTHMANI = [
    "بِسْمِ ٱللَّهِ ٱلرَّحْمَـٰنِ ٱلرَّحِيمِ",
    "ٱلْحَمْدُ لِلَّهِ رَبِّ ٱلْعَـٰلَمِينَ",
    "ٱلرَّحْمَـٰنِ ٱلرَّحِيمِ",
]
IKHLAS_UTHMANI = [
    "قُلْ هُوَ ٱللَّهُ أَحَدٌ",
    "ٱللَّهُ ٱلصَّمَدُ",
]
# Tajweed edition wraps letters in rule markup
FATIHA_TAJWEED = [
    "بِسْمِ [h:1[ٱ][l[ل]لَّهِ [h:2[ٱ][l[ل]رَّحْمَ[n[ـٰ]نِ [h:3[ٱ][l[ل]رَّحِيمِ",
    "[h:4[ٱ]لْحَمْدُ لِلَّهِ رَبِّ [h:5[ٱ]لْعَ[n[ـٰ]لَمِينَ",
    "[h:6[ٱ][l[ل]رَّحْمَ[n[ـٰ]نِ [h:7[ٱ][l[ل]رَّحِيمِ",
]

SURAH_LIST = [
    {"number": 1, "name": "سُورَةُ ٱلْفَاتِحَةِ", "englishName": "Al-Faatiha",
     "englishNameTranslation": "The Opening", "numberOfAyahs": 7, "revelationType": "Meccan"},
    {"number": 112, "name": "سُورَةُ الإِخۡلَاصِ", "englishName": "Al-Ikhlaas",
     "englishNameTranslation": "Sincerity", "numberOfAyahs": 4, "revelationType": "Meccan"},
]


def make_doc(surah, verse, text, edition="quran-uthmani", name="سورة الفاتحة", english="Al-Faatiha"):
    return VerseDocument(
        surah_number=surah,
        verse_number=verse,
        edition=edition,
        surah_name=name,
        surah_english_name=english,
        raw_text=text,
    )


@pytest.fixture
def fatiha_docs():
    """The two-verse corpus: basmalah and 'ar-rahman ar-raheem'."""
    return [make_doc(1, 1, BASMALAH), make_doc(1, 2, RAHMAN_RAHEEM)]


@pytest.fixture
def temp_config(tmp_path):
    """Isolated Config rooted in a temporary data directory."""
    cfg = Config(data_dir=tmp_path / "data")
    cfg.download.delay = 0
    cfg.save()
    return cfg


@pytest.fixture
def make_dataset():
    """Factory writing a small bundled dataset under a quran directory."""
    def _make(quran_dir: Path, with_tajweed: bool = True, with_surah_list: bool = True) -> Path:
        quran_dir = Path(quran_dir)
        quran_dir.mkdir(parents=True, exist_ok=True)
        if with_surah_list:
            (quran_dir / "surah-list.json").write_text(
                json.dumps(SURAH_LIST, ensure_ascii=False), encoding="utf-8"
            )

        editions = {"quran-uthmani": {1: FATIHA_UTHMANI, 112: IKHLAS_UTHMANI}}
        if with_tajweed:
            editions["quran-tajweed"] = {1: FATIHA_TAJWEED}

        for edition, surahs in editions.items():
            edition_dir = quran_dir / "surah" / edition
            edition_dir.mkdir(parents=True, exist_ok=True)
            for number, verses in surahs.items():
                data = {
                    "number": number,
                    "name": f"surah-{number}",
                    "englishName": f"Surah {number}",
                    "ayahs": [
                        {"number": i, "numberInSurah": i, "text": text}
                        for i, text in enumerate(verses, start=1)
                    ],
                }
                (edition_dir / f"{number}.json").write_text(
                    json.dumps(data, ensure_ascii=False), encoding="utf-8"
                )
        return quran_dir

    return _make


@pytest.fixture
def populated_config(temp_config, make_dataset):
    """Config whose data directory holds the small dataset."""
    make_dataset(temp_config.quran_dir)
    return temp_config
