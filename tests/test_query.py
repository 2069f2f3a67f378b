import pytest

from quran_search.engine.index import SearchIndex
from quran_search.engine.query import (
    EXACT_WEIGHT,
    SearchOptions,
    expand_term,
    fuzzy_distance,
)

from conftest import make_doc


def _index(*docs, options=None):
    index = SearchIndex(options=options)
    index.add_all(docs)
    return index


def test_empty_query_returns_nothing():
    index = _index(make_doc(1, 1, "بسم الله"))
    assert index.search("") == []
    assert index.search("   ") == []
    assert index.search("،؛ .") == []


def test_round_trip_scenario(fatiha_docs):
    index = _index(*fatiha_docs)

    results = index.search("الرحمن")

    assert {r.id for r in results} == {"1:1:quran-uthmani", "1:2:quran-uthmani"}
    by_id = {r.id: r for r in results}
    assert by_id["1:2:quran-uthmani"].score >= by_id["1:1:quran-uthmani"].score
    assert results[0].id == "1:2:quran-uthmani"


def test_unvowelled_query_matches_vowelled_text(fatiha_docs):
    index = _index(*fatiha_docs)
    assert [r.id for r in index.search("بسم الله")] == ["1:1:quran-uthmani"]


def test_vowelled_query_matches_too(fatiha_docs):
    index = _index(*fatiha_docs)
    assert [r.id for r in index.search("بِسْمِ")] == ["1:1:quran-uthmani"]


def test_fragments_of_normalized_text_match(fatiha_docs):
    index = _index(*fatiha_docs)
    words = fatiha_docs[0].normalized_text.split()

    for start in range(len(words)):
        for end in range(start + 1, len(words) + 1):
            phrase = " ".join(words[start:end])
            assert "1:1:quran-uthmani" in {r.id for r in index.search(phrase)}, phrase

    for word in words:
        for cut in range(1, len(word) + 1):
            assert "1:1:quran-uthmani" in {r.id for r in index.search(word[:cut])}, word[:cut]


def test_prefix_match():
    index = _index(make_doc(1, 3, "الرَّحْمَـٰنِ", name=""))
    results = index.search("الرح")
    assert [r.id for r in results] == ["1:3:quran-uthmani"]
    assert results[0].terms == ["الرحمن"]


def test_prefix_can_be_disabled():
    index = _index(make_doc(1, 3, "الرَّحْمَـٰنِ", name=""), options=SearchOptions(prefix=False, fuzzy=0))
    assert index.search("الرح") == []


def test_fuzzy_tolerates_one_substitution():
    index = _index(make_doc(1, 2, "الحمد لله رب العالمين", name=""))
    assert [r.id for r in index.search("العالمون")] == ["1:2:quran-uthmani"]


def test_fuzzy_rejects_mostly_different_token():
    index = _index(make_doc(1, 2, "الحمد لله رب العالمين", name=""))
    assert index.search("الغاسقون") == []
    assert index.search("كتبناهم") == []


@pytest.mark.parametrize("term,expected", [
    ("رب", 0),
    ("احد", 0),
    ("الله", 1),
    ("الرحمن", 1),
    ("العالمين", 1),
    ("المستقيمين", 2),
    ("x" * 100, 6),
])
def test_fuzzy_distance_scales_with_length(term, expected):
    assert fuzzy_distance(term, 0.15) == expected


def test_fuzzy_distance_disabled():
    assert fuzzy_distance("العالمين", 0) == 0


def test_expand_term_prefers_exact_weight():
    index = _index(make_doc(1, 1, "الرحمن الرحمان", name=""))
    expansions = expand_term(index.trie, "الرحمن", index.options)
    assert expansions["الرحمن"] == EXACT_WEIGHT
    assert 0 < expansions["الرحمان"] < EXACT_WEIGHT


def test_exact_outranks_fuzzy():
    index = _index(
        make_doc(1, 1, "رب العالمون", name=""),
        make_doc(1, 2, "رب العالمين", name=""),
    )
    results = index.search("العالمين")
    assert [r.id for r in results] == ["1:2:quran-uthmani", "1:1:quran-uthmani"]
    assert results[0].score > results[1].score


def test_exact_outranks_rare_fuzzy_neighbour():
    docs = [make_doc(1, verse, "رب العالمين", name="") for verse in range(1, 10)]
    docs.append(make_doc(2, 1, "رب العالمون", name=""))
    index = _index(*docs)

    results = index.search("العالمين")

    assert len(results) == 10
    assert results[-1].id == "2:1:quran-uthmani"
    assert all(r.terms == ["العالمين"] for r in results[:-1])


def test_exact_outranks_fuzzy_in_shorter_and_more_fields():
    index = _index(
        make_doc(1, 1, "الحمد لله رب العالمين والصلاه علي رسوله الكريم وعلي اله", name="سورة الفاتحة"),
        make_doc(2, 1, "العالمون", name="العالمون"),
    )
    assert [r.id for r in index.search("العالمين")] == ["1:1:quran-uthmani", "2:1:quran-uthmani"]


def test_more_exact_terms_rank_first():
    index = _index(
        make_doc(1, 1, "رب العالمون", name=""),
        make_doc(1, 2, "رب العالمين", name=""),
        make_doc(1, 3, "رب العالمين", name=""),
        make_doc(1, 4, "رب العالمين", name=""),
    )
    results = index.search("رب العالمين")
    assert results[-1].id == "1:1:quran-uthmani"


def test_exact_outranks_prefix():
    index = _index(
        make_doc(1, 1, "الرحمن", name=""),
        make_doc(1, 2, "الرح", name=""),
    )
    assert [r.id for r in index.search("الرح")] == ["1:2:quran-uthmani", "1:1:quran-uthmani"]


def test_text_field_outranks_surah_name():
    index = _index(
        make_doc(55, 13, "فَبِأَيِّ آلَاءِ رَبِّكُمَا تُكَذِّبَانِ", name="سورة الرحمن"),
        make_doc(1, 3, "الرَّحْمَـٰنِ الرَّحِيمِ", name="سورة الفاتحة"),
    )
    results = index.search("الرحمن")
    assert [r.id for r in results] == ["1:3:quran-uthmani", "55:13:quran-uthmani"]
    assert results[1].match == {"الرحمن": ["surah_name"]}
    assert results[0].match == {"الرحمن": ["normalized_text", "raw_text"]}


def test_boost_ordering_normalized_over_raw_over_name():
    only = {"normalized_text": 0.0, "raw_text": 0.0, "surah_name": 0.0}
    doc = make_doc(1, 1, "الرحمن", name="الرحمن")
    scores = {}
    for field_name in only:
        boost = dict(only)
        boost[field_name] = SearchOptions().boost[field_name]
        scores[field_name] = _index(doc).search("الرحمن", SearchOptions(boost=boost))[0].score
    assert scores["normalized_text"] > scores["raw_text"] > scores["surah_name"]


def test_zero_boost_field_is_ignored():
    index = _index(make_doc(55, 1, "الرحمن", name="سورة الرحمن"))
    options = SearchOptions(boost={"normalized_text": 3.0, "raw_text": 2.0})
    assert index.search("سوره", options) == []


def test_and_requires_every_token():
    index = _index(
        make_doc(1, 1, "بسم الله الرحمن الرحيم", name=""),
        make_doc(1, 2, "الحمد لله رب العالمين", name=""),
    )
    assert index.search("الرحمن العالمين") == []
    assert [r.id for r in index.search("الرحمن بسم")] == ["1:1:quran-uthmani"]


def test_or_accepts_any_token():
    index = _index(
        make_doc(1, 1, "بسم الله الرحمن الرحيم", name=""),
        make_doc(1, 2, "الحمد لله رب العالمين", name=""),
    )
    results = index.search("الرحمن العالمين", SearchOptions(combine_with="or"))
    assert {r.id for r in results} == {"1:1:quran-uthmani", "1:2:quran-uthmani"}


def test_invalid_combine_with_rejected():
    with pytest.raises(ValueError):
        SearchOptions(combine_with="XOR")


def test_ties_follow_surah_then_verse_then_corpus_order():
    text = "قل هو الله احد"
    index = _index(
        make_doc(112, 1, text, edition="quran-warsh", name=""),
        make_doc(2, 5, text, name=""),
        make_doc(112, 1, text, name=""),
    )
    results = index.search("احد")
    assert len({r.score for r in results}) == 1
    assert [r.id for r in results] == [
        "2:5:quran-uthmani",
        "112:1:quran-warsh",
        "112:1:quran-uthmani",
    ]


def test_limit_truncates_ranked_results(fatiha_docs):
    index = _index(*fatiha_docs)
    results = index.search("الرحمن", SearchOptions(limit=1))
    assert [r.id for r in results] == ["1:2:quran-uthmani"]


def test_single_character_query_is_accepted():
    index = _index(make_doc(1, 1, "ن والقلم", name=""))
    assert [r.id for r in index.search("ن")] == ["1:1:quran-uthmani"]


def test_results_carry_display_fields(fatiha_docs):
    index = _index(*fatiha_docs)
    result = index.search("الرحيم")[0].to_dict()
    assert result["surah_name"] == "سورة الفاتحة"
    assert result["surah_english_name"] == "Al-Faatiha"
    assert result["raw_text"] in {d.raw_text for d in fatiha_docs}
    assert result["edition"] == "quran-uthmani"
    assert result["score"] > 0


def test_query_does_not_mutate_index(fatiha_docs):
    index = _index(*fatiha_docs)
    before = index.to_json()
    index.search("الرح")
    index.search("الرحمان الرحيم", SearchOptions(combine_with="OR"))
    assert index.to_json() == before
