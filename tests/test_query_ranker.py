from __future__ import annotations

from docnav.server.models import IndexEntry
from docnav.server.search_index import MAX_RESULTS, rank, score_entry


def _entry(title: str, content: str = "", anchor: str = "x", page_id: str = "page") -> IndexEntry:
    return IndexEntry(
        id=page_id,
        title=title,
        category="system-design",
        section="Fundamentals",
        page=f"content/{page_id}.md",
        url=page_id,
        anchor=anchor,
        content=content,
        title_lower=title.lower(),
        is_sub_section=bool(anchor),
    )


def _score(entry: IndexEntry, query: str) -> int:
    query_lower = query.lower()
    return score_entry(entry, query_lower, query_lower.split())


def test_title_match_outranks_content_match():
    content_only = _entry("Write Paths", "the service uses a write-through cache for reads")
    titled = _entry("Cache Strategies", "")
    results = rank("cache", [content_only, titled])
    assert results == [titled, content_only]
    assert _score(titled, "cache") == 100
    assert _score(content_only, "cache") == 20


def test_scoring_branches():
    entry = _entry("Consistent Hashing Ring", "virtual nodes smooth the key distribution")
    assert _score(entry, "hashing ring") == 100
    assert _score(entry, "ring consistent") == 50
    assert _score(entry, "virtual nodes") == 20
    # Terms counted individually, no cap.
    assert _score(entry, "nodes key zebra") == 10
    assert _score(entry, "zebra") == 0


def test_repeated_terms_count_each_time():
    entry = _entry("Other", "alpha beta")
    assert _score(entry, "alpha alpha beta gamma") == 15


def test_empty_and_blank_queries_return_nothing():
    entries = [_entry("Anything", "anything at all")]
    assert rank("", entries) == []
    assert rank("   ", entries) == []


def test_zero_scores_excluded():
    entries = [_entry("Queues", "fifo"), _entry("Streams", "logs")]
    assert rank("queues", entries) == [entries[0]]


def test_results_capped_and_sorted():
    entries = [_entry(f"Replication {i}", "leader follower replication", page_id=f"p{i}") for i in range(30)]
    entries += [_entry("Unrelated", "replication lag", page_id="lag")]
    results = rank("replication", entries)
    assert len(results) == MAX_RESULTS
    scores = [_score(e, "replication") for e in results]
    assert all(score > 0 for score in scores)
    assert scores == sorted(scores, reverse=True)


def test_ties_keep_index_order():
    entries = [_entry("Sharding", page_id=f"p{i}") for i in range(5)]
    assert rank("sharding", entries) == entries


def test_query_is_case_insensitive_and_trimmed():
    entry = _entry("Rate Limiting", "")
    assert rank("  RATE limiting ", [entry]) == [entry]


def test_custom_result_limit():
    entries = [_entry("Cache", page_id=f"p{i}") for i in range(5)]
    assert len(rank("cache", entries, max_results=2)) == 2
