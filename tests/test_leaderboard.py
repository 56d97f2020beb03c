from engpower.leaderboard import rank_of, record_session, top_entries
from engpower.models import LeaderboardEntry


def entry(username, score, timestamp="2026-01-01T00:00:00+00:00", avatar_id=0):
    return LeaderboardEntry(
        username=username, score=score, avatar_id=avatar_id, timestamp=timestamp
    )


def test_higher_score_replaces_lower():
    table = record_session([], entry("alice", 50))
    table = record_session(table, entry("alice", 80))
    assert [(e.username, e.score) for e in table] == [("alice", 80)]


def test_lower_score_does_not_replace_higher():
    table = record_session([], entry("alice", 80))
    table = record_session(table, entry("alice", 50))
    assert [(e.username, e.score) for e in table] == [("alice", 80)]


def test_tie_keeps_the_existing_entry():
    old = entry("alice", 60, timestamp="2026-01-01T00:00:00+00:00")
    new = entry("alice", 60, timestamp="2026-02-01T00:00:00+00:00")
    table = record_session([old], new)
    assert table == [old]


def test_tie_between_users_ranks_existing_first():
    table = record_session([entry("alice", 60)], entry("bob", 60))
    assert [e.username for e in table] == ["alice", "bob"]


def test_output_is_sorted_descending():
    table = []
    for name, score in [("a", 10), ("b", 90), ("c", 40), ("d", 70), ("b", 20)]:
        table = record_session(table, entry(name, score))
    assert [(e.username, e.score) for e in table] == [
        ("b", 90),
        ("d", 70),
        ("c", 40),
        ("a", 10),
    ]


def test_record_session_does_not_mutate_input():
    table = [entry("alice", 10)]
    record_session(table, entry("bob", 20))
    assert len(table) == 1


def test_top_entries_truncates_but_table_keeps_everything():
    table = []
    for i in range(15):
        table = record_session(table, entry(f"user{i}", i * 10))
    assert len(table) == 15
    top = top_entries(table)
    assert len(top) == 10
    assert top[0].score == 140
    assert top[-1].score == 50
    assert len(top_entries(table, limit=3)) == 3


def test_rank_of():
    table = record_session([entry("alice", 10)], entry("bob", 20))
    assert rank_of(table, "bob") == 1
    assert rank_of(table, "alice") == 2
    assert rank_of(table, "carol") is None
