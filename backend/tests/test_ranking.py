import random

from demoday.services.ranking import TeamTally, rank_entries


def _tally(team_id, name, votes, presented=True):
    return TeamTally(team_id=team_id, team_name=name, vote_count=votes, has_presented=presented)


def test_ties_share_rank_and_next_rank_has_no_gap():
    entries = rank_entries([_tally(1, 'A', 5), _tally(2, 'B', 5), _tally(3, 'C', 3)])
    assert [(e.team_name, e.rank) for e in entries] == [('A', 1), ('B', 1), ('C', 2)]


def test_non_presented_teams_are_dropped_from_numbering():
    entries = rank_entries([
        _tally(1, 'A', 1),
        _tally(2, 'Big', 10, presented=False),
        _tally(3, 'C', 0),
    ])
    assert [(e.team_name, e.rank) for e in entries] == [('A', 1), ('C', 2)]
    assert all(e.has_presented for e in entries)


def test_equal_counts_are_ordered_by_name():
    entries = rank_entries([_tally(1, 'Zeta', 2), _tally(2, 'Alpha', 2), _tally(3, 'Mid', 2)])
    assert [e.team_name for e in entries] == ['Alpha', 'Mid', 'Zeta']
    assert {e.rank for e in entries} == {1}


def test_empty_input_gives_empty_board():
    assert rank_entries([]) == []
    assert rank_entries([_tally(1, 'A', 4, presented=False)]) == []


def test_dense_ranks_are_consecutive_for_random_counts():
    rng = random.Random(1234)
    for _ in range(50):
        tallies = [_tally(i, f'T{i:02d}', rng.randint(0, 6), rng.random() < 0.8) for i in range(12)]
        entries = rank_entries(tallies)
        presented = [t for t in tallies if t.has_presented]
        assert len(entries) == len(presented)

        distinct = sorted({t.vote_count for t in presented}, reverse=True)
        expected_rank = {count: i + 1 for i, count in enumerate(distinct)}
        for entry in entries:
            assert entry.rank == expected_rank[entry.vote_count]
        counts = [e.vote_count for e in entries]
        assert counts == sorted(counts, reverse=True)


def test_entry_serializes_with_wire_names():
    entry = rank_entries([_tally(9, 'Nine', 3)])[0]
    assert entry.to_dict() == {
        'teamId': 9,
        'teamName': 'Nine',
        'voteCount': 3,
        'rank': 1,
        'hasPresented': True,
    }
