from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class TeamTally:
    team_id: int
    team_name: str
    vote_count: int
    has_presented: bool


@dataclass(frozen=True)
class LeaderboardEntry:
    team_id: int
    team_name: str
    vote_count: int
    rank: int
    has_presented: bool

    def to_dict(self):
        return {
            'teamId': self.team_id,
            'teamName': self.team_name,
            'voteCount': self.vote_count,
            'rank': self.rank,
            'hasPresented': self.has_presented,
        }


def rank_entries(tallies: Iterable[TeamTally]) -> List[LeaderboardEntry]:
    """Dense-rank presented teams by final vote count.

    Teams that have not presented are dropped entirely. Ties share a rank and
    the next distinct count gets the next integer: ``[5, 5, 3] -> [1, 1, 2]``.
    Within a tie, teams are listed by name so the order is stable.
    """
    presented = [t for t in tallies if t.has_presented]
    presented.sort(key=lambda t: (-t.vote_count, t.team_name, t.team_id))

    entries = []
    rank = 0
    previous_count = None
    for tally in presented:
        if tally.vote_count != previous_count:
            rank += 1
            previous_count = tally.vote_count
        entries.append(LeaderboardEntry(
            team_id=tally.team_id,
            team_name=tally.team_name,
            vote_count=tally.vote_count,
            rank=rank,
            has_presented=True,
        ))
    return entries
