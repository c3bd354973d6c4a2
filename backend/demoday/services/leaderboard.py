from sqlalchemy import and_, func

from demoday import db
from demoday.models import Team, Vote
from .ranking import TeamTally, rank_entries
from .transaction import read_snapshot


class LeaderboardService:
    """Standings derived on demand from final votes; nothing is cached."""

    def _tallies(self):
        final_count = func.count(Vote.id)
        rows = (
            db.session.query(Team.id, Team.name, Team.has_presented, final_count)
            .outerjoin(Vote, and_(Vote.team_id == Team.id, Vote.is_final_vote.is_(True)))
            .group_by(Team.id, Team.name, Team.has_presented)
            .all()
        )
        return [
            TeamTally(team_id=team_id, team_name=name, vote_count=int(count or 0), has_presented=bool(presented))
            for team_id, name, presented, count in rows
        ]

    def get_leaderboard(self):
        return rank_entries(read_snapshot(self._tallies))

    def get_team_entry(self, team_id):
        for entry in self.get_leaderboard():
            if entry.team_id == team_id:
                return entry
        return None

    def get_stats(self):
        tallies = read_snapshot(self._tallies)
        entries = rank_entries(tallies)
        top = entries[0] if entries and entries[0].rank == 1 else None
        return {
            'totalTeams': len(tallies),
            'totalVotes': sum(t.vote_count for t in tallies),
            'teamsPresented': sum(1 for t in tallies if t.has_presented),
            'topTeam': top.to_dict() if top else None,
        }
