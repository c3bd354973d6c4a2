"""Team registry: team existence, presentation status and membership.

Roster CRUD lives elsewhere; the coordination core only needs these reads
and the two presentation-lifecycle writes. Writes here never commit, the
caller's transaction does.
"""
from demoday import db
from demoday.errors import NotFoundError
from demoday.models import Team, User


class TeamRegistry:

    def get_team_by_id(self, team_id):
        return db.session.get(Team, team_id)

    def all_teams(self):
        return Team.query.order_by(Team.id.asc()).all()

    def get_user(self, user_id):
        return db.session.get(User, user_id)

    def get_user_team_id(self, user_id):
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError(f'User {user_id} not found')
        return user.team_id

    def mark_presented(self, team_id):
        team = self.get_team_by_id(team_id)
        if team is None:
            raise NotFoundError(f'Team {team_id} not found')
        team.has_presented = True
        db.session.add(team)
        return team

    def assign_presentation_order(self, ordered_team_ids):
        """Give teams positions 1..n in the order supplied."""
        teams = {t.id: t for t in Team.query.filter(Team.id.in_(ordered_team_ids)).all()} if ordered_team_ids else {}
        for position, team_id in enumerate(ordered_team_ids, start=1):
            team = teams.get(team_id)
            if team is None:
                raise NotFoundError(f'Team {team_id} not found')
            team.presentation_order = position
            team.has_presented = False
            db.session.add(team)
        return [teams[t] for t in ordered_team_ids]

    def clear_presentation_state(self):
        Team.query.update(
            {Team.has_presented: False, Team.presentation_order: None},
            synchronize_session='fetch',
        )
