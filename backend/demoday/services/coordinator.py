"""Entry point for every externally exposed coordination operation.

HTTP routes and socket handlers call the ``EventCoordinator``; it runs the
state transition through the owning service and, once the transaction has
committed, publishes the resulting state on the broadcaster.
"""
import random

from flask import current_app

from demoday.broadcaster import (
    EVENT_LEADERBOARD_TEAM_UPDATE,
    EVENT_LEADERBOARD_UPDATE,
    EVENT_PRESENTATION_UPDATE,
    EVENT_QUEUE_UPDATED,
    EVENT_TEAM_UPDATE,
    EVENT_TIMER_UPDATE,
    EVENT_VOTE_COUNT,
    EVENT_VOTE_SUBMITTED,
    TOPIC_LEADERBOARD,
    TOPIC_PRESENTATION,
    TOPIC_TEAM,
    TOPIC_TIMER,
    TOPIC_VOTE,
    Broadcaster,
)
from .leaderboard import LeaderboardService
from .queue import QueueManager
from .registry import TeamRegistry
from .scheduler import TimerExpiryWatcher
from .state import EventState
from .timer import TimerController
from .transaction import atomic
from .voting import VotingService

EXTENSION_KEY = 'demoday'


class EventCoordinator:
    def __init__(self, state, broadcaster, registry=None, rng=None, default_duration=300):
        self.state = state
        self.broadcaster = broadcaster
        self.registry = registry or TeamRegistry()
        self.queue = QueueManager(state, self.registry, rng=rng)
        self.timer = TimerController(state, default_duration=default_duration)
        self.voting = VotingService(state, self.registry)
        self.leaderboard = LeaderboardService()
        self.expiry = TimerExpiryWatcher(self.timer, broadcaster)

    @classmethod
    def from_config(cls, config, broadcaster=None):
        seed = config.get('QUEUE_SHUFFLE_SEED')
        return cls(
            state=EventState(voting_open=config.get('VOTING_OPEN_DEFAULT', True)),
            broadcaster=broadcaster or Broadcaster(),
            rng=random.Random(seed) if seed not in (None, '') else None,
            default_duration=int(config.get('TIMER_DEFAULT_DURATION_SEC', 300)),
        )

    def init(self):
        """Create the singleton timer row and reset in-process state."""
        self.state.init()
        return self.timer.init()

    def reset(self):
        """Back to boot state: default voting flag, no voter locks, no recorded expiry."""
        self.state.reset()
        self.expiry.reset()
        current_app.logger.info(f"[coordinator-reset] voting_open={self.state.voting_open}")

    # ---- presentation queue ----

    def initialize_queue(self):
        created = self.queue.initialize()
        self._publish_queue()
        self._publish_leaderboard()
        return created

    def start_presentation(self, presentation_id):
        transition = self.queue.start(presentation_id)
        self._publish_transition(transition)
        return transition.started

    def advance_to_next(self):
        transition = self.queue.advance_to_next()
        self._publish_transition(transition)
        return transition

    def reset_queue(self):
        deleted = self.queue.reset()
        # The timer would otherwise point at a deleted presentation
        timer = self.timer.reset()
        self._publish(TOPIC_TIMER, EVENT_TIMER_UPDATE, timer.to_dict)
        self._publish_queue()
        self._publish_leaderboard()
        return deleted

    def queue_status(self):
        return self.queue.status()

    def list_presentations(self):
        return self.queue.all()

    def get_presentation(self, presentation_id):
        return self.queue.get(presentation_id)

    # ---- timer ----

    def start_timer(self, presentation_id, duration_seconds=None):
        self.queue.get(presentation_id)
        return self._publish_timer(self.timer.start(presentation_id, duration_seconds))

    def pause_timer(self):
        return self._publish_timer(self.timer.pause())

    def reset_timer(self):
        return self._publish_timer(self.timer.reset())

    def set_timer_duration(self, seconds):
        return self._publish_timer(self.timer.set_duration(seconds))

    def timer_state(self):
        return self.timer.state_row()

    def remaining_seconds(self):
        return self.timer.remaining()

    def check_timer_expiry(self):
        return self.expiry.check()

    # ---- voting ----

    def submit_vote(self, voter_id, team_id, is_final_vote, public_note=None, team_hint=None):
        outcome = self.voting.submit_vote(
            voter_id, team_id, is_final_vote, public_note=public_note, team_hint=team_hint
        )
        if not outcome.ok:
            return outcome
        self._publish(TOPIC_VOTE, EVENT_VOTE_SUBMITTED, outcome.vote.to_dict)
        if outcome.vote.is_final_vote:
            team_id = outcome.vote.team_id
            self._publish(TOPIC_VOTE, EVENT_VOTE_COUNT, lambda: {
                'teamId': team_id,
                'count': self.voting.vote_count(team_id),
            })
            self._publish_leaderboard(team_ids=[team_id])
        return outcome

    def update_private_note(self, voter_id, team_id, note, ranking):
        return self.voting.update_private_note(voter_id, team_id, note, ranking)

    def get_user_rankings(self, voter_id):
        return self.voting.get_user_rankings(voter_id)

    def get_user_votes(self, voter_id):
        return self.voting.get_user_votes(voter_id)

    def vote_count(self, team_id):
        return self.voting.vote_count(team_id)

    def set_voting_open(self, is_open):
        value = self.state.set_voting_open(is_open)
        current_app.logger.info(f"[voting-status] open={value}")
        return value

    def is_voting_open(self):
        return self.state.voting_open

    # ---- leaderboard ----

    def get_leaderboard(self):
        return self.leaderboard.get_leaderboard()

    def get_leaderboard_stats(self):
        return self.leaderboard.get_stats()

    def get_team_entry(self, team_id):
        return self.leaderboard.get_team_entry(team_id)

    def mark_presented(self, team_id):
        """Open voting for a team outside the queue (admin override)."""
        with self.state.queue_lock:
            with atomic():
                team = self.registry.mark_presented(team_id)
        current_app.logger.info(f"[team-presented] team={team_id}")
        self._publish(TOPIC_TEAM, EVENT_TEAM_UPDATE, lambda: {'action': 'updated', 'team': team.to_dict()})
        self._publish_leaderboard(team_ids=[team_id])
        return team

    # ---- publication ----

    def _publish(self, topic, event, build_payload):
        """Build the payload and publish it; never fails the caller."""
        try:
            payload = build_payload()
        except Exception:
            current_app.logger.exception(f"[broadcast-fail] topic={topic} event={event} payload unavailable")
            return 0
        return self.broadcaster.publish(topic, event, payload)

    def _publish_timer(self, timer):
        self._publish(TOPIC_TIMER, EVENT_TIMER_UPDATE, timer.to_dict)
        return timer

    def _publish_queue(self):
        self._publish(TOPIC_PRESENTATION, EVENT_QUEUE_UPDATED, lambda: self.queue.status().to_dict())

    def _publish_leaderboard(self, team_ids=()):
        self._publish(TOPIC_LEADERBOARD, EVENT_LEADERBOARD_UPDATE,
                      lambda: [e.to_dict() for e in self.leaderboard.get_leaderboard()])
        for team_id in team_ids:
            self._publish(TOPIC_LEADERBOARD, EVENT_LEADERBOARD_TEAM_UPDATE,
                          lambda team_id=team_id: self._team_entry_payload(team_id))

    def _team_entry_payload(self, team_id):
        entry = self.leaderboard.get_team_entry(team_id)
        return {'teamId': team_id, 'entry': entry.to_dict() if entry else None}

    def _publish_transition(self, transition):
        if transition.completed is not None:
            self._publish(TOPIC_PRESENTATION, EVENT_PRESENTATION_UPDATE, transition.completed.to_dict)
        if transition.started is not None:
            self._publish(TOPIC_PRESENTATION, EVENT_PRESENTATION_UPDATE, transition.started.to_dict)
        self._publish_queue()
        if transition.completed is not None:
            team = self.registry.get_team_by_id(transition.completed.team_id)
            if team is not None:
                self._publish(TOPIC_TEAM, EVENT_TEAM_UPDATE, lambda: {'action': 'updated', 'team': team.to_dict()})
            # A newly presented team enters the standings
            self._publish_leaderboard(team_ids=[transition.completed.team_id])


def get_coordinator(app=None):
    app = app or current_app
    return app.extensions[EXTENSION_KEY]
