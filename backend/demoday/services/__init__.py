"""Event coordination services: queue, timer, voting, leaderboard.

This package contains the domain logic that HTTP routes and socket handlers
call through ``EventCoordinator``, keeping transport concerns separated from
the rules of the event.
"""
