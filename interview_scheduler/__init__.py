"""
Interview scheduling core.

Aggregates interviewer availability into quorum-feasible slots and keeps
Event rosters consistent with each User's reverse index of memberships.
"""

__version__ = "0.1.0"
