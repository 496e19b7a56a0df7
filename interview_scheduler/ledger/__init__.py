"""
Membership consistency protocol between Event rosters and User indexes.
"""

from .membership import DeletionOutcome, MembershipLedger, MembershipOutcome, ReconcileReport

__all__ = ["DeletionOutcome", "MembershipLedger", "MembershipOutcome", "ReconcileReport"]
