"""
metrics.py

Provides a simple centralized tracker for membership consistency metrics.
"""


class MembershipMetrics:
    """
    A simple singleton-like class (by convention) to track membership operations.

    Counts successful adds and removes, reverse-index repairs, partial
    consistency warnings handed back to callers, cascade failures after
    deletes, and optimistic save conflicts. A global instance
    `metrics_tracker` is provided for convenience.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        """Resets all tracked metrics to zero."""
        self.memberships_added: int = 0
        self.memberships_removed: int = 0
        self.index_repairs: int = 0
        self.partial_consistency_warnings: int = 0
        self.cascade_failures: int = 0
        self.save_conflicts: int = 0

    def increment_added(self, count: int = 1):
        self.memberships_added += count

    def increment_removed(self, count: int = 1):
        self.memberships_removed += count

    def increment_repairs(self, count: int = 1):
        """
        Increments the count of reverse-index entries fixed by a repair.

        Args:
            count (int): The number of repaired entries. Defaults to 1.
        """
        self.index_repairs += count

    def increment_warnings(self, count: int = 1):
        self.partial_consistency_warnings += count

    def increment_cascade_failures(self, count: int = 1):
        self.cascade_failures += count

    def increment_save_conflicts(self, count: int = 1):
        self.save_conflicts += count

    def get_summary(self) -> dict:
        """
        Returns a dictionary summarizing the tracked metrics.
        """
        return {
            "memberships_added": self.memberships_added,
            "memberships_removed": self.memberships_removed,
            "index_repairs": self.index_repairs,
            "partial_consistency_warnings": self.partial_consistency_warnings,
            "cascade_failures": self.cascade_failures,
            "save_conflicts": self.save_conflicts,
        }


# Global instance
metrics_tracker = MembershipMetrics()
