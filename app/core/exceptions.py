"""
Exceptions for the weight intake and reconciliation engine.

None of these is fatal: callers turn them into a user-facing reply or a
retry on the next scheduler tick.
"""


class PromotionFailed(Exception):
    """
    Raised when an expired pending entry could not be written to the
    entries table. The pending entry is left in place for the next tick.
    """

    def __init__(self, pending_id: int, weight: float, cause: Exception):
        super().__init__(f"Failed to promote pending entry {pending_id} ({weight}): {cause}")
        self.pending_id = pending_id
        self.weight = weight
        self.cause = cause
