from typing import Optional

# Relative change from the last committed weight above which an entry is held
OUTLIER_THRESHOLD = 0.15


def is_outlier(new_weight: float, previous_weight: Optional[float]) -> bool:
    """
    True if new_weight differs from previous_weight by strictly more than 15%.
    A first-ever entry (no previous weight) is never an outlier.
    """
    if previous_weight is None:
        return False

    change = abs(new_weight - previous_weight) / previous_weight
    return change > OUTLIER_THRESHOLD
