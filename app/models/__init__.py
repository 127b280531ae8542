from app.models.entry import Entry
from app.models.pending_entry import PendingEntry
from app.models.auth import AuthCode, AuthSession
from app.models.preference import Preference

__all__ = [
    "Entry",
    "PendingEntry",
    "AuthCode",
    "AuthSession",
    "Preference",
]
