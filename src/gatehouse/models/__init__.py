"""Records stored in the expiring store and guard inputs."""

from .records import BlacklistEntry, BotActivityRecord, DefensiveModeState, ViolationRecord
from .submission import LoginAttempt, Submission

__all__ = [
    "BlacklistEntry",
    "BotActivityRecord",
    "DefensiveModeState",
    "LoginAttempt",
    "Submission",
    "ViolationRecord",
]
