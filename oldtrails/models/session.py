"""
Session lifecycle states and the record of the game session in progress.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from oldtrails.models.game_version import GameVersion

if TYPE_CHECKING:
    from oldtrails.utils.launcher import LaunchHandle


class SessionState(str, Enum):
    IDLE = "idle"
    INSTALLING = "installing"
    SAVE_PREPARING = "save_preparing"
    LAUNCHING = "launching"
    RUNNING = "running"
    CLOSING = "closing"
    SESSION_SAVING = "session_saving"
    RESTORING = "restoring"


# States in which the live save directories belong to the version being played
LIVE_SESSION_STATES = frozenset(
    {SessionState.RUNNING, SessionState.CLOSING, SessionState.SESSION_SAVING}
)


@dataclass
class GameSession:
    """
    The game session between launch and confirmed exit.

    Attributes:
        version: The version being played
        handle: Launch handle; inert handles force process table polling
        started_at: When the launch was confirmed
        awaiting_exit_confirmation: Consecutive polls that did not find the game process
        process_seen: Whether polling has seen the game process at least once
    """

    version: GameVersion
    handle: Optional["LaunchHandle"] = None
    started_at: datetime = field(default_factory=datetime.now)
    awaiting_exit_confirmation: int = 0
    process_seen: bool = False

    @property
    def polls_process_table(self) -> bool:
        return self.handle is None or not self.handle.supports_exit_notification
