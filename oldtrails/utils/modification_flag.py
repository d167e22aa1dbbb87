"""
The modification flag: true while the Steam game folder holds something other
than its factory contents because an install-and-launch cycle has not been
reversed yet.

The flag is mirrored to a marker file next to the install backup so that a
crash (rather than a clean close) can be detected and recovered from on the
next start. The marker names the OldTrails process that owns the session, so
another process can tell a session in progress from one left over by a crash.
"""

import os
from datetime import datetime
from pathlib import Path

import msgspec
from loguru import logger

from oldtrails.models.session import SessionState
from oldtrails.utils.process_monitor import current_process_identity, is_process_alive


class SessionMarker(msgspec.Struct):
    version: str
    state: SessionState
    updated_at: float
    # The OldTrails process that wrote the marker
    owner_pid: int = 0
    owner_create_time: float = 0.0


class ModificationFlag:
    def __init__(self, marker_path: Path) -> None:
        self._marker_path = marker_path
        self._marker: SessionMarker | None = None

    @property
    def is_set(self) -> bool:
        return self._marker is not None

    @property
    def version_name(self) -> str | None:
        return self._marker.version if self._marker else None

    @property
    def state(self) -> SessionState | None:
        return self._marker.state if self._marker else None

    @property
    def owner_pid(self) -> int | None:
        return self._marker.owner_pid if self._marker else None

    def held_by_other_process(self) -> bool:
        """
        Whether the marker belongs to another OldTrails process that is still
        running. Its session is in progress, the marker is not left over from a crash.
        """
        if self._marker is None or not self._marker.owner_pid:
            return False
        if self._marker.owner_pid == os.getpid():
            return False
        return is_process_alive(
            self._marker.owner_pid, self._marker.owner_create_time
        )

    def load(self) -> bool:
        """
        Read the persisted flag left behind by a previous run.

        An unreadable marker still means the folders were modified, so it
        loads as set with an unknown version.

        :return: True if the flag is set
        """
        if not self._marker_path.exists():
            self._marker = None
            return False
        try:
            self._marker = msgspec.json.decode(
                self._marker_path.read_bytes(), type=SessionMarker
            )
        except (msgspec.DecodeError, OSError) as e:
            logger.error(f"Session marker at {self._marker_path} is unreadable: {e}")
            self._marker = SessionMarker(
                version="",
                state=SessionState.RESTORING,
                updated_at=datetime.now().timestamp(),
            )
        logger.warning(
            f"Found session marker from a previous run: {self._marker.version!r} in state {self._marker.state.value}"
        )
        return True

    def set(self, version_name: str, state: SessionState) -> None:
        self._marker = SessionMarker(
            version=version_name, state=state, updated_at=datetime.now().timestamp()
        )
        self._write()
        logger.debug(f"Modification flag set for {version_name} ({state.value})")

    def update_state(self, state: SessionState) -> None:
        if self._marker is None:
            return
        self._marker.state = state
        self._marker.updated_at = datetime.now().timestamp()
        self._write()

    def clear(self) -> None:
        self._marker = None
        self._marker_path.unlink(missing_ok=True)
        logger.debug("Modification flag cleared")

    def _write(self) -> None:
        assert self._marker is not None
        self._marker.owner_pid, self._marker.owner_create_time = (
            current_process_identity()
        )
        self._marker_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._marker_path.with_suffix(".tmp")
        tmp_path.write_bytes(msgspec.json.encode(self._marker))
        tmp_path.replace(self._marker_path)
