"""
Game launch providers.

Launching through the Steam client hands the game off to Steam: the spawned
process exits right away, so its handle never reports the game's exit and the
session falls back to polling the process table. Launching the executable
directly gives a handle whose finished signal fires when the game exits.
"""

import subprocess
import sys
from pathlib import Path

from loguru import logger
from PySide6.QtCore import QObject, QProcess, Signal

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.utils.constants import TRAILMAKERS_APP_ID, TRAILMAKERS_EXECUTABLE
from oldtrails.utils.exception import LaunchFailure


class LaunchHandle(QObject):
    """
    Handle to a launched game.

    finished is emitted with the exit code, but only by handles whose
    supports_exit_notification is True.
    """

    finished = Signal(int)

    def __init__(
        self, supports_exit_notification: bool, pid: int = -1, parent=None
    ) -> None:
        super().__init__(parent)
        self.supports_exit_notification = supports_exit_notification
        self.pid = pid


class SteamLaunchProvider:
    def __init__(self, steam_executable: Path | None) -> None:
        self.steam_executable = steam_executable

    def launch(self, paths: EnginePaths) -> LaunchHandle:
        """
        Ask the Steam client to start the game.

        :raises LaunchFailure: If Steam is missing or could not be started
        """
        if self.steam_executable is None or not self.steam_executable.is_file():
            raise LaunchFailure("Steam executable not found, cannot launch the game")

        args = [str(self.steam_executable), "-applaunch", TRAILMAKERS_APP_ID]
        logger.info(f"Launching game through Steam: {args}")
        try:
            if sys.platform == "win32":
                p = subprocess.Popen(
                    args, creationflags=subprocess.CREATE_NEW_PROCESS_GROUP
                )
            else:
                p = subprocess.Popen(args, start_new_session=True)
        except OSError as e:
            raise LaunchFailure(f"Failed to start Steam: {e}") from e
        return LaunchHandle(supports_exit_notification=False, pid=p.pid)


class DirectLaunchProvider:
    start_timeout_ms = 30000

    def __init__(self) -> None:
        self._process: QProcess | None = None

    def launch(self, paths: EnginePaths) -> LaunchHandle:
        """
        Start the game executable from the install folder and watch it.

        :raises LaunchFailure: If the executable is missing or failed to start
        """
        executable = paths.install_dir / TRAILMAKERS_EXECUTABLE
        if not executable.is_file():
            raise LaunchFailure(f"{executable} does not exist")

        logger.info(f"Launching {executable} directly")
        self._process = QProcess()
        self._process.setProgram(str(executable))
        self._process.setArguments([])
        self._process.setWorkingDirectory(str(paths.install_dir))
        self._process.start()
        if not self._process.waitForStarted(self.start_timeout_ms):
            error = self._process.errorString()
            self._process = None
            raise LaunchFailure(f"Failed to start {executable}: {error}")

        handle = LaunchHandle(
            supports_exit_notification=True, pid=self._process.processId()
        )
        self._process.finished.connect(
            lambda exit_code, _status: handle.finished.emit(exit_code)
        )
        return handle


def make_launch_provider(
    launch_mode: str, steam_executable: Path | None
) -> SteamLaunchProvider | DirectLaunchProvider:
    if launch_mode == "direct":
        return DirectLaunchProvider()
    return SteamLaunchProvider(steam_executable)
