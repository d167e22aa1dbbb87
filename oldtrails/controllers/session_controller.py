"""
The session lifecycle: install a version over the Steam game folder, load its
saves, launch it, wait for it to exit, store its saves and put the factory
game folder and saves back.

Only one session can be active. Every request that would touch the game or
save folders while a session is active is rejected.
"""

from datetime import datetime

from loguru import logger
from PySide6.QtCore import QObject, QTimer

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GameVersion, get_version
from oldtrails.models.session import LIVE_SESSION_STATES, GameSession, SessionState
from oldtrails.models.settings import Settings
from oldtrails.utils.backup_store import BackupStore
from oldtrails.utils.constants import TRAILMAKERS_EXECUTABLE
from oldtrails.utils.depot_downloader import DepotDownloader
from oldtrails.utils.event_bus import EventBus
from oldtrails.utils.exception import (
    BackupNotReadyError,
    MissingSourceError,
    OldTrailsError,
    PartialRestoreFailure,
    SessionBusyError,
)
from oldtrails.utils.installer import Installer
from oldtrails.utils.launcher import DirectLaunchProvider, SteamLaunchProvider
from oldtrails.utils.modification_flag import ModificationFlag
from oldtrails.utils.process_monitor import is_process_running
from oldtrails.utils.save_sync import SaveSync
from oldtrails.utils.tree_ops import TreeResult
from oldtrails.utils.version_archive import VersionArchive

STATUS_MESSAGES = {
    SessionState.IDLE: "Ready.",
    SessionState.INSTALLING: "Installing {version}...",
    SessionState.SAVE_PREPARING: "Loading save data for {version}...",
    SessionState.LAUNCHING: "Launching {version}...",
    SessionState.RUNNING: "{version} is running.",
    SessionState.CLOSING: "{version} closed, waiting for the game to let go of its files...",
    SessionState.SESSION_SAVING: "Saving session data for {version}...",
    SessionState.RESTORING: "Restoring original Steam game and save data...",
}


class SessionController(QObject):
    def __init__(
        self,
        paths: EnginePaths | None,
        settings: Settings,
        launch_provider: SteamLaunchProvider | DirectLaunchProvider,
    ) -> None:
        super().__init__()

        self.paths = paths
        self.settings = settings
        self.launch_provider = launch_provider
        self.event_bus = EventBus()

        self._state = SessionState.IDLE
        self.session: GameSession | None = None

        self.poll_timer = QTimer(self)
        self.poll_timer.setInterval(int(settings.poll_interval_seconds * 1000))
        self.poll_timer.timeout.connect(self.poll_game_process)

        if paths is None:
            self.flag = None
            self.archive = None
            self.backup_store = None
            self.installer = None
            self.save_sync = None
            return

        self.flag = ModificationFlag(paths.session_marker)
        self.archive = VersionArchive(paths)
        self.backup_store = BackupStore(paths, self.flag)
        self.installer = Installer(paths, self.archive, self.flag)
        self.save_sync = SaveSync(paths, self.archive)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_modified(self) -> bool:
        return self.flag is not None and self.flag.is_set

    def _set_state(self, state: SessionState, message: str | None = None) -> None:
        self._state = state
        version = self.session.version.name if self.session else ""
        if self.flag is not None and state == SessionState.INSTALLING:
            self.flag.set(version, state)
        elif self.flag is not None and state != SessionState.IDLE:
            self.flag.update_state(state)
        logger.debug(f"Session state: {state.value}")
        self.event_bus.session_state_changed.emit(state.value)
        self.event_bus.status_message.emit(
            message or STATUS_MESSAGES[state].format(version=version)
        )

    def _report_error(self, message: str) -> None:
        logger.error(message)
        self.event_bus.session_error.emit(message)

    def _reject(self, message: str) -> bool:
        logger.warning(f"Request rejected: {message}")
        self.event_bus.session_error.emit(message)
        return False

    def _discovery_error(self) -> str:
        return (
            f"Could not find the Steam installation of the game ({TRAILMAKERS_EXECUTABLE}). "
            "Set the game folder in the settings."
        )

    def initialize(self) -> bool:
        """
        Recover from a previous run that did not restore the game folders,
        then take the factory backup if it does not exist yet.

        Nothing is touched while another running OldTrails process owns the
        session recorded on disk.

        :return: False if the game folder was not found or could not be backed up or restored
        """
        if self.paths is None:
            self._report_error(self._discovery_error())
            return False
        assert self.flag is not None and self.backup_store is not None

        if self.flag.load():
            try:
                self._check_session_owner()
            except SessionBusyError as e:
                self._report_error(str(e))
                return False

            version = get_version(self.flag.version_name or "")
            previous_state = self.flag.state

            if version is not None and is_process_running(TRAILMAKERS_EXECUTABLE):
                logger.warning(
                    f"{version.name} is still running from a previous run, resuming the session"
                )
                self.session = GameSession(version=version, process_seen=True)
                self._set_state(SessionState.RUNNING)
                self.poll_timer.start()
                return True

            logger.warning("The game folders were left modified by a previous run")
            if version is not None and previous_state in LIVE_SESSION_STATES:
                # The live save folders still hold that version's session
                self.session = GameSession(version=version)
                self._commit_session(version)
            if not self._restore_canonical():
                return False

        try:
            self.backup_store.ensure_backup()
        except (BackupNotReadyError, OSError) as e:
            self._report_error(f"Failed to back up the original game files: {e}")
            return False

        self._set_state(SessionState.IDLE)
        return True

    def _check_session_owner(self) -> None:
        assert self.flag is not None
        if self.flag.held_by_other_process():
            raise SessionBusyError(
                f"Another OldTrails process (pid {self.flag.owner_pid}) is playing "
                f"{self.flag.version_name}. Wait for that session to end."
            )

    def play(self, version: GameVersion) -> bool:
        """
        Install version, load its saves and launch it.

        Rejected without touching the disk unless the controller is idle,
        the game folder was found, the backup exists and the version is downloaded.

        :return: True if the game was launched
        """
        if self._state != SessionState.IDLE:
            return self._reject(
                f"Cannot play {version.name}, a session is already in progress ({self._state.value})"
            )
        if self.paths is None:
            return self._reject(self._discovery_error())
        assert (
            self.backup_store is not None
            and self.archive is not None
            and self.installer is not None
            and self.save_sync is not None
        )
        if get_version(version.manifest_id) is None:
            return self._reject(f"Unknown version: {version.name}")
        if self.flag is not None and self.flag.is_set:
            return self._reject(
                "The original game files have not been restored yet, run restore first"
            )
        if not self.backup_store.is_ready:
            try:
                self.backup_store.ensure_backup()
            except (BackupNotReadyError, OSError) as e:
                return self._reject(f"Cannot play without a backup of the original game: {e}")
        if not self.archive.is_installed(version):
            return self._reject(f"{version.name} is not downloaded")

        logger.info(f"USER ACTION: Play {version.name}")
        self.session = GameSession(version=version)

        self._set_state(SessionState.INSTALLING)
        try:
            self._log_skipped(self.installer.install_version(version))
        except (OldTrailsError, OSError) as e:
            self._abort(f"Failed to install {version.name}: {e}")
            return False

        self._set_state(SessionState.SAVE_PREPARING)
        try:
            self._log_skipped(self.save_sync.prepare_session(version))
        except OSError as e:
            self._abort(f"Failed to load save data for {version.name}: {e}")
            return False

        self._set_state(SessionState.LAUNCHING)
        try:
            handle = self.launch_provider.launch(self.paths)
        except (OldTrailsError, OSError) as e:
            self._abort(f"Failed to launch {version.name}: {e}")
            return False

        logger.info(f"Launched {version.name} (pid {handle.pid})")
        self.session.handle = handle
        self.session.started_at = datetime.now()
        self._set_state(SessionState.RUNNING)
        self.event_bus.game_launched.emit(version.name)
        if self.session.polls_process_table:
            self.poll_timer.start()
        else:
            handle.finished.connect(self._on_handle_finished)
        return True

    def _on_handle_finished(self, exit_code: int) -> None:
        logger.info(f"Game process exited with code {exit_code}")
        self.on_game_exited()

    def poll_game_process(self) -> None:
        """
        Sample the process table once.

        Exit is confirmed after exit_confirmation_samples consecutive misses.
        Before the process was seen for the first time, misses only count
        once launch_grace_seconds have passed since launch.
        """
        if self._state != SessionState.RUNNING or self.session is None:
            return
        session = self.session

        if is_process_running(TRAILMAKERS_EXECUTABLE):
            if not session.process_seen:
                logger.info(f"{TRAILMAKERS_EXECUTABLE} process detected")
            session.process_seen = True
            session.awaiting_exit_confirmation = 0
            return

        if not session.process_seen:
            elapsed = (datetime.now() - session.started_at).total_seconds()
            if elapsed < self.settings.launch_grace_seconds:
                return

        session.awaiting_exit_confirmation += 1
        logger.debug(
            f"Game process not found ({session.awaiting_exit_confirmation}/{self.settings.exit_confirmation_samples})"
        )
        if session.awaiting_exit_confirmation >= self.settings.exit_confirmation_samples:
            logger.info("Game exit confirmed")
            self.on_game_exited()

    def on_game_exited(self) -> None:
        """
        Store the session's saves and restore the factory folders.

        Runs after settle_delay_seconds without blocking the event loop, the
        game may still hold its save files right after its process exits.
        """
        if self._state != SessionState.RUNNING or self.session is None:
            return
        self.poll_timer.stop()

        self._set_state(SessionState.CLOSING)
        delay_ms = int(self.settings.settle_delay_seconds * 1000)
        if delay_ms > 0:
            QTimer.singleShot(delay_ms, self._finish_session)
        else:
            self._finish_session()

    def _finish_session(self) -> None:
        if self._state != SessionState.CLOSING or self.session is None:
            return
        version = self.session.version
        self._commit_session(version)
        self.event_bus.game_closed.emit(version.name)
        self._restore_canonical()

    def _commit_session(self, version: GameVersion) -> bool:
        assert self.save_sync is not None
        self._set_state(SessionState.SESSION_SAVING)
        try:
            self._log_skipped(self.save_sync.commit_session(version))
        except OSError as e:
            # Restoring still has to happen, the live folders are not factory
            self._report_error(f"Failed to save session data for {version.name}: {e}")
            return False
        return True

    def _abort(self, message: str) -> None:
        self.poll_timer.stop()
        self._report_error(message)
        self._restore_canonical()

    def _restore_canonical(self) -> bool:
        """
        Put the factory game folder and saves back and clear the modification flag.

        On failure the flag stays set, so the restore is retried on the next
        start or by an explicit restore.
        """
        assert self.backup_store is not None and self.flag is not None
        self._set_state(SessionState.RESTORING)
        try:
            result = self.backup_store.restore_install()
            result.extend(self.backup_store.restore_saves())
        except PartialRestoreFailure as e:
            self._report_error(
                f"{e}. The game folders are NOT in their original state, "
                "restore again before launching through Steam."
            )
            self.session = None
            self._set_state(SessionState.IDLE, "Restore failed.")
            return False

        self._log_skipped(result)
        self.flag.clear()
        self.session = None
        self._set_state(SessionState.IDLE, "Original Steam game and saves restored.")
        return True

    def _log_skipped(self, result: TreeResult) -> None:
        if not result.ok:
            message = f"{len(result.skipped)} file(s) were in use and skipped"
            logger.warning(f"{message}: {result.skipped}")
            self.event_bus.status_message.emit(message)

    def restore(self) -> bool:
        """
        Restore the factory folders on request, for instance after a failed restore.
        """
        if self._state != SessionState.IDLE:
            return self._reject("Cannot restore while a session is in progress")
        if self.paths is None:
            return self._reject(self._discovery_error())
        if not self.is_modified:
            self.event_bus.status_message.emit(
                "The game folders are already in their original state."
            )
            return True
        return self._restore_canonical()

    def request_shutdown(self) -> bool:
        """
        Whether the application may exit now.

        Denied while a session is active. When the game folders are still
        modified, they are restored first and shutdown is denied if that fails.
        """
        if self._state != SessionState.IDLE:
            return self._reject(
                "The game is still running. Close it before exiting, or the original files cannot be restored."
            )
        if self.is_modified:
            logger.info("Restoring the game folders before exit")
            return self._restore_canonical()
        return True

    def uninstall(self, version: GameVersion) -> bool:
        """
        Delete a downloaded version. Rejected while that version is in session
        or its install over the game folder has not been reversed yet.
        """
        if self.archive is None:
            return self._reject(self._discovery_error())
        in_session = (
            self.session is not None and self.session.version == version
        ) or (self.flag is not None and self.flag.version_name == version.name)
        if in_session:
            return self._reject(f"Cannot uninstall {version.name} while it is being played")
        if not self.archive.uninstall(version):
            return self._reject(f"{version.name} is not downloaded")
        self.event_bus.status_message.emit(f"{version.name} uninstalled.")
        self.event_bus.versions_changed.emit()
        return True

    def factory_reset(self) -> bool:
        """
        Put the original game folder and saves back, then delete every
        downloaded version, save slot and backup.
        """
        if self._state != SessionState.IDLE:
            return self._reject("Cannot reset while a session is in progress")
        if self.paths is None:
            return self._reject(self._discovery_error())
        assert (
            self.archive is not None
            and self.backup_store is not None
            and self.flag is not None
        )

        logger.info("USER ACTION: Factory reset")
        if not self._restore_canonical():
            return self._reject("Factory reset aborted, the original files could not be restored")

        try:
            self.backup_store.destroy()
            self.archive.purge()
        except OSError as e:
            self._report_error(f"Failed to delete downloaded versions: {e}")
            return False
        self.flag.clear()
        self.event_bus.status_message.emit("Factory reset complete.")
        self.event_bus.versions_changed.emit()
        return True

    def download(
        self,
        version: GameVersion,
        provider: DepotDownloader,
        password: str | None = None,
    ) -> bool:
        """
        Download version into the archive.

        :return: True if the version was downloaded and stored
        """
        if self._state != SessionState.IDLE:
            return self._reject("Cannot download while a session is in progress")
        if self.archive is None:
            return self._reject(self._discovery_error())

        temp_dir = self.archive.prepare_download_dir(version)
        self.event_bus.status_message.emit(f"Downloading {version.name}...")
        result = provider.fetch_version(version, temp_dir, password)
        if not result.success:
            self.archive.discard_download_dir(version)
            return self._reject(f"Download of {version.name} failed: {result.message}")

        try:
            self.archive.store_payload(version, temp_dir)
        except (MissingSourceError, OSError) as e:
            self.archive.discard_download_dir(version)
            return self._reject(str(e))

        self.event_bus.status_message.emit(f"{version.name} downloaded.")
        self.event_bus.versions_changed.emit()
        return True
