import signal
import sys
from pathlib import Path
from types import FrameType

from loguru import logger
from PySide6.QtCore import QCoreApplication, QObject, QTimer

from oldtrails.controllers.session_controller import SessionController
from oldtrails.models.session import SessionState
from oldtrails.models.settings import Settings
from oldtrails.utils.depot_downloader import DepotDownloader, find_depot_downloader
from oldtrails.utils.event_bus import EventBus
from oldtrails.utils.launcher import make_launch_provider
from oldtrails.utils.steam_paths import (
    discover_paths,
    find_steam_executable,
    find_steam_folder,
)


class AppController(QObject):
    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__()

        self.app = QCoreApplication.instance() or QCoreApplication(sys.argv)
        self.event_bus = EventBus()

        # Initialize the application settings.
        self.initialize_settings(settings)
        # Locate the game and the folders the engine works on
        self.paths = discover_paths(self.settings)
        # Initialize the session controller
        self.initialize_session_controller()

    def initialize_settings(self, settings: Settings | None) -> None:
        """Loads the settings model, unless one was passed in."""
        if settings is None:
            settings = Settings()
            settings.load()
        self.settings = settings

    def initialize_session_controller(self) -> None:
        steam_executable = None
        if self.settings.launch_mode == "steam":
            steam_folder = (
                Path(self.settings.steam_folder)
                if self.settings.steam_folder
                else find_steam_folder()
            )
            steam_executable = find_steam_executable(steam_folder)
        launch_provider = make_launch_provider(
            self.settings.launch_mode, steam_executable
        )
        self.session_controller = SessionController(
            self.paths, self.settings, launch_provider
        )

    def make_downloader(self) -> DepotDownloader | None:
        executable = find_depot_downloader(self.settings.depot_downloader_path)
        if executable is None:
            logger.error("DepotDownloader executable not found")
            return None
        return DepotDownloader(
            executable, self.settings.steam_username, self.settings.max_downloads
        )

    def run_session(self) -> int:
        """
        Run the event loop until the session in progress is over.

        Ctrl+C asks the session controller for permission to exit, which is
        denied while the game is running.

        :return: 0 if the game folders were restored, 1 otherwise
        """
        if self.session_controller.state == SessionState.IDLE:
            return 0 if not self.session_controller.is_modified else 1

        def on_state_changed(state: str) -> None:
            if state == SessionState.IDLE.value:
                self.app.quit()

        def on_interrupt(_signum: int, _frame: FrameType | None) -> None:
            logger.info("USER ACTION: Interrupt")
            if self.session_controller.request_shutdown():
                self.app.quit()

        self.event_bus.session_state_changed.connect(on_state_changed)
        previous_handler = signal.signal(signal.SIGINT, on_interrupt)
        # Lets the SIGINT handler run while Qt waits for events
        wake_timer = QTimer()
        wake_timer.timeout.connect(lambda: None)
        wake_timer.start(250)
        try:
            self.app.exec()
        finally:
            wake_timer.stop()
            signal.signal(signal.SIGINT, previous_handler)
            self.event_bus.session_state_changed.disconnect(on_state_changed)
        return 0 if not self.session_controller.is_modified else 1
