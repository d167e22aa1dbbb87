import json
import os
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Dict

from loguru import logger
from PySide6.QtCore import QObject

from oldtrails.utils.app_info import AppInfo

LAUNCH_MODES = ("steam", "direct")


class Settings(QObject):
    def __init__(self, settings_file: Path | None = None) -> None:
        super().__init__()

        self._settings_file = settings_file or AppInfo().app_settings_file
        self._debug_file = self._settings_file.parent / "DEBUG"

        # Advanced
        self.debug_logging_enabled: bool = False

        # Path overrides, empty means auto-detect
        self.steam_folder: str = ""
        self.game_folder: str = ""
        self.local_low_folder: str = ""
        self.documents_folder: str = ""

        # Downloads
        self.depot_downloader_path: str = ""
        self.steam_username: str = ""
        self.max_downloads: int = 26

        # Launching: "steam" goes through the Steam client and polls the
        # process table, "direct" spawns the executable and waits on it
        self.launch_mode: str = "steam"

        # Session monitoring
        self.poll_interval_seconds: float = 2.0
        self.exit_confirmation_samples: int = 3
        self.settle_delay_seconds: float = 2.0
        self.launch_grace_seconds: float = 60.0

    @property
    def settings_file(self) -> Path:
        return self._settings_file

    def load(self) -> None:
        try:
            with open(str(self._settings_file), "r") as file:
                data = json.load(file)
                self._from_dict(data)
        except FileNotFoundError:
            logger.info(f"No settings file found, creating {self._settings_file}")
            self.save()
        except JSONDecodeError:
            raise

        env_game_folder = os.getenv("OLDTRAILS_GAME_FOLDER")
        if env_game_folder:
            logger.debug("Using game folder from OLDTRAILS_GAME_FOLDER")
            self.game_folder = env_game_folder

        if self.launch_mode not in LAUNCH_MODES:
            logger.warning(
                f"Unknown launch mode {self.launch_mode!r} in settings, using 'steam'"
            )
            self.launch_mode = "steam"

    def save(self) -> None:
        if self.debug_logging_enabled:
            self._debug_file.touch(exist_ok=True)
        else:
            self._debug_file.unlink(missing_ok=True)

        self._settings_file.parent.mkdir(parents=True, exist_ok=True)
        with open(str(self._settings_file), "w") as file:
            json.dump(self._to_dict(), file, indent=4)

    def _from_dict(self, data: Dict[str, Any]) -> None:
        for key, value in data.items():
            if key.startswith("_"):
                continue
            if not hasattr(self, key):
                logger.debug(f"Ignoring unknown setting: {key}")
                continue
            setattr(self, key, value)

    def _to_dict(self, skip_private: bool = True) -> Dict[str, Any]:
        skip_attributes = ["destroyed", "objectNameChanged"]

        data = {}

        for key, value in self.__dict__.items():
            if key in skip_attributes:
                continue
            if skip_private and key.startswith("_"):
                continue
            data[key] = value

        return data
