"""
Per-version storage under the versions root: the downloaded game files
(payload) and the version's own save slot (_SaveData).
"""

import shutil
from pathlib import Path

from loguru import logger

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GAME_VERSIONS, GameVersion
from oldtrails.utils.constants import (
    DOCUMENTS_NAME,
    LOCAL_LOW_NAME,
    SAVE_SLOT_NAME,
    TEMP_DOWNLOAD_PREFIX,
    TRAILMAKERS_EXECUTABLE,
    UNSAFE_FOLDER_CHARACTERS,
)
from oldtrails.utils.exception import MissingSourceError


def safe_version_name(name: str) -> str:
    """
    Folder name for a version: the display name without quotes and colons.

    >>> safe_version_name("1.9.5 PvP Update: Part 1")
    '1.9.5 PvP Update Part 1'
    """
    return name.translate({ord(c): None for c in UNSAFE_FOLDER_CHARACTERS})


class VersionArchive:
    def __init__(self, paths: EnginePaths) -> None:
        self.paths = paths

    @property
    def root(self) -> Path:
        return self.paths.versions_root

    def payload_dir(self, version: GameVersion) -> Path:
        return self.root / safe_version_name(version.name)

    def save_slot(self, version: GameVersion) -> Path:
        return self.payload_dir(version) / SAVE_SLOT_NAME

    def save_slot_local_low(self, version: GameVersion) -> Path:
        return self.save_slot(version) / LOCAL_LOW_NAME

    def save_slot_documents(self, version: GameVersion) -> Path:
        return self.save_slot(version) / DOCUMENTS_NAME

    def temp_download_dir(self, version: GameVersion) -> Path:
        return self.root / f"{TEMP_DOWNLOAD_PREFIX}{version.manifest_id}"

    def is_installed(self, version: GameVersion) -> bool:
        return self.payload_dir(version).is_dir()

    def has_save_slot(self, version: GameVersion) -> bool:
        return self.save_slot(version).is_dir()

    def installed_versions(self) -> list[GameVersion]:
        """Catalogue entries that have a payload folder, in catalogue order."""
        if not self.root.is_dir():
            return []
        try:
            folders = {entry.name for entry in self.root.iterdir() if entry.is_dir()}
        except OSError as e:
            logger.error(f"Failed to scan for installed versions: {e}")
            return []
        return [v for v in GAME_VERSIONS if safe_version_name(v.name) in folders]

    def prepare_download_dir(self, version: GameVersion) -> Path:
        """Create an empty temporary folder for a download, removing a stale one."""
        temp_dir = self.temp_download_dir(version)
        if temp_dir.exists():
            logger.debug(f"Removing stale download folder {temp_dir}")
            shutil.rmtree(temp_dir)
        temp_dir.mkdir(parents=True)
        return temp_dir

    def discard_download_dir(self, version: GameVersion) -> None:
        temp_dir = self.temp_download_dir(version)
        if temp_dir.exists():
            logger.debug(f"Removing failed download folder {temp_dir}")
            shutil.rmtree(temp_dir, ignore_errors=True)

    def store_payload(self, version: GameVersion, downloaded_dir: Path) -> Path:
        """
        Move a finished download into the archive.

        The download only counts when it contains the game executable,
        whatever the download tool reported.

        :param version: The version that was downloaded
        :param downloaded_dir: Folder the download tool wrote to
        :return: The payload folder
        :raises MissingSourceError: If the executable is not in the download
        """
        if not (downloaded_dir / TRAILMAKERS_EXECUTABLE).is_file():
            raise MissingSourceError(
                f"Download finished, but {TRAILMAKERS_EXECUTABLE} was not found in {downloaded_dir}"
            )

        payload = self.payload_dir(version)
        if payload.exists():
            # Keep the save slot of a re-downloaded version
            previous_slot = self.save_slot(version)
            if previous_slot.is_dir():
                shutil.move(previous_slot, downloaded_dir / SAVE_SLOT_NAME)
            shutil.rmtree(payload)
        downloaded_dir.rename(payload)
        logger.info(f"Stored {version.name} at {payload}")
        return payload

    def uninstall(self, version: GameVersion) -> bool:
        """
        Delete a version's payload and save slot.

        :return: True if the folder existed and was deleted
        """
        payload = self.payload_dir(version)
        if not payload.is_dir():
            logger.warning(f"Cannot uninstall {version.name}, folder not found: {payload}")
            return False
        shutil.rmtree(payload)
        logger.info(f"Uninstalled {version.name} from {payload}")
        return True

    def purge(self) -> None:
        """Delete every folder under the versions root."""
        if not self.root.is_dir():
            return
        logger.info(f"Deleting every folder in {self.root}")
        for entry in self.root.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
