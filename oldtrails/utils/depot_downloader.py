"""
Wrapper around the DepotDownloader command line tool, which fetches a
specific historical manifest of the game's depot from Steam.
"""

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from oldtrails.models.game_version import GameVersion
from oldtrails.utils.constants import (
    DEPOT_DOWNLOADER_EXECUTABLE,
    TRAILMAKERS_APP_ID,
    TRAILMAKERS_DEPOT_ID,
    TRAILMAKERS_EXECUTABLE,
)


@dataclass
class DownloadResult:
    success: bool
    dest_dir: Path
    exit_code: int | None = None
    message: str = ""


def find_depot_downloader(configured_path: str = "") -> Path | None:
    """
    Find the DepotDownloader executable: the configured path, then PATH.
    """
    if configured_path:
        path = Path(configured_path)
        if path.is_file():
            return path
        logger.warning(f"Configured DepotDownloader not found at {configured_path}")
    for name in (DEPOT_DOWNLOADER_EXECUTABLE, f"{DEPOT_DOWNLOADER_EXECUTABLE}.exe"):
        found = shutil.which(name)
        if found:
            return Path(found)
    return None


class DepotDownloader:
    def __init__(self, executable: Path, username: str, max_downloads: int = 26) -> None:
        self.executable = executable
        self.username = username
        self.max_downloads = max_downloads

    def build_args(
        self, version: GameVersion, dest_dir: Path, password: str | None = None
    ) -> list[str]:
        args = [
            str(self.executable),
            "-app",
            TRAILMAKERS_APP_ID,
            "-depot",
            TRAILMAKERS_DEPOT_ID,
            "-manifest",
            version.manifest_id,
            "-username",
            self.username,
        ]
        if password:
            args += ["-password", password]
        args += [
            "-remember-password",
            "-dir",
            str(dest_dir),
            "-validate",
            "-os",
            "windows",
            "-osarch",
            "64",
            "-max-downloads",
            str(self.max_downloads),
        ]
        return args

    def fetch_version(
        self, version: GameVersion, dest_dir: Path, password: str | None = None
    ) -> DownloadResult:
        """
        Download the depot manifest of version into dest_dir.

        The tool inherits this process' terminal so that Steam Guard codes
        can be typed in. Without a password the tool falls back to the
        credentials it remembered from an earlier login.

        :param version: The version to download
        :param dest_dir: Empty folder to download into
        :param password: Steam password, only needed for the first login
        :return: DownloadResult; success requires exit code 0 and the game executable
        """
        args = self.build_args(version, dest_dir, password)
        logger.info(
            f"Starting download of {version.name} (manifest {version.manifest_id})"
        )
        logger.debug(f"Running {args}")
        try:
            completed = subprocess.run(
                args,
                stdin=sys.stdin,
                stdout=sys.stdout,
                stderr=sys.stderr,
                check=False,
            )
        except OSError as e:
            logger.error(f"Failed to start DepotDownloader: {e}")
            return DownloadResult(False, dest_dir, message=str(e))

        if completed.returncode != 0:
            message = f"DepotDownloader exited with code {completed.returncode}"
            logger.error(message)
            return DownloadResult(False, dest_dir, completed.returncode, message)

        if not (dest_dir / TRAILMAKERS_EXECUTABLE).is_file():
            message = f"Download finished, but {TRAILMAKERS_EXECUTABLE} was not found"
            logger.error(message)
            return DownloadResult(False, dest_dir, completed.returncode, message)

        logger.info(f"Download of {version.name} complete")
        return DownloadResult(True, dest_dir, completed.returncode)
