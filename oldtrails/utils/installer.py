from loguru import logger

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GameVersion
from oldtrails.models.session import SessionState
from oldtrails.utils.constants import (
    PARTIAL_SUFFIX,
    RESERVED_INSTALL_NAMES,
    SAVE_SLOT_NAME,
)
from oldtrails.utils.exception import MissingSourceError
from oldtrails.utils.modification_flag import ModificationFlag
from oldtrails.utils.tree_ops import TreeResult, clear_tree, copy_tree
from oldtrails.utils.version_archive import VersionArchive


class Installer:
    """
    Swaps a version's payload into the Steam game folder.

    Destroys whatever the folder held before, so it must never run
    before the factory backup exists.
    """

    def __init__(
        self, paths: EnginePaths, archive: VersionArchive, flag: ModificationFlag
    ) -> None:
        self.paths = paths
        self.archive = archive
        self.flag = flag

    def install_version(self, version: GameVersion) -> TreeResult:
        """
        Replace the Steam game folder contents with the payload of version.

        The reserved subfolders (version archive root and mods) are left untouched.

        :param version: The version to install
        :return: TreeResult of the clear and copy
        :raises MissingSourceError: If the payload is not on disk; the modification flag is not set
        """
        payload = self.archive.payload_dir(version)
        if not payload.is_dir():
            raise MissingSourceError(
                f"{version.name} is not downloaded, expected it at {payload}"
            )

        logger.info(f"Installing {version.name} to Steam directory...")
        # From here on the game folder no longer holds its factory contents
        self.flag.set(version.name, SessionState.INSTALLING)

        result = clear_tree(self.paths.install_dir, RESERVED_INSTALL_NAMES)
        result.extend(
            copy_tree(
                payload,
                self.paths.install_dir,
                exclude=(SAVE_SLOT_NAME, SAVE_SLOT_NAME + PARTIAL_SUFFIX),
            )
        )
        logger.info(f"{version.name} installed successfully ({result.files} entries)")
        return result
