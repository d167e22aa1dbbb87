"""
Write-once snapshot of the factory Steam game folder and the factory save folders.

The snapshot is taken the first time a valid installation is seen and is
never overwritten afterwards. Existence of the snapshot folder is the marker
that it is complete: snapshots are written into a ".partial" sibling and
renamed into place once fully copied.
"""

import shutil
from pathlib import Path

from loguru import logger

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.utils.constants import (
    PARTIAL_SUFFIX,
    RESERVED_DOCUMENTS_NAMES,
    RESERVED_INSTALL_NAMES,
    VERSIONS_ROOT_NAME,
)
from oldtrails.utils.exception import BackupNotReadyError, PartialRestoreFailure
from oldtrails.utils.modification_flag import ModificationFlag
from oldtrails.utils.tree_ops import TreeResult, clear_tree, copy_tree


def _partial_path(path: Path) -> Path:
    return path.with_name(path.name + PARTIAL_SUFFIX)


class BackupStore:
    def __init__(self, paths: EnginePaths, flag: ModificationFlag) -> None:
        self.paths = paths
        self.flag = flag
        # Set once ensure_backup() completed in this process
        self._ensured = False

    @property
    def has_install_backup(self) -> bool:
        return self.paths.install_backup_dir.is_dir()

    @property
    def has_save_backup(self) -> bool:
        return self.paths.main_backup_dir.is_dir()

    @property
    def is_ready(self) -> bool:
        return self._ensured and self.has_install_backup and self.has_save_backup

    def ensure_backup(self) -> bool:
        """
        Snapshot the factory install and save folders unless a snapshot already exists.

        Taking a snapshot of folders that were already altered would corrupt the
        notion of "factory", so this refuses to snapshot while the modification
        flag is set.

        :return: True if a new snapshot was taken, False if everything was already backed up
        :raises BackupNotReadyError: If a snapshot is missing while the folders are modified
        """
        missing = not self.has_install_backup or not self.has_save_backup
        if missing and self.flag.is_set:
            raise BackupNotReadyError(
                "The game folders are not in their original state, refusing to back them up"
            )

        created = False
        if not self.has_install_backup:
            logger.info("Backing up original Steam game directory...")
            self._snapshot(
                self.paths.install_backup_dir,
                [(self.paths.install_dir, "", (VERSIONS_ROOT_NAME,))],
            )
            logger.info("Steam game backup complete")
            created = True

        if not self.has_save_backup:
            logger.info("Backing up main save data...")
            self._snapshot(
                self.paths.main_backup_dir,
                [
                    (self.paths.local_low_dir, self.paths.local_low_backup_dir.name, ()),
                    (self.paths.documents_dir, self.paths.documents_backup_dir.name, ()),
                ],
            )
            logger.info("Main save backup complete")
            created = True

        self._ensured = True
        return created

    def _snapshot(
        self, target: Path, sources: list[tuple[Path, str, tuple[str, ...]]]
    ) -> None:
        partial = _partial_path(target)
        if partial.exists():
            logger.warning(f"Discarding interrupted backup at {partial}")
            shutil.rmtree(partial)

        partial.mkdir(parents=True)
        result = TreeResult()
        for source, subfolder, exclude in sources:
            destination = partial / subfolder if subfolder else partial
            destination.mkdir(parents=True, exist_ok=True)
            result.extend(copy_tree(source, destination, exclude=exclude))

        if not result.ok:
            logger.warning(
                f"Backup {target} is missing {len(result.skipped)} locked entr(y/ies): {result.skipped}"
            )
        partial.rename(target)
        logger.debug(f"Backup finalized at {target} with {result.files} file(s)")

    def restore_install(self) -> TreeResult:
        """
        Put the original Steam game files back, keeping the reserved subfolders.

        :raises PartialRestoreFailure: If the restore aborted part way
        """
        backup = self.paths.install_backup_dir
        if not backup.is_dir():
            logger.debug("No Steam game backup found, nothing to restore")
            return TreeResult()

        logger.info("Restoring original Steam game directory...")
        try:
            result = clear_tree(self.paths.install_dir, RESERVED_INSTALL_NAMES)
            result.extend(copy_tree(backup, self.paths.install_dir))
        except OSError as e:
            raise PartialRestoreFailure(
                f"Failed to restore the Steam game directory: {e}"
            ) from e
        logger.info("Steam game directory restored successfully")
        return result

    def restore_saves(self) -> TreeResult:
        """
        Put the original save folders back.

        :raises PartialRestoreFailure: If the restore aborted part way
        """
        if not self.paths.main_backup_dir.is_dir():
            logger.debug("No main save backup found, nothing to restore")
            return TreeResult()

        logger.info("Restoring main save data...")
        try:
            result = clear_tree(self.paths.local_low_dir)
            result.extend(
                clear_tree(self.paths.documents_dir, RESERVED_DOCUMENTS_NAMES)
            )
            result.extend(
                copy_tree(self.paths.local_low_backup_dir, self.paths.local_low_dir)
            )
            result.extend(
                copy_tree(self.paths.documents_backup_dir, self.paths.documents_dir)
            )
        except OSError as e:
            raise PartialRestoreFailure(f"Failed to restore main save data: {e}") from e
        logger.info("Main save restoration complete")
        return result

    def destroy(self) -> None:
        """Delete both snapshots. Only a factory reset does this."""
        for path in (self.paths.steam_backup_dir, self.paths.main_backup_dir):
            if path.exists():
                logger.info(f"Deleting backup {path}")
                shutil.rmtree(path)
        self._ensured = False
