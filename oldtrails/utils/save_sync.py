"""
Save and Blueprint reconciliation between the live save folders, the
version save slots and the master Blueprint library.

Blueprints are shared across versions as an append-only union: a blueprint
that exists anywhere is copied in where it is missing, and never overwrites
an existing file. The master set lives in the main save backup and is merged
into the live folder before every session and folded back after it.
"""

import shutil
from pathlib import Path

from loguru import logger

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GameVersion
from oldtrails.utils.constants import (
    BLUEPRINTS_NAME,
    DOCUMENTS_NAME,
    LOCAL_LOW_NAME,
    PARTIAL_SUFFIX,
    RESERVED_DOCUMENTS_NAMES,
)
from oldtrails.utils.tree_ops import TreeResult, clear_tree, copy_tree, merge_tree
from oldtrails.utils.version_archive import VersionArchive


class SaveSync:
    def __init__(self, paths: EnginePaths, archive: VersionArchive) -> None:
        self.paths = paths
        self.archive = archive

    def prepare_session(self, version: GameVersion) -> TreeResult:
        """
        Load the save state of version into the live save folders.

        The live folders are emptied (Blueprints kept), seeded with the master
        Blueprints, then filled from the version's save slot when it has one.
        A version without a save slot is on its first run and only gets the
        master Blueprints.
        """
        logger.info(f"Preparing save data for {version.name}")
        live_blueprints = self.paths.live_blueprints_dir

        result = clear_tree(self.paths.local_low_dir)
        result.extend(
            clear_tree(
                self.paths.documents_dir, (*RESERVED_DOCUMENTS_NAMES, BLUEPRINTS_NAME)
            )
        )
        result.extend(merge_tree(self.paths.master_blueprints_dir, live_blueprints))

        if not self.archive.has_save_slot(version):
            logger.info(f"No saved session for {version.name}, starting fresh")
            return result

        logger.info(f"Restoring save data for {version.name}")
        result.extend(
            copy_tree(
                self.archive.save_slot_local_low(version), self.paths.local_low_dir
            )
        )
        slot_documents = self.archive.save_slot_documents(version)
        result.extend(
            copy_tree(
                slot_documents, self.paths.documents_dir, exclude=(BLUEPRINTS_NAME,)
            )
        )
        # Version blueprints never replace newer master ones
        result.extend(merge_tree(slot_documents / BLUEPRINTS_NAME, live_blueprints))
        return result

    def commit_session(self, version: GameVersion) -> TreeResult:
        """
        Store the live save state into the save slot of version after it was played.

        New blueprints are folded into the master set before the master set is
        copied into the slot, so they reach every other version's next session.

        The slot is written into a ".partial" sibling and only replaces the
        previous slot once every copy succeeded. On error the previous slot
        is left as it was and the error propagates.
        """
        logger.info(f"Saving session data for: {version.name}")
        slot = self.archive.save_slot(version)
        partial = slot.with_name(slot.name + PARTIAL_SUFFIX)
        if partial.exists():
            logger.warning(f"Discarding interrupted session save at {partial}")
            shutil.rmtree(partial)

        try:
            result = self._write_slot(partial)
        except OSError:
            shutil.rmtree(partial, ignore_errors=True)
            raise

        if slot.exists():
            shutil.rmtree(slot)
        partial.rename(slot)
        logger.info(f"Session for {version.name} saved successfully")
        return result

    def _write_slot(self, slot: Path) -> TreeResult:
        slot_local_low = slot / LOCAL_LOW_NAME
        slot_documents = slot / DOCUMENTS_NAME
        slot_local_low.mkdir(parents=True)
        slot_documents.mkdir(parents=True)

        result = copy_tree(self.paths.local_low_dir, slot_local_low)
        result.extend(
            copy_tree(
                self.paths.documents_dir,
                slot_documents,
                exclude=(BLUEPRINTS_NAME, *RESERVED_DOCUMENTS_NAMES),
            )
        )
        result.extend(
            merge_tree(self.paths.live_blueprints_dir, self.paths.master_blueprints_dir)
        )
        result.extend(
            copy_tree(
                self.paths.master_blueprints_dir, slot_documents / BLUEPRINTS_NAME
            )
        )
        return result
