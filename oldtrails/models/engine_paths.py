from pathlib import Path

import msgspec

from oldtrails.utils.constants import (
    BLUEPRINTS_NAME,
    DOCUMENTS_NAME,
    LOCAL_LOW_NAME,
    MAIN_BACKUP_NAME,
    SESSION_MARKER_NAME,
    STEAM_BACKUP_NAME,
    STEAM_GAME_BACKUP_NAME,
    VERSIONS_ROOT_NAME,
)


class EnginePaths(msgspec.Struct, frozen=True):
    """
    Canonical and archive locations used by the reconciliation engine.

    Resolved once by path discovery and handed to every component,
    nothing in the engine looks paths up on its own.

    Attributes:
        install_dir: The Steam game folder the launcher starts the game from
        local_low_dir: The game's profile folder under AppData/LocalLow
        documents_dir: The game's folder under the user's documents
        versions_root: Where version payloads, save slots and backups are kept
    """

    install_dir: Path
    local_low_dir: Path
    documents_dir: Path
    versions_root: Path

    @classmethod
    def for_install(
        cls, install_dir: Path, local_low_dir: Path, documents_dir: Path
    ) -> "EnginePaths":
        return cls(
            install_dir=install_dir,
            local_low_dir=local_low_dir,
            documents_dir=documents_dir,
            versions_root=install_dir / VERSIONS_ROOT_NAME,
        )

    @property
    def steam_backup_dir(self) -> Path:
        return self.versions_root / STEAM_BACKUP_NAME

    @property
    def install_backup_dir(self) -> Path:
        return self.steam_backup_dir / STEAM_GAME_BACKUP_NAME

    @property
    def main_backup_dir(self) -> Path:
        return self.versions_root / MAIN_BACKUP_NAME

    @property
    def local_low_backup_dir(self) -> Path:
        return self.main_backup_dir / LOCAL_LOW_NAME

    @property
    def documents_backup_dir(self) -> Path:
        return self.main_backup_dir / DOCUMENTS_NAME

    @property
    def master_blueprints_dir(self) -> Path:
        """The union of every version's blueprints, merged outward before each session."""
        return self.documents_backup_dir / BLUEPRINTS_NAME

    @property
    def live_blueprints_dir(self) -> Path:
        return self.documents_dir / BLUEPRINTS_NAME

    @property
    def session_marker(self) -> Path:
        return self.steam_backup_dir / SESSION_MARKER_NAME
