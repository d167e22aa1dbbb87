"""
Locate the Steam installation of the game and the folders the engine works on.

Steam keeps the list of its library folders in libraryfolders.vdf and one
appmanifest_<appid>.acf per installed game, both in Valve's KeyValues text
format ("key" "value" pairs), parsed here with the vdf package.
"""

import os
import shutil
import sys
from pathlib import Path
from typing import Any

import vdf  # type: ignore
from loguru import logger
from platformdirs import user_documents_dir

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.settings import Settings
from oldtrails.utils.constants import (
    DOCUMENTS_GAME_FOLDER,
    SAVE_GAME_FOLDER,
    SAVE_PUBLISHER_FOLDER,
    TRAILMAKERS_APP_ID,
    TRAILMAKERS_EXECUTABLE,
    TRAILMAKERS_GAME_NAME,
)

if sys.platform == "win32":
    import winreg


def _registry_steam_folders() -> list[Path]:
    if sys.platform != "win32":
        return []

    candidate_reg_keys = [
        r"SOFTWARE\Wow6432Node\Valve\Steam",
        r"SOFTWARE\Valve\Steam",
    ]
    folders = []
    for reg_key in candidate_reg_keys:
        try:
            key = winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, reg_key)
            value = winreg.QueryValueEx(key, "InstallPath")
            folders.append(Path(value[0]))
        except FileNotFoundError:
            # Registry key not found. Continue to the next candidate key
            continue
    return folders


def _default_steam_folders() -> list[Path]:
    if sys.platform == "win32":
        return [
            Path("C:/Program Files (x86)/Steam"),
            Path("C:/Program Files/Steam"),
        ]
    if sys.platform == "darwin":
        return [Path.home() / "Library" / "Application Support" / "Steam"]
    return [
        Path.home() / ".steam" / "steam",
        Path.home() / ".local" / "share" / "Steam",
        Path.home() / ".var" / "app" / "com.valvesoftware.Steam" / ".local" / "share" / "Steam",
    ]


def find_steam_folder() -> Path | None:
    """
    Find the Steam client folder.

    On Windows the registry is checked first, then the default install folders.
    A folder only counts if it has a steamapps subfolder.

    :return: The Steam folder, or None if not found
    """
    seen: set[Path] = set()
    for candidate in _registry_steam_folders() + _default_steam_folders():
        if candidate in seen:
            continue
        seen.add(candidate)
        if (candidate / "steamapps").is_dir():
            logger.debug(f"Found Steam folder at {candidate}")
            return candidate
    logger.warning("Could not find the Steam folder")
    return None


def is_valid_game_folder(folder: Path | str | None) -> bool:
    if not folder:
        return False
    return (Path(folder) / TRAILMAKERS_EXECUTABLE).is_file()


def _read_vdf(path: Path) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return vdf.load(f)
    except (OSError, SyntaxError, ValueError) as e:
        logger.error(f"Failed to parse {path}: {e}")
        return {}


def library_folders(steam_folder: Path) -> list[Path]:
    """
    Read every Steam library folder from libraryfolders.vdf.

    Both the current format (numbered blocks with a "path" key) and the
    legacy one (numbered keys mapping straight to a path) are understood.
    The Steam folder itself is always the first library.
    """
    folders = [steam_folder]
    for relative in ("config/libraryfolders.vdf", "steamapps/libraryfolders.vdf"):
        vdf_path = steam_folder / relative
        if not vdf_path.exists():
            continue
        logger.debug(f"Reading Steam libraries from {vdf_path}")
        data = _read_vdf(vdf_path)
        section = data.get("libraryfolders") or data.get("LibraryFolders") or {}
        for key, value in section.items():
            if isinstance(value, dict):
                library = value.get("path")
            elif key.isdigit():
                library = value
            else:
                continue
            if library and Path(library) not in folders:
                folders.append(Path(library))
        break
    return folders


def find_game_folder(steam_folder: Path | str) -> Path | None:
    """
    Find the game's install folder in any of the Steam libraries.

    :param steam_folder: Path to the Steam installation
    :return: The game folder containing the executable, or None
    """
    steam_folder = Path(steam_folder)
    for library in library_folders(steam_folder):
        steamapps = library / "steamapps"
        candidates = []
        manifest = steamapps / f"appmanifest_{TRAILMAKERS_APP_ID}.acf"
        if manifest.exists():
            install_dir = _read_vdf(manifest).get("AppState", {}).get("installdir")
            if install_dir:
                candidates.append(steamapps / "common" / install_dir)
        candidates.append(steamapps / "common" / TRAILMAKERS_GAME_NAME)
        for candidate in candidates:
            if is_valid_game_folder(candidate):
                logger.info(f"Found Steam {TRAILMAKERS_GAME_NAME} at {candidate}")
                return candidate
    return None


def find_steam_executable(steam_folder: Path | None = None) -> Path | None:
    """
    Find the Steam client executable for the current platform.
    """
    if sys.platform == "win32":
        candidates = [Path(f) / "steam.exe" for f in _registry_steam_folders()]
        if steam_folder:
            candidates.insert(0, steam_folder / "steam.exe")
        candidates += [f / "steam.exe" for f in _default_steam_folders()]
    elif sys.platform == "darwin":
        candidates = [Path("/Applications/Steam.app/Contents/MacOS/steam_osx")]
    else:
        on_path = shutil.which("steam")
        candidates = [Path(on_path)] if on_path else []
        candidates.append(Path.home() / ".steam" / "steam" / "steam.sh")

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    logger.warning("Steam executable not found")
    return None


def locate_canonical_install(settings: Settings) -> Path | None:
    """
    Find the Steam game folder the engine swaps versions into.

    A configured game folder wins when it holds the game executable.
    Otherwise the Steam libraries are searched.

    :return: The game folder, or None if no valid installation was found
    """
    if settings.game_folder:
        if is_valid_game_folder(settings.game_folder):
            return Path(settings.game_folder)
        logger.warning(
            f"Configured game folder has no {TRAILMAKERS_EXECUTABLE}: {settings.game_folder}"
        )

    steam_folder = (
        Path(settings.steam_folder) if settings.steam_folder else find_steam_folder()
    )
    if steam_folder is None:
        return None
    game_folder = find_game_folder(steam_folder)
    if game_folder is None:
        logger.error(f"Could not find Steam {TRAILMAKERS_GAME_NAME} installation")
    return game_folder


def default_save_folders(game_folder: Path) -> tuple[Path, Path]:
    """
    The game's LocalLow profile folder and documents folder.

    On Windows these live in the user profile. Elsewhere the game runs under
    Proton, so they live inside the game's compatdata prefix.

    :return: (local_low_folder, documents_folder)
    """
    if sys.platform == "win32":
        profile = Path(os.environ.get("USERPROFILE", str(Path.home())))
        local_low = profile / "AppData" / "LocalLow"
        documents = Path(user_documents_dir())
    else:
        steamapps = game_folder.parent.parent
        user_folder = (
            steamapps
            / "compatdata"
            / TRAILMAKERS_APP_ID
            / "pfx"
            / "drive_c"
            / "users"
            / "steamuser"
        )
        local_low = user_folder / "AppData" / "LocalLow"
        documents = user_folder / "Documents"
    return (
        local_low / SAVE_PUBLISHER_FOLDER / SAVE_GAME_FOLDER,
        documents / DOCUMENTS_GAME_FOLDER,
    )


def discover_paths(settings: Settings) -> EnginePaths | None:
    """
    Resolve every folder the engine needs, once, at startup.

    :return: EnginePaths, or None when the game installation was not found
    """
    game_folder = locate_canonical_install(settings)
    if game_folder is None:
        return None

    local_low, documents = default_save_folders(game_folder)
    if settings.local_low_folder:
        local_low = Path(settings.local_low_folder)
    if settings.documents_folder:
        documents = Path(settings.documents_folder)

    paths = EnginePaths.for_install(game_folder, local_low, documents)
    paths.versions_root.mkdir(parents=True, exist_ok=True)
    logger.info(
        f"Using game folder {paths.install_dir}, saves in {paths.local_low_dir} and {paths.documents_dir}"
    )
    return paths
