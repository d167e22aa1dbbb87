import sys
from pathlib import Path

import pytest

import oldtrails.utils.steam_paths as steam_paths
from oldtrails.models.settings import Settings
from oldtrails.utils.steam_paths import (
    default_save_folders,
    discover_paths,
    find_game_folder,
    library_folders,
    locate_canonical_install,
)
from tests.tree_helpers import write_tree

LIBRARY_FOLDERS_VDF = """
"libraryfolders"
{
	"0"
	{
		"path"		"{steam}"
		"label"		""
		"apps"
		{
			"228980"		"368586506"
		}
	}
	"1"
	{
		"path"		"{library}"
		"label"		""
		"apps"
		{
			"585420"		"5226758307"
		}
	}
}
"""

LEGACY_LIBRARY_FOLDERS_VDF = """
"LibraryFolders"
{
	"TimeNextStatsReport"		"1561832478"
	"ContentStatsID"		"-158337411110787451"
	"1"		"{library}"
}
"""

APP_MANIFEST_ACF = """
"AppState"
{
	"appid"		"585420"
	"name"		"Trailmakers"
	"installdir"		"{installdir}"
}
"""


def _vdf(template: str, **values: str) -> str:
    for key, value in values.items():
        template = template.replace("{" + key + "}", value)
    return template


@pytest.fixture
def steam_folder(tmp_path: Path) -> Path:
    steam = tmp_path / "Steam"
    (steam / "steamapps").mkdir(parents=True)
    return steam


def test_library_folders(steam_folder: Path, tmp_path: Path) -> None:
    library = tmp_path / "SteamLibrary"
    write_tree(
        steam_folder,
        {
            "config/libraryfolders.vdf": _vdf(
                LIBRARY_FOLDERS_VDF, steam=str(steam_folder), library=str(library)
            )
        },
    )

    assert library_folders(steam_folder) == [steam_folder, library]


def test_library_folders_legacy_format(steam_folder: Path, tmp_path: Path) -> None:
    library = tmp_path / "SteamLibrary"
    write_tree(
        steam_folder,
        {
            "steamapps/libraryfolders.vdf": _vdf(
                LEGACY_LIBRARY_FOLDERS_VDF, library=str(library)
            )
        },
    )

    assert library_folders(steam_folder) == [steam_folder, library]


def test_find_game_folder_in_other_library(steam_folder: Path, tmp_path: Path) -> None:
    library = tmp_path / "SteamLibrary"
    write_tree(
        steam_folder,
        {
            "config/libraryfolders.vdf": _vdf(
                LIBRARY_FOLDERS_VDF, steam=str(steam_folder), library=str(library)
            )
        },
    )
    write_tree(
        library / "steamapps",
        {
            "appmanifest_585420.acf": _vdf(APP_MANIFEST_ACF, installdir="TM"),
            "common/TM/Trailmakers.exe": "exe",
        },
    )

    assert find_game_folder(steam_folder) == library / "steamapps" / "common" / "TM"


def test_find_game_folder_default_location(steam_folder: Path) -> None:
    write_tree(steam_folder / "steamapps", {"common/Trailmakers/Trailmakers.exe": "exe"})

    assert find_game_folder(steam_folder) == (
        steam_folder / "steamapps" / "common" / "Trailmakers"
    )


def test_find_game_folder_requires_the_executable(steam_folder: Path) -> None:
    (steam_folder / "steamapps" / "common" / "Trailmakers").mkdir(parents=True)

    assert find_game_folder(steam_folder) is None


def test_unparsable_vdf_is_ignored(steam_folder: Path) -> None:
    write_tree(
        steam_folder,
        {
            "config/libraryfolders.vdf": '"libraryfolders"\n{\n"0"\n{',
            "steamapps/common/Trailmakers/Trailmakers.exe": "exe",
        },
    )

    assert find_game_folder(steam_folder) == (
        steam_folder / "steamapps" / "common" / "Trailmakers"
    )


class TestLocateCanonicalInstall:
    def test_configured_game_folder_wins(self, tmp_path: Path) -> None:
        game = tmp_path / "Games" / "Trailmakers"
        write_tree(game, {"Trailmakers.exe": "exe"})
        settings = Settings(settings_file=tmp_path / "settings.json")
        settings.game_folder = str(game)

        assert locate_canonical_install(settings) == game

    def test_invalid_configured_folder_falls_back_to_steam(
        self, tmp_path: Path, steam_folder: Path
    ) -> None:
        write_tree(
            steam_folder / "steamapps", {"common/Trailmakers/Trailmakers.exe": "exe"}
        )
        settings = Settings(settings_file=tmp_path / "settings.json")
        settings.game_folder = str(tmp_path / "nowhere")
        settings.steam_folder = str(steam_folder)

        assert locate_canonical_install(settings) == (
            steam_folder / "steamapps" / "common" / "Trailmakers"
        )

    def test_not_found(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(steam_paths, "find_steam_folder", lambda: None)
        settings = Settings(settings_file=tmp_path / "settings.json")

        assert locate_canonical_install(settings) is None


def test_default_save_folders_under_proton(
    steam_folder: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(sys, "platform", "linux")
    game = steam_folder / "steamapps" / "common" / "Trailmakers"

    local_low, documents = default_save_folders(game)

    user = steam_folder / "steamapps/compatdata/585420/pfx/drive_c/users/steamuser"
    assert local_low == user / "AppData" / "LocalLow" / "Flashbulb" / "Trailmakers"
    assert documents == user / "Documents" / "TrailMakers"


def test_default_save_folders_on_windows(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(sys, "platform", "win32")
    monkeypatch.setenv("USERPROFILE", str(tmp_path / "me"))
    monkeypatch.setattr(
        steam_paths, "user_documents_dir", lambda: str(tmp_path / "me" / "Documents")
    )

    local_low, documents = default_save_folders(tmp_path / "Trailmakers")

    assert local_low == tmp_path / "me/AppData/LocalLow/Flashbulb/Trailmakers"
    assert documents == tmp_path / "me/Documents/TrailMakers"


def test_discover_paths_applies_overrides(tmp_path: Path) -> None:
    game = tmp_path / "Trailmakers"
    write_tree(game, {"Trailmakers.exe": "exe"})
    settings = Settings(settings_file=tmp_path / "settings.json")
    settings.game_folder = str(game)
    settings.local_low_folder = str(tmp_path / "saves")
    settings.documents_folder = str(tmp_path / "docs")

    paths = discover_paths(settings)

    assert paths is not None
    assert paths.install_dir == game
    assert paths.local_low_dir == tmp_path / "saves"
    assert paths.documents_dir == tmp_path / "docs"
    assert paths.versions_root == game / "OldTrails"
    assert paths.versions_root.is_dir()
