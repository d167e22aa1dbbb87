from pathlib import Path
from typing import Callable

import pytest

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GAME_VERSIONS, get_version
from oldtrails.utils.exception import MissingSourceError
from oldtrails.utils.version_archive import VersionArchive, safe_version_name
from tests.tree_helpers import read_tree, write_tree

RELEASE = get_version("1.0 Release")
PVP = get_version("1.9.5 PvP Update: Part 1")


@pytest.fixture
def archive(engine_paths: EnginePaths) -> VersionArchive:
    return VersionArchive(engine_paths)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("1.9.5 PvP Update: Part 1", "1.9.5 PvP Update Part 1"),
        ("0.7.0 BLOCKS! BLOCKS! BLOCKS!", "0.7.0 BLOCKS! BLOCKS! BLOCKS!"),
        ('It\'s "quoted"', "Its quoted"),
    ],
)
def test_safe_version_name(name: str, expected: str) -> None:
    assert safe_version_name(name) == expected


def test_every_catalogue_entry_has_a_distinct_folder() -> None:
    folders = {safe_version_name(v.name) for v in GAME_VERSIONS}
    assert len(folders) == len(GAME_VERSIONS)


def test_layout(archive: VersionArchive, engine_paths: EnginePaths) -> None:
    assert RELEASE is not None
    payload = engine_paths.versions_root / "1.0 Release"
    assert archive.payload_dir(RELEASE) == payload
    assert archive.save_slot_local_low(RELEASE) == payload / "_SaveData" / "LocalLow"
    assert archive.save_slot_documents(RELEASE) == payload / "_SaveData" / "Documents"
    assert archive.temp_download_dir(RELEASE) == (
        engine_paths.versions_root / f"_temp_{RELEASE.manifest_id}"
    )


def test_installed_versions_in_catalogue_order(
    archive: VersionArchive, make_payload: Callable[..., Path]
) -> None:
    assert RELEASE is not None and PVP is not None
    make_payload(RELEASE)
    make_payload(PVP)
    # Backups and unknown folders are not versions
    (archive.root / "_SteamBackup").mkdir()
    (archive.root / "_MainBackup").mkdir()
    (archive.root / "something else").mkdir()

    assert archive.installed_versions() == [PVP, RELEASE]
    assert archive.is_installed(PVP)


class TestStorePayload:
    def test_moves_download_into_place(self, archive: VersionArchive) -> None:
        assert RELEASE is not None
        temp_dir = archive.prepare_download_dir(RELEASE)
        write_tree(temp_dir, {"Trailmakers.exe": "exe", "Data/level0": "level"})

        payload = archive.store_payload(RELEASE, temp_dir)

        assert payload == archive.payload_dir(RELEASE)
        assert not temp_dir.exists()
        assert read_tree(payload) == {"Data/level0": "level", "Trailmakers.exe": "exe"}

    def test_requires_the_game_executable(self, archive: VersionArchive) -> None:
        assert RELEASE is not None
        temp_dir = archive.prepare_download_dir(RELEASE)
        write_tree(temp_dir, {"depotdownloader.log": "failed"})

        with pytest.raises(MissingSourceError):
            archive.store_payload(RELEASE, temp_dir)
        assert not archive.is_installed(RELEASE)

    def test_redownload_keeps_the_save_slot(
        self, archive: VersionArchive, make_payload: Callable[..., Path]
    ) -> None:
        assert RELEASE is not None
        make_payload(RELEASE, save_slot={"LocalLow/profile.sav": "progress"})
        temp_dir = archive.prepare_download_dir(RELEASE)
        write_tree(temp_dir, {"Trailmakers.exe": "fresh exe"})

        payload = archive.store_payload(RELEASE, temp_dir)

        assert (payload / "Trailmakers.exe").read_text() == "fresh exe"
        assert (payload / "_SaveData" / "LocalLow" / "profile.sav").read_text() == (
            "progress"
        )
        assert not (payload / "Trailmakers_Data").exists()


def test_prepare_download_dir_removes_stale_download(archive: VersionArchive) -> None:
    assert RELEASE is not None
    write_tree(archive.temp_download_dir(RELEASE), {"stale.bin": "old"})

    temp_dir = archive.prepare_download_dir(RELEASE)

    assert temp_dir.is_dir()
    assert list(temp_dir.iterdir()) == []


def test_uninstall(archive: VersionArchive, make_payload: Callable[..., Path]) -> None:
    assert RELEASE is not None
    make_payload(RELEASE, save_slot={"LocalLow/profile.sav": "progress"})

    assert archive.uninstall(RELEASE) is True
    assert not archive.payload_dir(RELEASE).exists()
    assert archive.uninstall(RELEASE) is False


def test_purge_deletes_every_folder(
    archive: VersionArchive, make_payload: Callable[..., Path]
) -> None:
    assert RELEASE is not None
    make_payload(RELEASE)
    (archive.root / "_SteamBackup" / "SteamGame").mkdir(parents=True)

    archive.purge()

    assert list(archive.root.iterdir()) == []
