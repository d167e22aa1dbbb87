from pathlib import Path
from typing import Callable
from unittest.mock import patch

import psutil
import pytest
from click.testing import CliRunner
from PySide6.QtCore import QCoreApplication

from oldtrails.cli.main import cli
from oldtrails.controllers.app_controller import AppController
from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GAME_VERSIONS, get_version
from oldtrails.models.session import SessionState
from oldtrails.models.settings import Settings
from oldtrails.utils.modification_flag import ModificationFlag
from tests.tree_helpers import read_tree, write_tree

RELEASE = get_version("1.0 Release")


@pytest.fixture
def app_controller(
    qapp: QCoreApplication, engine_paths: EnginePaths, settings: Settings
) -> AppController:
    settings.game_folder = str(engine_paths.install_dir)
    settings.local_low_folder = str(engine_paths.local_low_dir)
    settings.documents_folder = str(engine_paths.documents_dir)
    settings.launch_mode = "direct"
    return AppController(settings)


def invoke(app_controller: AppController, args: list[str]):
    runner = CliRunner()
    with patch(
        "oldtrails.controllers.session_controller.is_process_running",
        return_value=False,
    ):
        return runner.invoke(cli, args, obj={"app_controller": app_controller})


def test_help() -> None:
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in (
        "status",
        "versions",
        "download",
        "play",
        "uninstall",
        "factory-reset",
        "restore",
    ):
        assert command in result.output


class TestVersions:
    def test_lists_every_version(self, app_controller: AppController) -> None:
        result = invoke(app_controller, ["versions"])

        assert result.exit_code == 0
        assert len(result.output.splitlines()) == len(GAME_VERSIONS)
        assert "1.9.5 PvP Update: Part 1" in result.output

    def test_marks_downloaded_versions(
        self, app_controller: AppController, make_payload: Callable[..., Path]
    ) -> None:
        assert RELEASE is not None
        make_payload(RELEASE)

        result = invoke(app_controller, ["versions", "--installed"])

        assert result.exit_code == 0
        assert result.output.splitlines() == [
            f"* {RELEASE.name:<42} {RELEASE.manifest_id}"
        ]


class TestStatus:
    def test_original_state(
        self, app_controller: AppController, engine_paths: EnginePaths
    ) -> None:
        result = invoke(app_controller, ["status"])

        assert result.exit_code == 0
        assert str(engine_paths.install_dir) in result.output
        assert "original state" in result.output

    def test_reports_unfinished_session(
        self, app_controller: AppController, engine_paths: EnginePaths
    ) -> None:
        ModificationFlag(engine_paths.session_marker).set(
            "1.0 Release", SessionState.RUNNING
        )

        result = invoke(app_controller, ["status"])

        assert result.exit_code == 0
        assert "modified by 1.0 Release" in result.output
        assert "oldtrails restore" in result.output

    def test_reports_session_of_another_process(
        self,
        app_controller: AppController,
        engine_paths: EnginePaths,
        hand_marker_to_other_process: Callable[[Path], psutil.Process],
    ) -> None:
        ModificationFlag(engine_paths.session_marker).set(
            "1.0 Release", SessionState.RUNNING
        )
        owner = hand_marker_to_other_process(engine_paths.session_marker)

        result = invoke(app_controller, ["status"])

        assert result.exit_code == 0
        assert f"another OldTrails process (pid {owner.pid})" in result.output


def test_unknown_version(app_controller: AppController) -> None:
    result = invoke(app_controller, ["uninstall", "9.9 Nope", "--yes"])

    assert result.exit_code == 1
    assert "Unknown or ambiguous version" in result.output


def test_uninstall(
    app_controller: AppController, make_payload: Callable[..., Path]
) -> None:
    assert RELEASE is not None
    payload = make_payload(RELEASE)

    result = invoke(app_controller, ["uninstall", "1.0 Release", "--yes"])

    assert result.exit_code == 0
    assert not payload.exists()


def test_download_needs_a_username(app_controller: AppController) -> None:
    result = invoke(app_controller, ["download", "1.0 Release"])

    assert result.exit_code == 1
    assert "Steam username is required" in result.output


def test_download_needs_depot_downloader(app_controller: AppController) -> None:
    with patch(
        "oldtrails.controllers.app_controller.find_depot_downloader", return_value=None
    ):
        result = invoke(app_controller, ["download", "1.0 Release", "--username", "me"])

    assert result.exit_code == 1
    assert "DepotDownloader was not found" in result.output


def test_restore_after_crash(
    app_controller: AppController,
    engine_paths: EnginePaths,
) -> None:
    assert RELEASE is not None
    factory = read_tree(engine_paths.install_dir, skip=("OldTrails",))
    # Take the backup, then leave the game folder half swapped
    app_controller.session_controller.initialize()
    write_tree(engine_paths.install_dir, {"Trailmakers.exe": "1.0 Release exe"})
    ModificationFlag(engine_paths.session_marker).set(
        RELEASE.name, SessionState.INSTALLING
    )

    result = invoke(app_controller, ["restore"])

    assert result.exit_code == 0
    assert read_tree(engine_paths.install_dir, skip=("OldTrails",)) == factory
    assert not engine_paths.session_marker.exists()


def test_factory_reset(
    app_controller: AppController,
    engine_paths: EnginePaths,
    make_payload: Callable[..., Path],
) -> None:
    assert RELEASE is not None
    make_payload(RELEASE)

    result = invoke(app_controller, ["factory-reset", "--yes"])

    assert result.exit_code == 0
    assert "Factory reset complete" in result.output
    assert list(engine_paths.versions_root.iterdir()) == []


def test_play_not_downloaded(
    app_controller: AppController, engine_paths: EnginePaths
) -> None:
    result = invoke(app_controller, ["play", "1.0 Release"])

    assert result.exit_code == 1
    assert "is not downloaded" in result.output
    assert not engine_paths.session_marker.exists()


def test_restore_refused_during_session_of_another_process(
    app_controller: AppController,
    engine_paths: EnginePaths,
    hand_marker_to_other_process: Callable[[Path], psutil.Process],
) -> None:
    assert RELEASE is not None
    app_controller.session_controller.initialize()
    write_tree(engine_paths.install_dir, {"Trailmakers.exe": "1.0 Release exe"})
    ModificationFlag(engine_paths.session_marker).set(
        RELEASE.name, SessionState.RUNNING
    )
    hand_marker_to_other_process(engine_paths.session_marker)

    result = invoke(app_controller, ["restore"])

    assert result.exit_code == 1
    assert "Another OldTrails process" in result.output
    assert (engine_paths.install_dir / "Trailmakers.exe").read_text() == (
        "1.0 Release exe"
    )
    assert engine_paths.session_marker.exists()
