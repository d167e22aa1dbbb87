import os
from pathlib import Path
from typing import Callable, Generator

import msgspec
import psutil
import pytest
from PySide6.QtCore import QCoreApplication, QObject

from oldtrails.models.engine_paths import EnginePaths
from oldtrails.models.game_version import GameVersion
from oldtrails.models.settings import Settings
from oldtrails.utils.constants import TRAILMAKERS_EXECUTABLE
from oldtrails.utils.event_bus import EventBus
from oldtrails.utils.modification_flag import SessionMarker
from oldtrails.utils.version_archive import safe_version_name
from tests.tree_helpers import write_tree


@pytest.fixture(scope="session")
def qapp() -> Generator[QCoreApplication, None, None]:
    """Create a QCoreApplication instance for Qt tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def engine_paths(tmp_path: Path) -> EnginePaths:
    """
    A factory Steam install with main save data, laid out the way Steam
    and the game lay them out.
    """
    install_dir = tmp_path / "steamapps" / "common" / "Trailmakers"
    local_low_dir = tmp_path / "LocalLow" / "Flashbulb" / "Trailmakers"
    documents_dir = tmp_path / "Documents" / "TrailMakers"

    write_tree(
        install_dir,
        {
            TRAILMAKERS_EXECUTABLE: "factory exe",
            "Trailmakers_Data/level0": "factory level",
            "mods/user_mod.txt": "user mod",
        },
    )
    write_tree(local_low_dir, {"profile.sav": "main profile"})
    write_tree(
        documents_dir,
        {
            "settings.cfg": "main settings",
            "Blueprints/main_car.bp": "main car",
        },
    )

    paths = EnginePaths.for_install(install_dir, local_low_dir, documents_dir)
    paths.versions_root.mkdir()
    return paths


@pytest.fixture
def make_payload(engine_paths: EnginePaths) -> Callable[..., Path]:
    """Put a downloaded version into the archive."""

    def _make_payload(
        version: GameVersion, save_slot: dict[str, str] | None = None
    ) -> Path:
        payload = engine_paths.versions_root / safe_version_name(version.name)
        write_tree(
            payload,
            {
                TRAILMAKERS_EXECUTABLE: f"{version.name} exe",
                "Trailmakers_Data/level0": f"{version.name} level",
            },
        )
        if save_slot is not None:
            (payload / "_SaveData" / "LocalLow").mkdir(parents=True, exist_ok=True)
            (payload / "_SaveData" / "Documents").mkdir(parents=True, exist_ok=True)
            write_tree(payload / "_SaveData", save_slot)
        return payload

    return _make_payload


@pytest.fixture
def hand_marker_to_other_process() -> Callable[[Path], psutil.Process]:
    """
    Rewrite a session marker as if it was written by another OldTrails
    process that is still running (the parent of the test run).
    """

    def _hand_marker(marker_path: Path) -> psutil.Process:
        owner = psutil.Process(os.getppid())
        marker = msgspec.json.decode(marker_path.read_bytes(), type=SessionMarker)
        marker.owner_pid = owner.pid
        marker.owner_create_time = owner.create_time()
        marker_path.write_bytes(msgspec.json.encode(marker))
        return owner

    return _hand_marker


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    settings = Settings(settings_file=tmp_path / "config" / "settings.json")
    settings.settle_delay_seconds = 0
    settings.launch_grace_seconds = 0
    settings.poll_interval_seconds = 0.01
    return settings


class EventRecorder(QObject):
    def __init__(self) -> None:
        super().__init__()
        self.states: list[str] = []
        self.messages: list[str] = []
        self.errors: list[str] = []
        self.launched: list[str] = []
        self.closed: list[str] = []
        self.versions_changed = 0

    def on_state_changed(self, state: str) -> None:
        self.states.append(state)

    def on_status_message(self, message: str) -> None:
        self.messages.append(message)

    def on_session_error(self, message: str) -> None:
        self.errors.append(message)

    def on_game_launched(self, version_name: str) -> None:
        self.launched.append(version_name)

    def on_game_closed(self, version_name: str) -> None:
        self.closed.append(version_name)

    def on_versions_changed(self) -> None:
        self.versions_changed += 1


@pytest.fixture
def events(qapp: QCoreApplication) -> Generator[EventRecorder, None, None]:
    """Record everything emitted on the EventBus during a test."""
    event_bus = EventBus()
    recorder = EventRecorder()
    connections = [
        (event_bus.session_state_changed, recorder.on_state_changed),
        (event_bus.status_message, recorder.on_status_message),
        (event_bus.session_error, recorder.on_session_error),
        (event_bus.game_launched, recorder.on_game_launched),
        (event_bus.game_closed, recorder.on_game_closed),
        (event_bus.versions_changed, recorder.on_versions_changed),
    ]
    for signal, slot in connections:
        signal.connect(slot)
    yield recorder
    for signal, slot in connections:
        signal.disconnect(slot)
