from typing import Self

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """
    Singleton event bus carrying session lifecycle events to the presentation layer.

    The session controller emits, front ends (the CLI, or any other UI) connect.

    Examples:
        >>> event_bus = EventBus()
        >>> event_bus.status_message.connect(print)
        >>> event_bus.status_message.emit("Ready.")

    Notes:
        Since this is a singleton class, multiple instantiations will return the same object.
    """

    _instance: None | Self = None

    # Session lifecycle signals
    session_state_changed = Signal(str)  # SessionState value
    status_message = Signal(str)
    session_error = Signal(str)
    game_launched = Signal(str)  # version name
    game_closed = Signal(str)  # version name

    # Version archive signals
    versions_changed = Signal()

    def __new__(cls) -> "EventBus":
        """
        Create a new instance or return the existing singleton instance of the `EventBus` class.

        Returns:
            EventBus: The singleton instance of the `EventBus` class.
        """
        if cls._instance is None:
            cls._instance = super(EventBus, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """
        Initialize the `EventBus` instance.
        """
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return
        super().__init__()
        self._is_initialized: bool = True
