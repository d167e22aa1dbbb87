from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

from platformdirs import PlatformDirs


class AppInfo:
    """
    Singleton class that provides information about the application and its related directories.

    The directories are determined using the `platformdirs` package, ensuring
    platform-specific conventions are adhered to.

    Examples:
        >>> print(AppInfo().app_name)
        >>> print(AppInfo().app_storage_folder)
    """

    _instance: "None | AppInfo" = None

    def __new__(cls) -> "AppInfo":
        """
        Create a new instance or return the existing singleton instance of the `AppInfo` class.
        """
        if not cls._instance:
            cls._instance = super(AppInfo, cls).__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """
        Initialize the `AppInfo` instance, setting application metadata and determining important directories.
        """
        if hasattr(self, "_is_initialized") and self._is_initialized:
            return

        # Application metadata

        self._app_name = "OldTrails"

        try:
            self._app_version = version("oldtrails")
        except PackageNotFoundError:
            self._app_version = "Unknown version"

        # Define important directories using platformdirs

        platform_dirs = PlatformDirs(appname=self._app_name, appauthor=False)
        self._app_storage_folder: Path = Path(platform_dirs.user_data_dir)
        self._user_log_folder: Path = Path(platform_dirs.user_log_dir)

        self._settings_file: Path = self._app_storage_folder / "settings.json"
        self._debug_file: Path = self._app_storage_folder / "DEBUG"

        # Make sure important directories exist

        self._app_storage_folder.mkdir(parents=True, exist_ok=True)
        self._user_log_folder.mkdir(parents=True, exist_ok=True)

        self._is_initialized: bool = True

    @property
    def app_name(self) -> str:
        """
        Get the name of the application.

        Returns:
            str: The name of the application.
        """
        return self._app_name

    @property
    def app_version(self) -> str:
        """
        Get the application version string.

        Returns:
            str: The installed distribution version, or "Unknown version" when running from source.
        """
        return self._app_version

    @property
    def app_storage_folder(self) -> Path:
        """
        Get the path to the folder where user-specific data for the application is stored.

        This directory is determined using platform-specific conventions.

        Returns:
            Path: The path to the user-specific data folder.
        """
        return self._app_storage_folder

    @property
    def app_settings_file(self) -> Path:
        """
        Get the path to the JSON settings file.
        """
        return self._settings_file

    @property
    def debug_file(self) -> Path:
        """
        Get the path of the marker file that switches file logging to DEBUG.
        """
        return self._debug_file

    @property
    def user_log_folder(self) -> Path:
        """
        Get the path to the folder where application logs are stored for the user.

        This directory is determined using platform-specific conventions.

        Returns:
            Path: The path to the user-specific log folder.
        """
        return self._user_log_folder
