TRAILMAKERS_APP_ID = "585420"
TRAILMAKERS_DEPOT_ID = "585421"
TRAILMAKERS_GAME_NAME = "Trailmakers"
TRAILMAKERS_EXECUTABLE = "Trailmakers.exe"

# Save locations relative to the user profile
SAVE_PUBLISHER_FOLDER = "Flashbulb"
SAVE_GAME_FOLDER = "Trailmakers"
DOCUMENTS_GAME_FOLDER = "TrailMakers"

# Version archive layout
VERSIONS_ROOT_NAME = "OldTrails"
STEAM_BACKUP_NAME = "_SteamBackup"
STEAM_GAME_BACKUP_NAME = "SteamGame"
MAIN_BACKUP_NAME = "_MainBackup"
SAVE_SLOT_NAME = "_SaveData"
LOCAL_LOW_NAME = "LocalLow"
DOCUMENTS_NAME = "Documents"
BLUEPRINTS_NAME = "Blueprints"
SESSION_MARKER_NAME = "session.json"
TEMP_DOWNLOAD_PREFIX = "_temp_"
PARTIAL_SUFFIX = ".partial"

# Names inside the Steam game folder that are never cleared or replaced
RESERVED_INSTALL_NAMES = (VERSIONS_ROOT_NAME, "mods")
# Names inside the documents folder that are never cleared
RESERVED_DOCUMENTS_NAMES = (VERSIONS_ROOT_NAME,)

UNSAFE_FOLDER_CHARACTERS = "'\":"

DEPOT_DOWNLOADER_EXECUTABLE = "DepotDownloader"
