import sys
import traceback
from types import TracebackType
from typing import Type

import loguru
from loguru import logger

from oldtrails.cli.main import cli
from oldtrails.utils.app_info import AppInfo
from oldtrails.utils.obfuscate_message import obfuscate_message


def handle_exception(
    exc_type: Type[BaseException],
    exc_value: BaseException,
    exc_traceback: TracebackType | None,
) -> None:
    """
    This function is called (through excepthook) when the application
    encounters an uncaught exception. When this happens, the error is
    logged to the log file and the user is pointed to it.
    """

    # Ignore KeyboardInterrupt exceptions, for when running through the terminal
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
    else:  # Anything else, we want to log an error and notify the user
        logger.error(
            "OldTrails has failed with an uncaught exception:\n"
            + "".join(traceback.format_exception(exc_type, exc_value, exc_traceback))
        )
        print(
            "OldTrails crashed! If the game folder was modified, run 'oldtrails restore'.\n"
            f"Details are in the log folder: {AppInfo().user_log_folder}",
            file=sys.stderr,
        )

    sys.exit(1)


def configure_logging() -> None:
    # Set the log level from the presence (or absence) of a "DEBUG" file in the app_data_folder
    debug_file_path = AppInfo().debug_file
    if debug_file_path.exists() and debug_file_path.is_file():
        DEBUG_MODE = True
    else:
        DEBUG_MODE = False

    # We have log_file (foo.log) and old_log_file (foo.old.log). If old_log_file exists,
    # remove it. If log_file exists, rename it to old_log_file. When we pass log_file to
    # the logger as an argument, it will automatically be created.
    log_file = AppInfo().user_log_folder / (AppInfo().app_name + ".log")
    old_log_file = AppInfo().user_log_folder / (AppInfo().app_name + ".old.log")
    if old_log_file.exists() and old_log_file.is_file():
        old_log_file.unlink()
    if log_file.exists() and log_file.is_file():
        log_file.rename(old_log_file)

    # Define the log format string

    def formatter(record: "loguru.Record") -> str:
        """Custom formatter for loguru logger"""
        format_string = (
            "[{level}]"
            "[{time:YYYY-MM-DD HH:mm:ss}]"
            "[{process.id}]"
            "[{thread.name}]"
            "[{module}]"
            "[{function}][{line}]"
            " : "
        )

        record["extra"]["obfuscated_message"] = obfuscate_message(record["message"])
        return format_string + "{extra[obfuscated_message]}\n"

    # Remove the default stderr logger
    logger.remove()

    # Create the file logger
    logger.add(log_file, level="DEBUG" if DEBUG_MODE else "INFO", format=formatter)

    # Add a "WARNING" or higher stderr logger
    logger.add(
        sys.stderr,
        level="WARNING",
        format=formatter,
        colorize=False,
    )


def main() -> None:
    # Uncaught exceptions are handled through the function above
    sys.excepthook = handle_exception
    configure_logging()
    logger.info(f"Initializing OldTrails: {AppInfo().app_version}")
    cli(prog_name="oldtrails")


if __name__ == "__main__":
    main()
