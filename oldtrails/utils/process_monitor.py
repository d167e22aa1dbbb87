import psutil
from loguru import logger


def is_process_running(executable_name: str) -> bool:
    """
    Check the OS process table for a process with the given executable name.

    Matching is case-insensitive. On Linux the game runs under Proton/Wine,
    where the process name is truncated to 15 characters, so the command
    line is checked as well.

    :param executable_name: The executable file name, e.g. "Trailmakers.exe"
    :return: True if a matching process was found
    """
    wanted = executable_name.lower()
    truncated = wanted[:15]
    for process in psutil.process_iter(attrs=["name", "cmdline"]):
        try:
            name = (process.info.get("name") or "").lower()
            if name == wanted or (len(wanted) > 15 and name == truncated):
                return True
            cmdline = process.info.get("cmdline") or []
            if cmdline and cmdline[0].replace("\\", "/").lower().endswith(
                "/" + wanted
            ):
                return True
        except (psutil.AccessDenied, psutil.NoSuchProcess):
            continue
    logger.debug(f"No running process named {executable_name}")
    return False


def current_process_identity() -> tuple[int, float]:
    """
    The pid and creation time of this process.
    """
    process = psutil.Process()
    return process.pid, process.create_time()


def is_process_alive(pid: int, create_time: float) -> bool:
    """
    Check whether the process started at create_time with the given pid still exists.

    A pid is reused once its process has exited, so the creation time has to
    match as well.

    :param pid: The process id
    :param create_time: The creation time recorded by current_process_identity
    :return: True if that same process is still running
    """
    try:
        return abs(psutil.Process(pid).create_time() - create_time) < 0.5
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        logger.debug(f"Access denied to process {pid}, assuming it is alive")
        return True
