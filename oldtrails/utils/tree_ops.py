"""
Crash tolerant directory tree primitives.

All three operations are safe to repeat: running them again converges on
the same final state. Entries that cannot be touched because another
process holds them open (lock contention) are logged, skipped and reported
in the returned TreeResult. Every other OSError aborts the operation and
propagates to the caller.
"""

import errno
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from stat import S_IRWXG, S_IRWXO, S_IRWXU
from typing import Any, Callable, Iterable

from loguru import logger

LOCK_CONTENTION_ERRNOS = {errno.EACCES, errno.EPERM, errno.EBUSY, errno.ETXTBSY}
# ERROR_ACCESS_DENIED, ERROR_SHARING_VIOLATION, ERROR_LOCK_VIOLATION
LOCK_CONTENTION_WINERRORS = {5, 32, 33}
# ERROR_DIR_NOT_EMPTY
DIR_NOT_EMPTY_WINERRORS = {145}


@dataclass
class TreeResult:
    """
    Outcome of a tree operation.

    Attributes:
        files: Number of files written (copy/merge) or top level entries removed (clear)
        skipped: Paths skipped because of lock contention
    """

    files: int = 0
    skipped: list[Path] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.skipped

    def extend(self, other: "TreeResult") -> "TreeResult":
        self.files += other.files
        self.skipped.extend(other.skipped)
        return self

    def skip(self, path: Path, error: BaseException) -> None:
        logger.warning(f"Skipping locked entry {path}: {error}")
        self.skipped.append(path)


def is_lock_contention(error: BaseException) -> bool:
    """
    Classify an error as lock contention: the entry is busy or access was denied.

    :param error: The exception raised by a filesystem call
    :return: True if the entry should be skipped rather than aborting the operation
    """
    if isinstance(error, PermissionError):
        return True
    if not isinstance(error, OSError):
        return False
    if getattr(error, "winerror", None) in LOCK_CONTENTION_WINERRORS:
        return True
    return error.errno in LOCK_CONTENTION_ERRNOS


def _is_dir_not_empty(error: BaseException) -> bool:
    if not isinstance(error, OSError):
        return False
    if getattr(error, "winerror", None) in DIR_NOT_EMPTY_WINERRORS:
        return True
    return error.errno in (errno.ENOTEMPTY, errno.EEXIST)


def _make_writable(path: Path) -> None:
    os.chmod(path, S_IRWXU | S_IRWXG | S_IRWXO)  # 0777


def _copy_file(src: Path, dst: Path) -> None:
    if src.is_symlink():
        if os.path.lexists(dst):
            _remove_file(dst)
        shutil.copy2(src, dst, follow_symlinks=False)
        return
    try:
        shutil.copy2(src, dst)
    except PermissionError:
        # Read-only destination, retry once after making it writable
        if not dst.exists() or dst.is_symlink():
            raise
        _make_writable(dst)
        shutil.copy2(src, dst)


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
    except PermissionError:
        if path.is_symlink() or not path.exists():
            raise
        _make_writable(path)
        path.unlink()


def _walk_copy(
    src: Path,
    dst: Path,
    overwrite: bool,
    exclude: frozenset[str],
    result: TreeResult,
) -> None:
    try:
        dst.mkdir(parents=True, exist_ok=True)
        with os.scandir(src) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as e:
        if not is_lock_contention(e):
            raise
        result.skip(src, e)
        return

    for entry in entries:
        if entry.name in exclude:
            continue
        src_path = Path(entry.path)
        dst_path = dst / entry.name
        try:
            if entry.is_dir(follow_symlinks=False):
                _walk_copy(src_path, dst_path, overwrite, frozenset(), result)
            elif not overwrite and os.path.lexists(dst_path):
                continue
            else:
                _copy_file(src_path, dst_path)
                result.files += 1
        except OSError as e:
            if not is_lock_contention(e):
                raise
            result.skip(src_path, e)


def copy_tree(
    src: Path | str, dst: Path | str, exclude: Iterable[str] = ()
) -> TreeResult:
    """
    Recursively copy src into dst, overwriting files that already exist.

    :param src: Source directory. Nothing happens if it does not exist.
    :param dst: Destination directory, created if absent
    :param exclude: Names of immediate children of src to leave out
    :return: TreeResult with the number of files copied and the locked entries skipped
    """
    src, dst = Path(src), Path(dst)
    result = TreeResult()
    if not src.is_dir():
        logger.debug(f"copy_tree source does not exist, nothing to copy: {src}")
        return result
    _walk_copy(src, dst, True, frozenset(exclude), result)
    logger.debug(f"Copied {result.files} file(s) from {src} to {dst}")
    return result


def merge_tree(src: Path | str, dst: Path | str) -> TreeResult:
    """
    Union src into dst. Files already present at dst are never overwritten.

    :param src: Source directory. Nothing happens if it does not exist.
    :param dst: Destination directory, created if absent
    :return: TreeResult with the number of files added and the locked entries skipped
    """
    src, dst = Path(src), Path(dst)
    result = TreeResult()
    if not src.is_dir():
        logger.debug(f"merge_tree source does not exist, nothing to merge: {src}")
        return result
    _walk_copy(src, dst, False, frozenset(), result)
    logger.debug(f"Merged {result.files} new file(s) from {src} into {dst}")
    return result


def _rmtree_handler(
    result: TreeResult,
) -> Callable[[Callable[..., Any], str, BaseException], None]:
    def handler(func: Callable[..., Any], path: str, exc: BaseException) -> None:
        if is_lock_contention(exc):
            if func in (os.rmdir, os.remove, os.unlink):
                try:
                    _make_writable(Path(path))
                    func(path)
                    return
                except OSError as retry_error:
                    if not is_lock_contention(retry_error):
                        raise retry_error from exc
            result.skip(Path(path), exc)
            return
        # A parent of something we had to skip can not be removed either
        if _is_dir_not_empty(exc) and any(
            skipped.is_relative_to(path) for skipped in result.skipped
        ):
            return
        raise exc

    return handler


def clear_tree(directory: Path | str, exceptions: Iterable[str] = ()) -> TreeResult:
    """
    Delete every immediate child of directory except the names in exceptions.

    Exceptions are matched by exact name, not by path.

    :param directory: Directory to clear. Nothing happens if it does not exist.
    :param exceptions: Child names to keep
    :return: TreeResult with the number of entries removed and the locked entries skipped
    """
    directory = Path(directory)
    result = TreeResult()
    if not directory.is_dir():
        logger.debug(f"clear_tree target does not exist, nothing to clear: {directory}")
        return result

    keep = set(exceptions)
    for child in sorted(directory.iterdir()):
        if child.name in keep:
            continue
        skipped_before = len(result.skipped)
        try:
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child, onexc=_rmtree_handler(result))
            else:
                _remove_file(child)
        except OSError as e:
            if not is_lock_contention(e):
                raise
            result.skip(child, e)
        if len(result.skipped) == skipped_before:
            result.files += 1

    logger.debug(
        f"Cleared {result.files} entr(y/ies) from {directory}, kept {sorted(keep)}"
    )
    return result
