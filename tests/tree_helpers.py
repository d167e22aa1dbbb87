from pathlib import Path


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Create files under root from a mapping of relative path to content."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


def read_tree(root: Path, skip: tuple[str, ...] = ()) -> dict[str, str]:
    """Map every file under root, relative path to content."""
    if not root.is_dir():
        return {}
    return {
        path.relative_to(root).as_posix(): path.read_text()
        for path in sorted(root.rglob("*"))
        if path.is_file() and path.relative_to(root).parts[0] not in skip
    }
