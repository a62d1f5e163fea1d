"""
Files - Local filesystem helpers for the input and output trees.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterator, List, Union

from .paths import is_supported_image

PathLike = Union[str, Path]


def ensure_dir(directory: PathLike) -> None:
    """Create a directory (and parents) if it does not exist."""
    Path(directory).mkdir(parents=True, exist_ok=True)


def file_exists(path: PathLike) -> bool:
    return Path(path).is_file()


def iter_images(root: PathLike) -> Iterator[str]:
    """
    Walk a directory tree and yield supported images.

    Yields:
        POSIX-style paths relative to root
    """
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            if not is_supported_image(filename):
                continue
            full = Path(dirpath) / filename
            if full.is_file():
                yield full.relative_to(root).as_posix()


def find_images(root: PathLike) -> List[str]:
    """Return all supported images under root, sorted."""
    return sorted(iter_images(root))


def write_atomic(path: PathLike, data: bytes) -> None:
    """
    Write bytes to path via a temp file in the same directory and a rename.

    Readers never observe a half-written file.
    """
    path = Path(path)
    ensure_dir(path.parent)
    fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=path.parent)
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def copy_file(source: PathLike, destination: PathLike) -> None:
    """Copy a file, creating the destination directory."""
    destination = Path(destination)
    ensure_dir(destination.parent)
    # using shutil to account for mounted filesystem
    shutil.copy2(source, destination)


def remove_tree(directory: PathLike) -> bool:
    """Delete a directory tree. Returns False if it did not exist."""
    directory = Path(directory)
    if not directory.exists():
        return False
    shutil.rmtree(directory)
    return True
