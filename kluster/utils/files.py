"""Line oriented file helpers.

Writes never edit a file in place: content is staged into a temporary file
next to the target and moved over it with ``os.replace``.
"""
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Union

logger = logging.getLogger("kluster.files")

PathLike = Union[str, os.PathLike]


def read_lines(path: PathLike) -> List[str]:
    """Read a text file as a list of lines without line terminators.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    with open(path, "r") as f:
        return f.read().splitlines()


def to_string(lines: Iterable[str]) -> str:
    """Join lines, terminating each one with a newline."""
    return "".join(f"{line}\n" for line in lines)


def write_text(path: PathLike, text: str, mode: int = 0o600) -> None:
    """Atomically replace the content of ``path`` with ``text``."""
    target = Path(path)
    fd, staging = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(text)
        os.chmod(staging, mode)
        os.replace(staging, target)
    except BaseException:
        if os.path.exists(staging):
            os.remove(staging)
        raise
    logger.debug("Wrote %d bytes to %s", len(text), target)


def write_lines(path: PathLike, lines: Iterable[str], mode: int = 0o600) -> None:
    """Write ``lines`` to ``path``, one per line, overwriting prior content."""
    write_text(path, to_string(lines), mode=mode)
