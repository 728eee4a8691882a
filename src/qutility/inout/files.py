"""Reading inputs and writing outputs safely.

Routine Listings
----------------
read_text : function
    Read a text file, turning I/O and decoding failures into InputError
atomic_write_text : function
    Write text through a temporary file and an atomic rename
"""

import os
import tempfile
from pathlib import Path

from beartype import beartype
from beartype.typing import Union

from qutility.errors import InputError


@beartype
def read_text(path: Union[str, Path]) -> str:
    """Read a UTF-8 text file.

    Raises
    ------
    InputError
        If the file is missing, unreadable or not valid UTF-8.
    """
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as err:
        raise InputError(f"file not found: {path}") from err
    except (OSError, UnicodeDecodeError) as err:
        raise InputError(f"cannot read {path}: {err}") from err


@beartype
def atomic_write_text(path: Union[str, Path], text: str) -> Path:
    """Write ``text`` to ``path`` so readers never observe a partial file.

    The text goes to a temporary file in the destination directory, which
    then replaces the destination in one rename.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path
