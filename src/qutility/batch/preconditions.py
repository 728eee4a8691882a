"""Checks that must pass before a batch dispatches any item.

Routine Listings
----------------
check_input_root : function
    Input path exists and is readable
check_output_root : function
    Output directory exists (created if needed) and is writable
"""

import logging
import os
import tempfile
from pathlib import Path

from beartype import beartype
from beartype.typing import Union

from qutility.errors import PreconditionError

_log = logging.getLogger(__name__)


@beartype
def check_input_root(path: Union[str, Path]) -> Path:
    """Return the input root after checking it exists and is readable.

    Raises
    ------
    PreconditionError
        If the path is missing or unreadable.
    """
    root = Path(path)
    if not root.exists():
        raise PreconditionError(f"input path does not exist: {root}")
    mode = os.R_OK | os.X_OK if root.is_dir() else os.R_OK
    if not os.access(root, mode):
        raise PreconditionError(f"input path is not readable: {root}")
    return root


@beartype
def check_output_root(path: Union[str, Path]) -> Path:
    """Create the output directory if needed and check that it is writable.

    Parameters
    ----------
    path : Union[str, Path]
        Output directory.

    Returns
    -------
    root : Path
        The same directory, now known to exist and accept new files.

    Raises
    ------
    PreconditionError
        If the directory cannot be created, the path is not a directory, or
        a temporary file cannot be written there.
    """
    root = Path(path)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise PreconditionError(f"cannot create output directory {root}: {err}") from err
    if not root.is_dir():
        raise PreconditionError(f"output path is not a directory: {root}")
    try:
        with tempfile.NamedTemporaryFile(dir=root, prefix=".qutility-write-check-"):
            pass
    except OSError as err:
        raise PreconditionError(f"output directory is not writable: {root}: {err}") from err
    _log.debug("output directory ready: %s", root)
    return root
