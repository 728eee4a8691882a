"""Collection of the input files of a batch.

Routine Listings
----------------
split_patterns : function
    Split a comma-separated glob list
collect_files : function
    Files under a root matching any of the patterns, sorted
"""

import fnmatch
from pathlib import Path

from beartype import beartype
from beartype.typing import List, Union


@beartype
def split_patterns(patterns: str) -> List[str]:
    """``"*.res, POSCAR*"`` -> ``["*.res", "POSCAR*"]``; empty means ``["*"]``."""
    parts = [part.strip() for part in patterns.split(",")]
    return [part for part in parts if part] or ["*"]


@beartype
def collect_files(
    root: Union[str, Path],
    patterns: str = "*",
    recursive: bool = False,
) -> List[Path]:
    """Collect the files a batch will process.

    Parameters
    ----------
    root : Union[str, Path]
        A single file, which is returned as is, or a directory to search.
    patterns : str, optional
        Comma-separated ``fnmatch`` globs matched case-sensitively against
        file names. Default: "*"
    recursive : bool, optional
        Descend into subdirectories. Default: False

    Returns
    -------
    files : List[Path]
        Matching regular files in sorted order; empty if root does not
        exist.
    """
    root = Path(root)
    if root.is_file():
        return [root]
    if not root.is_dir():
        return []
    globs = split_patterns(patterns)
    candidates = root.rglob("*") if recursive else root.iterdir()
    return sorted(
        path
        for path in candidates
        if path.is_file()
        and any(fnmatch.fnmatchcase(path.name, glob) for glob in globs)
    )
