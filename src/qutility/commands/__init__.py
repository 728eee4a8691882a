"""Batch commands over directories of structure files.

Extended Summary
----------------
Each command checks its preconditions before touching any item, collects
the input files, runs one job per file through `qutility.batch.run_batch`
and logs a summary. Per-file failures are returned as outcomes, never
raised.

Routine Listings
----------------
convert_batch : function
    Convert structures between ``res``, POSCAR, ``cell``, CIF, XTL and XYZ
xrd_batch : function
    Compute and export powder patterns
rank_batch : function
    Rank finished calculations by enthalpy per atom
collect_batch : function
    Merge the structures of finished VASP or CASTEP runs into one ``.res``
RANK_COLUMNS : tuple
    Columns of the ranking table
"""

from .collect import collect_batch
from .convert import convert_batch
from .rank import RANK_COLUMNS, rank_batch
from .xrd import xrd_batch

__all__ = [
    "convert_batch",
    "xrd_batch",
    "rank_batch",
    "collect_batch",
    "RANK_COLUMNS",
]
