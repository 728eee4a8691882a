"""
=========================================================

QUTILITY Package (:mod:`qutility`)

=========================================================

This is the root of the qutility package, containing submodules for:
- Custom types (`types`)
- Unit cell computations (`ucell`)
- Powder X-ray diffraction (`xrd`)
- Batch execution (`batch`)
- Structure and pattern I/O (`inout`)
- Batch commands (`commands`)
- Run configuration (`config`)
- Errors (`errors`)

Each submodule can be directly accessed after importing qutility.
"""

from . import batch, commands, config, errors, inout, types, ucell, xrd

__version__ = "0.1.0"
