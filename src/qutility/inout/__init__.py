"""Reading and writing of structures and diffraction patterns.

Extended Summary
----------------
Readers for AIRSS ``.res``, VASP POSCAR/CONTCAR and CASTEP ``.cell`` files,
writers for those plus P1 CIF, XTL and extended XYZ, readers for the
output of finished VASP and CASTEP runs, and CSV/XY export of patterns. Every
read failure surfaces as an `InputError`; every write goes through a
temporary file and an atomic rename.

Routine Listings
----------------
parse_res : function
    Read an AIRSS ``.res`` file
parse_res_text : function
    Parse ``.res`` content
to_res_string : function
    Render a structure as ``.res``
parse_poscar : function
    Read a VASP POSCAR/CONTCAR file
parse_poscar_text : function
    Parse POSCAR content
to_poscar_string : function
    Render a structure as a VASP 5 POSCAR
parse_cell : function
    Read a CASTEP ``.cell`` file
parse_cell_text : function
    Parse ``.cell`` content
to_cell_string : function
    Render a structure as ``.cell``
to_cif_string : function
    Render a structure as a P1 CIF
to_xtl_string : function
    Render a structure as CrystalMaker XTL
to_xyz_string : function
    Render a structure as extended XYZ
parse_outcar : function
    Read a VASP OUTCAR
parse_outcar_text : function
    Parse OUTCAR content
parse_castep : function
    Read a CASTEP ``.castep`` output
parse_castep_text : function
    Parse ``.castep`` content
parse_calculation : function
    Read any supported calculation output
detect_calculation_code : function
    DFT code of an output path
find_calculation_output : function
    Output file of the calculation in a directory
detect_format : function
    Input format of a path
parse_structure : function
    Read any supported structure file
render_structure : function
    Structure text in a named format
output_name : function
    Output file name of a conversion
write_structure : function
    Atomically write a structure
STRUCTURE_FORMATS : tuple
    Writable structure formats
pattern_to_frame : function
    Pattern profile as a pandas DataFrame
peaks_to_frame : function
    Merged peaks as a pandas DataFrame
write_csv : function
    Atomically write a DataFrame as CSV
write_xy : function
    Atomically write a pattern as XY
write_pattern : function
    Write a pattern as CSV or XY
PATTERN_FORMATS : tuple
    Supported pattern file formats
read_text : function
    Read a text file, raising InputError on failure
atomic_write_text : function
    Write text through a temporary file and rename
"""

from .calculations import (
                     detect_calculation_code,
                     find_calculation_output,
                     parse_calculation,
                     parse_castep,
                     parse_castep_text,
                     parse_outcar,
                     parse_outcar_text,
)
from .cell import parse_cell, parse_cell_text, to_cell_string
from .cif import to_cif_string, to_xtl_string
from .export import (
                     PATTERN_FORMATS,
                     pattern_to_frame,
                     peaks_to_frame,
                     write_csv,
                     write_pattern,
                     write_xy,
)
from .files import atomic_write_text, read_text
from .poscar import parse_poscar, parse_poscar_text, to_poscar_string
from .res import parse_res, parse_res_text, to_res_string
from .structure import (
                     STRUCTURE_FORMATS,
                     detect_format,
                     output_name,
                     parse_structure,
                     render_structure,
                     write_structure,
)
from .xyz import to_xyz_string

__all__ = [
    "parse_res",
    "parse_res_text",
    "to_res_string",
    "parse_poscar",
    "parse_poscar_text",
    "to_poscar_string",
    "parse_cell",
    "parse_cell_text",
    "to_cell_string",
    "to_cif_string",
    "to_xtl_string",
    "to_xyz_string",
    "parse_outcar",
    "parse_outcar_text",
    "parse_castep",
    "parse_castep_text",
    "parse_calculation",
    "detect_calculation_code",
    "find_calculation_output",
    "detect_format",
    "parse_structure",
    "render_structure",
    "output_name",
    "write_structure",
    "STRUCTURE_FORMATS",
    "pattern_to_frame",
    "peaks_to_frame",
    "write_csv",
    "write_xy",
    "write_pattern",
    "PATTERN_FORMATS",
    "read_text",
    "atomic_write_text",
]
