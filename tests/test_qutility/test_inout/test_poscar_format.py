from pathlib import Path

import chex
import numpy as np
import pytest
from absl.testing import parameterized

from qutility.errors import DegenerateLatticeError, ParseError
from qutility.inout import parse_poscar, parse_poscar_text, to_poscar_string
from qutility.types import Atom, create_crystal_structure

VASP5_DIRECT = """Rock salt
1.0
  5.64 0.0 0.0
  0.0 5.64 0.0
  0.0 0.0 5.64
Na Cl
1 1
Direct
  0.0 0.0 0.0
  0.5 0.5 0.5
"""

VASP4_DIRECT = """Si O
1.0
4.0 0.0 0.0
0.0 4.0 0.0
0.0 0.0 4.0
1 2
Direct
0.0 0.0 0.0
0.25 0.25 0.25
0.75 0.75 0.75
"""

CARTESIAN_SCALED = """scaled cubic
2.0
2.0 0.0 0.0
0.0 2.0 0.0
0.0 0.0 2.0
Cu
2
Cartesian
0.0 0.0 0.0
1.0 1.0 1.0
"""

SELECTIVE = """relaxed
1.0
3.0 0.0 0.0
0.0 3.0 0.0
0.0 0.0 3.0
Fe
1
Selective dynamics
Direct
0.1 0.2 0.3 T T F
"""


class TestParsePoscar(chex.TestCase, parameterized.TestCase):
    def test_vasp5_direct(self) -> None:
        crystal = parse_poscar_text(VASP5_DIRECT)
        assert crystal.name == "Rock salt"
        assert crystal.elements == ("Na", "Cl")
        chex.assert_trees_all_close(crystal.lattice, np.eye(3) * 5.64)
        chex.assert_trees_all_close(crystal.frac_positions[1], np.full(3, 0.5))
        assert crystal.meta("source_format") == "poscar"

    def test_vasp4_species_from_comment(self) -> None:
        crystal = parse_poscar_text(VASP4_DIRECT)
        assert crystal.elements == ("Si", "O", "O")
        chex.assert_shape(crystal.frac_positions, (3, 3))

    def test_cartesian_positions_use_scaling(self) -> None:
        crystal = parse_poscar_text(CARTESIAN_SCALED)
        chex.assert_trees_all_close(crystal.lattice, np.eye(3) * 4.0)
        chex.assert_trees_all_close(crystal.frac_positions[1], np.full(3, 0.5))

    def test_negative_scaling_sets_volume(self) -> None:
        text = VASP5_DIRECT.replace("5.64", "2.0").replace("\n1.0\n", "\n-64.0\n", 1)
        crystal = parse_poscar_text(text)
        assert abs(float(np.linalg.det(np.asarray(crystal.lattice)))) == pytest.approx(64.0)
        chex.assert_trees_all_close(crystal.lattice, np.eye(3) * 4.0)

    def test_negative_scaling_with_cartesian(self) -> None:
        text = CARTESIAN_SCALED.replace("\n2.0\n2.0", "\n-64.0\n2.0", 1)
        crystal = parse_poscar_text(text)
        chex.assert_trees_all_close(crystal.frac_positions[1], np.full(3, 0.5))

    def test_selective_dynamics_flags_ignored(self) -> None:
        crystal = parse_poscar_text(SELECTIVE)
        chex.assert_trees_all_close(crystal.frac_positions[0], np.array([0.1, 0.2, 0.3]))

    def test_empty_comment_uses_default_name(self) -> None:
        text = "\n" + VASP5_DIRECT.split("\n", 1)[1]
        assert parse_poscar_text(text, default_name="POSCAR_7").name == "POSCAR_7"

    @parameterized.named_parameters(
        ("too_short", "title\n1.0\n1 0 0\n", "at least 7"),
        ("bad_scaling", VASP5_DIRECT.replace("\n1.0\n", "\nabc\n", 1), "scaling factor"),
        ("bad_lattice", VASP5_DIRECT.replace("0.0 5.64 0.0", "0.0 x 0.0"), "lattice vector"),
        ("bad_counts", VASP5_DIRECT.replace("1 1\n", "1 one\n"), "atom counts"),
        ("count_mismatch", VASP5_DIRECT.replace("1 1\n", "1 1 1\n"), "species"),
        ("bad_mode", VASP5_DIRECT.replace("Direct", "Reciprocal"), "Direct or Cartesian"),
        ("truncated", VASP5_DIRECT.rsplit("  0.5", 1)[0], "file ends after 1 of 2"),
        ("bad_position", VASP5_DIRECT.replace("0.5 0.5 0.5", "0.5 half 0.5"), "bad position"),
    )
    def test_malformed_input(self, text: str, reason: str) -> None:
        with pytest.raises(ParseError, match=reason):
            parse_poscar_text(text)

    def test_degenerate_cartesian_cell(self) -> None:
        text = CARTESIAN_SCALED.replace("0.0 0.0 2.0", "2.0 0.0 0.0")
        with pytest.raises(DegenerateLatticeError):
            parse_poscar_text(text)

    def test_written_text_reads_back_grouped(self) -> None:
        crystal = create_crystal_structure(
            np.array([[4.0, 0.0, 0.0], [0.5, 4.0, 0.0], [0.0, 0.3, 5.0]]),
            [
                Atom("Na", (0.0, 0.0, 0.0)),
                Atom("Cl", (0.5, 0.5, 0.5)),
                Atom("Na", (0.5, 0.5, 0.0)),
            ],
            name="mixed",
        )
        text = to_poscar_string(crystal)
        assert text.splitlines()[5].split() == ["Na", "Cl"]
        assert text.splitlines()[6].split() == ["2", "1"]
        again = parse_poscar_text(text)
        assert again.name == "mixed"
        assert again.elements == ("Na", "Na", "Cl")
        chex.assert_trees_all_close(again.lattice, crystal.lattice, atol=1e-9)
        chex.assert_trees_all_close(
            again.frac_positions,
            crystal.frac_positions[np.array([0, 2, 1])],
            atol=1e-9,
        )


class TestPoscarFiles:
    def test_parse_from_path(self, tmp_path: Path) -> None:
        path = tmp_path / "POSCAR"
        path.write_text(VASP5_DIRECT)
        assert parse_poscar(path).n_atoms == 2
