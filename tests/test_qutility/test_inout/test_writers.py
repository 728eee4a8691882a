import os
from pathlib import Path

import chex
import numpy as np
import pytest
from absl.testing import parameterized

from qutility.errors import InputError, UnsupportedFormatError
from qutility.inout import (
    atomic_write_text,
    detect_format,
    output_name,
    parse_structure,
    read_text,
    render_structure,
    to_cif_string,
    to_xtl_string,
    to_xyz_string,
    write_structure,
)
from qutility.types import Atom, create_crystal_structure


def _crystal():
    lattice = np.array([[4.0, 0.0, 0.0], [0.0, 5.0, 0.0], [1.0, 0.0, 6.0]])
    atoms = [Atom("Zn", (0.0, 0.0, 0.0)), Atom("S", (0.25, 0.5, 0.5))]
    return create_crystal_structure(lattice, atoms, name="ZnS", metadata={"enthalpy": -3.0})


class TestFormatNames(chex.TestCase, parameterized.TestCase):
    @parameterized.named_parameters(
        ("res", "run/NaCl.res", "res"),
        ("res_upper", "NaCl.RES", "res"),
        ("vasp", "NaCl.vasp", "poscar"),
        ("poscar", "POSCAR", "poscar"),
        ("poscar_suffix", "POSCAR_12", "poscar"),
        ("contcar", "dir/CONTCAR", "poscar"),
        ("cell", "Si.cell", "cell"),
        ("castep_output_cell", "run/Si-out.cell", "cell"),
    )
    def test_detect_format(self, path: str, expected: str) -> None:
        assert detect_format(path) == expected

    @parameterized.named_parameters(
        ("cif", "x.cif"),
        ("xyz", "x.xyz"),
        ("plain", "README"),
    )
    def test_detect_format_rejects(self, path: str) -> None:
        with pytest.raises(UnsupportedFormatError):
            detect_format(path)

    @parameterized.named_parameters(
        ("poscar", "NaCl.res", "poscar", "POSCAR_NaCl"),
        ("vasp_alias", "NaCl.res", "VASP", "POSCAR_NaCl"),
        ("xyz", "a/b/NaCl.res", "xyz", "NaCl.xyz"),
        ("extxyz_alias", "NaCl.res", "extxyz", "NaCl.xyz"),
        ("res", "POSCAR_1.vasp", "res", "POSCAR_1.res"),
        ("cell", "NaCl.res", "cell", "NaCl.cell"),
        ("cif", "NaCl.res", "CIF", "NaCl.cif"),
        ("xtl", "NaCl.res", "xtl", "NaCl.xtl"),
    )
    def test_output_name(self, source: str, fmt: str, expected: str) -> None:
        assert output_name(source, fmt) == expected

    def test_output_name_rejects_unknown_format(self) -> None:
        with pytest.raises(UnsupportedFormatError):
            output_name("NaCl.res", "json")


class TestXyz(chex.TestCase):
    def test_extended_xyz_layout(self) -> None:
        lines = to_xyz_string(_crystal()).splitlines()
        assert lines[0] == "2"
        assert 'Lattice="4.0000000000 0.0000000000 0.0000000000' in lines[1]
        assert "Properties=species:S:1:pos:R:3" in lines[1]
        assert 'name="ZnS"' in lines[1]
        assert lines[2].split()[0] == "Zn"
        np.testing.assert_allclose(
            [float(x) for x in lines[3].split()[1:]], [1.5, 2.5, 3.0]
        )
        assert len(lines) == 4


class TestP1Writers(chex.TestCase):
    def test_cif_block(self) -> None:
        text = to_cif_string(_crystal())
        lines = text.splitlines()
        assert lines[0] == "data_ZnS"
        assert "_symmetry_space_group_name_H-M    'P 1'" in lines
        assert "_cell_length_a    4.000000" in lines
        assert "_cell_length_c    6.082763" in lines
        assert "_cell_volume      120.000000" in lines
        assert "_cell_length_b    5.000000" in lines
        assert "_cell_angle_beta  80.5377" in lines
        sites = lines[-2:]
        assert sites[0].split() == [
            "Zn1", "Zn", "0.0000000000", "0.0000000000", "0.0000000000", "1.0000"
        ]
        assert sites[1].split()[:3] == ["S1", "S", "0.2500000000"]

    def test_cif_labels_count_per_element(self) -> None:
        crystal = create_crystal_structure(
            np.eye(3) * 4.0,
            [
                Atom("Na", (0.0, 0.0, 0.0)),
                Atom("Cl", (0.5, 0.5, 0.5)),
                Atom("Na", (0.5, 0.5, 0.0)),
            ],
            name="rock salt",
        )
        text = to_cif_string(crystal)
        labels = [line.split()[0] for line in text.splitlines()[-3:]]
        assert labels == ["Na1", "Cl1", "Na2"]
        assert text.startswith("data_rock_salt\n")

    def test_xtl_layout(self) -> None:
        lines = to_xtl_string(_crystal()).splitlines()
        assert lines[0] == "TITLE ZnS"
        assert lines[1] == "CELL"
        assert [float(x) for x in lines[2].split()][:3] == pytest.approx(
            [4.0, 5.0, 6.082763], abs=1e-6
        )
        assert lines[3:6] == ["SYMMETRY NUMBER 1", "SYMMETRY LABEL P1", "ATOMS"]
        assert lines[7].split() == ["Zn", "0.000000", "0.000000", "0.000000"]
        assert lines[8].split() == ["S", "0.250000", "0.500000", "0.500000"]
        assert lines[-1] == "EOF"


class TestStructureFiles:
    @pytest.mark.parametrize("fmt", ["res", "poscar", "cell"])
    def test_written_structure_reads_back(self, tmp_path: Path, fmt: str) -> None:
        crystal = _crystal()
        path = tmp_path / output_name("ZnS.res", fmt)
        write_structure(crystal, path, fmt)
        again = parse_structure(path)
        assert again.elements == crystal.elements
        chex.assert_trees_all_close(again.lattice, crystal.lattice, atol=1e-6)
        chex.assert_trees_all_close(again.frac_positions, crystal.frac_positions, atol=1e-9)

    def test_render_rejects_unknown_format(self) -> None:
        with pytest.raises(UnsupportedFormatError):
            render_structure(_crystal(), "pdb")

    def test_parse_structure_unknown_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "x.cif"
        path.write_text("data_x\n")
        with pytest.raises(UnsupportedFormatError):
            parse_structure(path)


class TestTextFiles:
    def test_atomic_write_replaces_content(self, tmp_path: Path) -> None:
        path = tmp_path / "out.txt"
        path.write_text("old\n")
        assert atomic_write_text(path, "new\n") == path
        assert read_text(path) == "new\n"
        assert sorted(os.listdir(tmp_path)) == ["out.txt"]

    def test_atomic_write_cleans_up_on_failure(self, tmp_path: Path, monkeypatch) -> None:
        def fail(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail)
        with pytest.raises(OSError, match="disk full"):
            atomic_write_text(tmp_path / "out.txt", "data")
        assert os.listdir(tmp_path) == []

    def test_read_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InputError, match="file not found"):
            read_text(tmp_path / "missing")

    def test_read_directory(self, tmp_path: Path) -> None:
        with pytest.raises(InputError):
            read_text(tmp_path)
