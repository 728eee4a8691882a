from pathlib import Path

import pytest

from res_samples import write_res


@pytest.fixture
def res_dir(tmp_path: Path) -> Path:
    root = tmp_path / "in"
    root.mkdir()
    write_res(root / "a.res", "a", -10.0)
    write_res(root / "b.res", "b", -12.0, a=4.2)
    write_res(root / "c.res", "c", -11.0, a=3.9)
    return root
