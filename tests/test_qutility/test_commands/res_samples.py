from pathlib import Path

RES_TEMPLATE = """TITL {name} {pressure} {volume} {energy} {enthalpy} 0 0 2 (Fm-3m) n - 1
CELL 1.54180 {a} {a} {a} 90.0 90.0 90.0
LATT -1
SFAC Na Cl
Na 1 0.0 0.0 0.0 1.0
Cl 2 0.5 0.5 0.5 1.0
END
"""


def write_res(
    path: Path, name: str, enthalpy: float, a: float = 4.0, pressure: float = 0.0
) -> Path:
    path.write_text(
        RES_TEMPLATE.format(
            name=name,
            pressure=pressure,
            volume=a**3,
            energy=enthalpy,
            enthalpy=enthalpy,
            a=a,
        )
    )
    return path
