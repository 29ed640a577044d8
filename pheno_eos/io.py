"""
Reading and writing the serialized tables exchanged between pipeline stages.

Supported formats are chosen from the file suffix: ``.csv``, ``.xlsx`` and
pickled data frames (``.pkl`` / ``.pickle``).
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

READERS = {
    ".csv": pd.read_csv,
    ".xlsx": lambda p: pd.read_excel(p, engine="openpyxl"),
    ".pkl": pd.read_pickle,
    ".pickle": pd.read_pickle,
}


def read_table(path: str | Path) -> pd.DataFrame:
    """
    Load one table, or every supported file of a directory concatenated.

    Parameters
    ----------
    path : str | Path
        File path, or a directory holding one file per site (the layout the
        P-model runs write their daily output in)

    Returns
    -------
    pd.DataFrame
        Loaded table
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix.lower() in READERS)
        if not files:
            raise ValueError(f"No readable tables ({', '.join(READERS)}) in {path}")
        return pd.concat([read_table(p) for p in files], ignore_index=True)

    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported table format '{path.suffix}' for {path}")
    return reader(path)


def write_table(df: pd.DataFrame, path: str | Path, sheet_name: str = "data") -> Path:
    """Write ``df`` to ``path`` (format from suffix), creating parent folders."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        df.to_csv(path, index=False)
    elif suffix == ".xlsx":
        with pd.ExcelWriter(path, engine="openpyxl") as xw:
            df.to_excel(xw, index=False, sheet_name=sheet_name)
    elif suffix in (".pkl", ".pickle"):
        df.to_pickle(path)
    else:
        raise ValueError(f"Unsupported table format '{path.suffix}' for {path}")
    return path


def write_sheets(sheets: dict[str, pd.DataFrame], path: str | Path) -> Path:
    """Write several tables into one Excel workbook, one sheet each."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as xw:
        for name, df in sheets.items():
            df.to_excel(xw, index=False, sheet_name=name[:31])
    return path
