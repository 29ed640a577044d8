"""
Utility functions for column handling and standardisation.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from .config import COLUMN_ALIASES


def normalize_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Lower-case and snake_case column names."""
    out = df.copy()
    out.columns = (
        out.columns.astype(str)
        .str.strip()
        .str.lower()
        .str.replace(" ", "_", regex=False)
        .str.replace("-", "_", regex=False)
    )
    return out


def apply_aliases(df: pd.DataFrame, aliases: dict[str, str] | None = None) -> pd.DataFrame:
    """
    Normalize column names and rename known source aliases to canonical names.

    An alias is skipped when the canonical column is already present, so a table
    carrying both ``lat`` and ``latitude`` keeps ``latitude`` untouched.
    """
    if aliases is None:
        aliases = COLUMN_ALIASES
    out = normalize_columns(df)
    rename = {
        src: dst
        for src, dst in aliases.items()
        if src in out.columns and src != dst and dst not in out.columns
    }
    return out.rename(columns=rename)


def require_columns(df: pd.DataFrame, required: Iterable[str], name: str = "table") -> None:
    """Raise ValueError if any of ``required`` is missing from ``df``."""
    missing = set(required) - set(df.columns)
    if missing:
        raise ValueError(f"[{name}] missing required columns: {sorted(missing)}")


def zscore_cols(df: pd.DataFrame, cols: Iterable[str]) -> tuple[pd.DataFrame, dict[str, tuple[float, float]]]:
    """
    Add ``<col>_z`` columns for each column in ``cols``.

    Returns the new frame and a mapping ``col -> (mean, sd)`` so estimates on the
    z scale can be brought back to the raw scale.
    """
    out = df.copy()
    moments = {}
    for c in cols:
        x = pd.to_numeric(out[c], errors="coerce")
        m, s = float(x.mean()), float(x.std())
        if not np.isfinite(s) or s == 0:
            raise ValueError(f"Cannot scale '{c}': standard deviation is {s}")
        out[f"{c}_z"] = (x - m) / s
        moments[c] = (m, s)
    return out, moments
