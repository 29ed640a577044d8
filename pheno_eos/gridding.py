"""
Binning of site coordinates onto a regular grid for maps.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from .config import GRID_RESOLUTION
from .utils import require_columns


def _cell_midpoints(values: pd.Series, resolution: float) -> pd.Series:
    # Cells are left-open, right-closed: (k*res, (k+1)*res]
    k = np.ceil(np.round(values / resolution, 9)) - 1
    return (k + 0.5) * resolution


def assign_grid_cells(df: pd.DataFrame, resolution: float = GRID_RESOLUTION) -> pd.DataFrame:
    """Add ``lon_mid`` and ``lat_mid``, the midpoint of each site's grid cell."""
    if resolution <= 0:
        raise ValueError(f"resolution must be positive, got {resolution}")
    require_columns(df, ["longitude", "latitude"], "grid")
    out = df.copy()
    out["lon_mid"] = _cell_midpoints(out["longitude"], resolution).round(6)
    out["lat_mid"] = _cell_midpoints(out["latitude"], resolution).round(6)
    return out


def aggregate_grid(
    df: pd.DataFrame,
    value_columns: list[str],
    resolution: float = GRID_RESOLUTION,
) -> pd.DataFrame:
    """
    Mean of ``value_columns`` per grid cell (NaN-aware).

    Returns one row per cell with the cell midpoint as ``longitude``/``latitude``.
    """
    require_columns(df, value_columns, "grid")
    cells = assign_grid_cells(df, resolution)
    out = (
        cells.groupby(["lon_mid", "lat_mid"])[value_columns]
        .mean()
        .reset_index()
        .rename(columns={"lon_mid": "longitude", "lat_mid": "latitude"})
    )
    return out
