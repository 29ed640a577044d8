"""
Publication figures: effect panels and site maps.
"""

from __future__ import annotations

import string
from pathlib import Path

import cartopy.crs as ccrs
import cartopy.feature as cfeature
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .config import DPI, MAP_EXTENT, MM_PER_INCH

COLOR_POINTS = "#7f7f7f"
COLOR_LINE = "#E8743B"


def mm_to_inches(width_mm: float, height_mm: float) -> tuple[float, float]:
    return width_mm / MM_PER_INCH, height_mm / MM_PER_INCH


def plot_effect(
    ax,
    partial: pd.DataFrame,
    curve: pd.DataFrame,
    name: str,
    xlabel: str | None = None,
    ylabel: str = "EOS (DOY)",
    title: str | None = None,
    subtitle: str | None = None,
    label: str | None = None,
):
    """
    Partial residuals as points with the fixed-effect line and its CI band.

    ``partial`` comes from ``models.partial_residuals`` and ``curve`` from
    ``models.effect_curve`` for the same term.
    """
    ax.scatter(partial[name], partial["partial"], s=2, color=COLOR_POINTS, alpha=0.3, linewidths=0)
    ax.fill_between(curve[name], curve["lower"], curve["upper"], color=COLOR_LINE, alpha=0.25, linewidth=0)
    ax.plot(curve[name], curve["fit"], color=COLOR_LINE, linewidth=1.2, label=label)

    ax.set_xlabel(xlabel or name)
    ax.set_ylabel(ylabel)
    if title:
        ax.set_title(title if not subtitle else f"{title}\n{subtitle}", loc="left", fontsize=7)
    if label:
        ax.legend(frameon=False, fontsize=6)
    return ax


def new_map_axes(fig, nrows: int, ncols: int, index: int, extent=None):
    """Add a PlateCarree axes clipped to ``extent`` (default 15-75 N)."""
    ax = fig.add_subplot(nrows, ncols, index, projection=ccrs.PlateCarree())
    ax.set_extent(extent or MAP_EXTENT, crs=ccrs.PlateCarree())
    return ax


def plot_site_map(
    ax,
    grid: pd.DataFrame,
    column: str,
    cmap: str = "viridis",
    limits: tuple[float, float] | None = None,
    cbar_label: str | None = None,
    features: bool = True,
):
    """
    Scatter gridded site values on a map.

    ``features`` draws land and coastlines (Natural Earth, downloaded by
    cartopy on first use).
    """
    if features:
        ax.add_feature(cfeature.LAND, facecolor="grey")
        ax.add_feature(cfeature.COASTLINE, linewidth=0.3)
    ax.set_facecolor("aliceblue")

    vmin, vmax = limits if limits else (np.nanmin(grid[column]), np.nanmax(grid[column]))
    sc = ax.scatter(
        grid["longitude"],
        grid["latitude"],
        c=grid[column],
        s=0.3,
        cmap=cmap,
        vmin=vmin,
        vmax=vmax,
        transform=ccrs.PlateCarree(),
    )
    cbar = plt.colorbar(sc, ax=ax, orientation="vertical", pad=0.02, shrink=0.8)
    cbar.set_label(cbar_label or column, fontsize=6)
    cbar.ax.tick_params(labelsize=6)
    return sc


def tag_panels(axes, suffix: str = ")") -> None:
    """Label panels A), B), ... in the upper-left corner."""
    for letter, ax in zip(string.ascii_uppercase, axes):
        ax.text(-0.12, 1.05, f"{letter}{suffix}", transform=ax.transAxes, fontsize=7, fontweight="bold")


def save_figure(fig, path_stem: str | Path, formats: tuple[str, ...] = ("tif", "jpg")) -> list[Path]:
    """Save ``fig`` at 300 dpi in each of ``formats`` and close it."""
    path_stem = Path(path_stem)
    path_stem.parent.mkdir(parents=True, exist_ok=True)
    written = []
    for fmt in formats:
        out = path_stem.with_suffix(f".{fmt}")
        fig.savefig(out, dpi=DPI, bbox_inches="tight")
        written.append(out)
    plt.close(fig)
    return written
