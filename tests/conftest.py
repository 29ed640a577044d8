"""Shared fixtures for the pheno_eos tests."""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def make_daily(rows: list[dict], site_id: str = "A", year: int = 2010) -> pd.DataFrame:
    """Build a daily table from partial rows, filling the site-level columns."""
    base = {"site_id": site_id, "year": year, "latitude": 46.5, "longitude": 7.5, "rd": 0.0, "daylength": 12.0}
    return pd.DataFrame([{**base, **r} for r in rows])


def make_phenology(leaf_on: dict[tuple[str, int], int]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"site_id": s, "year": y, "leaf_on_doy": d} for (s, y), d in leaf_on.items()]
    )


@pytest.fixture
def scenario_daily() -> pd.DataFrame:
    """Three autumn days around a leaf-on date of 280."""
    return make_daily(
        [
            {"doy": 278, "daylength": 11.0, "gpp": 5.0, "rd": 0.5},
            {"doy": 279, "daylength": 9.0, "gpp": 5.0, "rd": 0.5},
            {"doy": 281, "daylength": 11.0, "gpp": 3.0, "rd": 0.5},
        ]
    )


@pytest.fixture
def scenario_phenology() -> pd.DataFrame:
    return make_phenology({("A", 2010): 280})


@pytest.fixture
def multi_site_daily() -> pd.DataFrame:
    """Full years of daily output for three sites and two years."""
    rng = np.random.default_rng(0)
    frames = []
    for i, site in enumerate(["s1", "s2", "s3"]):
        for year in (2005, 2006):
            doy = np.arange(1, 366)
            frames.append(
                pd.DataFrame(
                    {
                        "site_id": site,
                        "year": year,
                        "doy": doy,
                        "latitude": 45.0 + i,
                        "longitude": 10.0 + i,
                        "gpp": rng.uniform(0, 10, len(doy)),
                        "rd": rng.uniform(0, 1, len(doy)),
                        "daylength": 12 + 4 * np.sin(2 * np.pi * (doy - 80) / 365),
                    }
                )
            )
    return pd.concat(frames, ignore_index=True)


@pytest.fixture
def multi_site_phenology() -> pd.DataFrame:
    return make_phenology(
        {(s, y): 100 + 5 * i for i, s in enumerate(["s1", "s2", "s3"]) for y in (2005, 2006)}
    )


@pytest.fixture
def eos_tables() -> tuple[pd.DataFrame, pd.DataFrame]:
    """Annual Anet and phenology for 20 sites x 8 years with EOS rising with Anet."""
    rng = np.random.default_rng(1)
    annual_rows, pheno_rows = [], []
    for i in range(20):
        site = f"site_{i:02d}"
        site_level = rng.normal(1500, 200)
        site_eos = rng.normal(290, 8)
        for year in range(2001, 2009):
            anet = site_level + rng.normal(0, 100)
            annual_rows.append(
                {
                    "site_id": site,
                    "latitude": 40 + i * 0.5,
                    "longitude": -5 + i * 0.5,
                    "year": year,
                    "net_assimilation_sum": anet + 150,
                    "respiration_sum": 150.0,
                    "gated_fraction_of_year": 0.5,
                }
            )
            pheno_rows.append(
                {
                    "site_id": site,
                    "year": year,
                    "leaf_on_doy": int(rng.integers(90, 130)),
                    "leaf_off_doy": site_eos + 0.02 * (anet - 1500) + rng.normal(0, 4),
                }
            )
    return pd.DataFrame(annual_rows), pd.DataFrame(pheno_rows)
