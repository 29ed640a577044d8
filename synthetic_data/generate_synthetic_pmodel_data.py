#!/usr/bin/env python3
"""
Generate synthetic inputs with the structure of the MODIS / P-model data.

Creates a per-site folder of daily P-model output and a site-year phenology
table so the whole workflow (01 -> 03) can be reproduced without the
original cluster data.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd


# ---------- Configuration ----------

SCRIPT_DIR = Path(__file__).resolve().parent
DAILY_DIR = SCRIPT_DIR / "pmodel_daily"
PHENO_FILE = SCRIPT_DIR / "modis_pheno_sites.csv"
PEP_FILE = SCRIPT_DIR / "pep_meta_drivers.csv"

N_SITES = 60
YEARS = range(2001, 2019)
SPECIES = ["Fagus sylvatica", "Quercus robur", "Betula pendula", "Aesculus hippocastanum"]

rng = np.random.default_rng(42)


# ---------- Helper functions ----------

def daylength_hours(latitude: float, doy: np.ndarray) -> np.ndarray:
    """Astronomical daylength (CBM model, Forsythe et al. 1995)."""
    theta = 0.2163108 + 2 * np.arctan(0.9671396 * np.tan(0.00860 * (doy - 186)))
    phi = np.arcsin(0.39795 * np.cos(theta))
    lat = np.deg2rad(latitude)
    p = np.deg2rad(0.8333)
    arg = (np.sin(p) + np.sin(lat) * np.sin(phi)) / (np.cos(lat) * np.cos(phi))
    return 24 - (24 / np.pi) * np.arccos(np.clip(arg, -1, 1))


def generate_sites() -> pd.DataFrame:
    return pd.DataFrame({
        "sitename": [f"site_{i:04d}" for i in range(N_SITES)],
        "lat": rng.uniform(35, 65, N_SITES).round(4),
        "lon": rng.uniform(-120, 140, N_SITES).round(4),
    })


def generate_phenology(sites: pd.DataFrame) -> pd.DataFrame:
    """SOS/EOS per site-year; EOS later at low latitude and after productive years."""
    rows = []
    for _, s in sites.iterrows():
        base_sos = 60 + 2.2 * (s["lat"] - 35) + rng.normal(0, 5)
        base_eos = 320 - 1.5 * (s["lat"] - 35) + rng.normal(0, 5)
        for year in YEARS:
            rows.append({
                "sitename": s["sitename"],
                "year": year,
                "lon": s["lon"],
                "lat": s["lat"],
                "SOS_2_doy": int(round(base_sos + rng.normal(0, 6))),
                "EOS_2_doy": int(round(base_eos - 0.2 * (year - 2001) + rng.normal(0, 6))),
            })
    return pd.DataFrame(rows)


def generate_daily(site: pd.Series) -> pd.DataFrame:
    """Daily GPP, Rd and daylength for one site across all years."""
    frames = []
    for year in YEARS:
        n_days = 366 if year % 4 == 0 else 365
        doy = np.arange(1, n_days + 1)
        season = np.clip(np.sin(np.pi * (doy - 60) / 250), 0, None)
        gpp = (10 * season * (1 + rng.normal(0, 0.15, n_days))).clip(min=0)
        rd = 0.1 * gpp
        # sparse gaps in the simulation output
        gaps = rng.random(n_days) < 0.01
        gpp[gaps] = np.nan
        frames.append(pd.DataFrame({
            "sitename": site["sitename"],
            "year": year,
            "doy": doy,
            "lon": site["lon"],
            "lat": site["lat"],
            "gpp": gpp.round(4),
            "rd": rd.round(4),
            "daylength": daylength_hours(site["lat"], doy).round(3),
        }))
    return pd.concat(frames, ignore_index=True)


def generate_pep_meta(sites: pd.DataFrame, pheno: pd.DataFrame) -> pd.DataFrame:
    """Ground-observation table in the PEP725 meta-driver layout."""
    p = pheno.merge(sites, on=["sitename", "lon", "lat"])
    p["Species"] = rng.choice(SPECIES, len(p))
    p["PEP_ID"] = p["sitename"].str.slice(-4).astype(int)
    p["cA_tot"] = rng.normal(1500, 200, len(p)).round(1)
    return p.rename(columns={
        "lon": "LON", "lat": "LAT", "year": "YEAR",
        "EOS_2_doy": "DoY_off", "SOS_2_doy": "DoY_out", "sitename": "timeseries",
    })


def main():
    sites = generate_sites()
    pheno = generate_phenology(sites)

    DAILY_DIR.mkdir(parents=True, exist_ok=True)
    for _, site in sites.iterrows():
        generate_daily(site).to_csv(DAILY_DIR / f"{site['sitename']}.csv", index=False)

    pheno.to_csv(PHENO_FILE, index=False)
    generate_pep_meta(sites, pheno).to_csv(PEP_FILE, index=False)

    print(f"Wrote daily output for {len(sites)} sites to {DAILY_DIR}")
    print(f"Wrote {len(pheno)} site-year phenology records to {PHENO_FILE}")
    print(f"Wrote PEP-style meta table to {PEP_FILE}")


if __name__ == "__main__":
    main()
