"""
Net assimilation and its join to observed phenology.
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd

from .config import SITE_YEAR, ZERO_POLICIES
from .utils import apply_aliases, require_columns


def net_assimilation(annual: pd.DataFrame, zero_policy: str = "keep") -> pd.DataFrame:
    """
    Add ``gpp_net`` = net_assimilation_sum - respiration_sum.

    A zero ``gpp_net`` is ambiguous: the site-year may have assimilated nothing,
    or every day may have been gated away. ``zero_policy`` decides:

    - "keep": zeros stay (a warning reports how many there are)
    - "fully_gated": NaN only where no day passed the gates
    - "as_missing": every zero becomes NaN, discarding genuine zero years too
    """
    if zero_policy not in ZERO_POLICIES:
        raise ValueError(f"zero_policy must be one of {ZERO_POLICIES}, got {zero_policy!r}")
    require_columns(annual, ["net_assimilation_sum", "respiration_sum"], "annual")

    out = annual.copy()
    out["gpp_net"] = out["net_assimilation_sum"] - out["respiration_sum"]
    zero = out["gpp_net"] == 0

    if zero_policy == "keep":
        if zero.any():
            warnings.warn(
                f"{int(zero.sum())} site-year(s) have gpp_net == 0; kept as zero "
                "(use zero_policy='fully_gated' to treat fully gated years as missing)",
                UserWarning,
                stacklevel=2,
            )
    elif zero_policy == "fully_gated":
        require_columns(out, ["gated_fraction_of_year"], "annual")
        out.loc[out["gated_fraction_of_year"] >= 1.0, "gpp_net"] = np.nan
    else:
        out.loc[zero, "gpp_net"] = np.nan

    return out


def join_eos(phenology: pd.DataFrame, annual: pd.DataFrame) -> pd.DataFrame:
    """
    Left-join annual assimilation onto site-year phenology observations.

    Only site-years with EOS after SOS are kept.
    """
    pheno = apply_aliases(phenology)
    require_columns(pheno, SITE_YEAR + ["leaf_on_doy", "leaf_off_doy"], "phenology")
    pheno["site_id"] = pheno["site_id"].astype(str)
    pheno["year"] = pheno["year"].astype(int)

    ann = annual.copy()
    ann["site_id"] = ann["site_id"].astype(str)
    # coordinates come from the phenology table when both carry them
    dup_cols = [c for c in ["latitude", "longitude"] if c in pheno.columns and c in ann.columns]
    ann = ann.drop(columns=dup_cols)

    df = pheno.merge(ann, on=SITE_YEAR, how="left", validate="many_to_one")
    df = df[df["leaf_off_doy"] > df["leaf_on_doy"]]
    return df.reset_index(drop=True)


def separate_anomalies(df: pd.DataFrame, column: str = "gpp_net", by: str = "site_id") -> pd.DataFrame:
    """
    Split ``column`` into a per-site long-term mean and the yearly anomaly.

    Adds ``mean_<column>`` (mean across years, NaN-aware) and
    ``anom_<column>`` (value minus that mean).
    """
    require_columns(df, [column, by], "anomalies")
    out = df.copy()
    site_mean = out.groupby(by)[column].transform("mean")
    out[f"mean_{column}"] = site_mean
    out[f"anom_{column}"] = out[column] - site_mean
    return out
