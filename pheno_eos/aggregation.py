"""
Daily-to-annual aggregation of simulated carbon assimilation.

Turns per-site daily P-model output (GPP, dark respiration, daylength) into
annual sums restricted to the physiologically active part of the year: days
before the observed leaf-on date, and days whose daylength does not exceed a
threshold, contribute zero.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field

import numpy as np
import pandas as pd

from .config import (
    ANNUAL_KEY,
    DAILY_COLUMNS,
    DAILY_KEY,
    DAYLENGTH_CUTOFF,
    MISSING_VALUE_POLICIES,
    PHENOLOGY_COLUMNS,
    SITE_YEAR,
)
from .utils import apply_aliases, require_columns


class InvalidThreshold(ValueError):
    """Raised for an unusable gating configuration."""


class JoinMismatch(UserWarning):
    """Daily records without a phenology record for their site-year."""


class MissingValueAmbiguity(UserWarning):
    """Days with a defined daylength but undefined GPP."""


@dataclass(frozen=True)
class AggregationConfig:
    """
    Gating and summation settings.

    daylength_cutoff : days with daylength <= cutoff (hours) are gated
    missing_value_policy : "exclude" skips undefined days in the sum,
        "propagate" makes the whole annual sum undefined
    doy_cutoff : optional fixed end of season; days after it are gated
    """

    daylength_cutoff: float = DAYLENGTH_CUTOFF
    missing_value_policy: str = "exclude"
    doy_cutoff: int | None = None

    def validate(self) -> None:
        cutoff = self.daylength_cutoff
        if cutoff is None or not np.isfinite(cutoff) or cutoff < 0:
            raise InvalidThreshold(f"daylength_cutoff must be a non-negative number of hours, got {cutoff!r}")
        if self.missing_value_policy not in MISSING_VALUE_POLICIES:
            raise InvalidThreshold(
                f"missing_value_policy must be one of {MISSING_VALUE_POLICIES}, "
                f"got {self.missing_value_policy!r}"
            )
        if self.doy_cutoff is not None and not 1 <= self.doy_cutoff <= 366:
            raise InvalidThreshold(f"doy_cutoff must lie in 1..366, got {self.doy_cutoff!r}")


@dataclass(frozen=True)
class AggregationResult:
    annual: pd.DataFrame
    n_mismatched: int
    mismatched_keys: pd.DataFrame
    config: AggregationConfig = field(default_factory=AggregationConfig)


def _check_unique(df: pd.DataFrame, key: list[str], name: str) -> None:
    dup = df.duplicated(key, keep=False)
    if dup.any():
        examples = df.loc[dup, key].drop_duplicates().head(5).to_dict("records")
        raise ValueError(f"[{name}] {int(dup.sum())} rows share a {tuple(key)} key, e.g. {examples}")


def _to_int(df: pd.DataFrame, col: str, name: str) -> pd.Series:
    x = pd.to_numeric(df[col], errors="coerce")
    if x.isna().any():
        raise ValueError(f"[{name}] {int(x.isna().sum())} rows have a missing or non-numeric '{col}'")
    fractional = x != x.round()
    if fractional.any():
        raise ValueError(f"[{name}] {int(fractional.sum())} rows have a non-integer '{col}'")
    return x.astype(int)


def validate_daily(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check and coerce the daily simulation table.

    Parameters
    ----------
    df : pd.DataFrame
        Daily records; source aliases (sitename, lat, lon, ...) are accepted

    Returns
    -------
    pd.DataFrame
        Copy restricted to the canonical daily columns
    """
    out = apply_aliases(df)
    require_columns(out, DAILY_COLUMNS, "daily")
    out = out[DAILY_COLUMNS].copy()

    out["site_id"] = out["site_id"].astype(str)
    out["year"] = _to_int(out, "year", "daily")
    out["doy"] = _to_int(out, "doy", "daily")
    for c in ["latitude", "longitude", "gpp", "rd", "daylength"]:
        out[c] = pd.to_numeric(out[c], errors="coerce")
    if out["daylength"].isna().any():
        raise ValueError(
            f"[daily] {int(out['daylength'].isna().sum())} rows have a missing or non-numeric 'daylength'"
        )

    bad_doy = ~out["doy"].between(1, 366)
    if bad_doy.any():
        raise ValueError(f"[daily] {int(bad_doy.sum())} rows have doy outside 1..366")

    _check_unique(out, DAILY_KEY, "daily")
    return out


def validate_phenology(df: pd.DataFrame) -> pd.DataFrame:
    """
    Check and coerce the leaf-on table (one row per site-year).

    Rows without a leaf-on date cannot gate anything and are left out, so their
    daily records surface as join mismatches.
    """
    out = apply_aliases(df)
    require_columns(out, PHENOLOGY_COLUMNS, "phenology")
    out = out[PHENOLOGY_COLUMNS].copy()

    out["site_id"] = out["site_id"].astype(str)
    out["year"] = _to_int(out, "year", "phenology")
    out["leaf_on_doy"] = pd.to_numeric(out["leaf_on_doy"], errors="coerce")

    _check_unique(out, SITE_YEAR, "phenology")
    out = out.dropna(subset=["leaf_on_doy"])
    out["leaf_on_doy"] = out["leaf_on_doy"].astype(int)
    return out.reset_index(drop=True)


def join_phenology(daily: pd.DataFrame, phenology: pd.DataFrame) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    Attach the leaf-on date to every daily record by (site_id, year).

    Daily records without a match are dropped and reported.

    Returns
    -------
    tuple[pd.DataFrame, pd.DataFrame]
        Joined records, and the unmatched site-years with their record counts
    """
    merged = daily.merge(
        phenology[SITE_YEAR + ["leaf_on_doy"]],
        on=SITE_YEAR,
        how="left",
        indicator=True,
        validate="many_to_one",
    )
    unmatched = merged["_merge"] == "left_only"

    report = (
        merged.loc[unmatched]
        .groupby(SITE_YEAR)
        .size()
        .reset_index(name="n_records")
    )
    if unmatched.any():
        warnings.warn(
            f"{int(unmatched.sum())} daily record(s) in {len(report)} site-year(s) "
            "have no phenology record and were dropped",
            JoinMismatch,
            stacklevel=2,
        )

    joined = merged.loc[~unmatched].drop(columns="_merge").reset_index(drop=True)
    joined["leaf_on_doy"] = joined["leaf_on_doy"].astype(int)
    return joined, report


def gate_daily(
    joined: pd.DataFrame,
    daylength_cutoff: float = DAYLENGTH_CUTOFF,
    doy_cutoff: int | None = None,
) -> pd.DataFrame:
    """
    Zero out GPP and Rd outside the active season.

    A day is gated when it falls before leaf-on, when its daylength is at or
    below ``daylength_cutoff``, or (optionally) when it falls after
    ``doy_cutoff``. Gated days with a defined value become 0.0; undefined values
    stay undefined. Adds a boolean ``gated`` column.
    """
    out = joined.copy()

    gated = (out["doy"] < out["leaf_on_doy"]) | (out["daylength"] <= daylength_cutoff)
    if doy_cutoff is not None:
        gated = gated | (out["doy"] > doy_cutoff)

    ambiguous = out["daylength"].notna() & out["gpp"].isna()
    if ambiguous.any():
        warnings.warn(
            f"{int(ambiguous.sum())} day(s) have a daylength but no GPP; kept as missing",
            MissingValueAmbiguity,
            stacklevel=2,
        )

    for c in ["gpp", "rd"]:
        out[c] = out[c].mask(gated & out[c].notna(), 0.0)
    out["gated"] = gated.astype(bool)
    return out


def aggregate_annual(gated: pd.DataFrame, missing_value_policy: str = "exclude") -> pd.DataFrame:
    """
    Sum gated daily values per (site_id, latitude, longitude, year).

    Under "exclude" undefined days are skipped, but a site-year with no defined
    day at all sums to NaN rather than 0. Under "propagate" any undefined day
    makes the sum NaN.
    """
    if missing_value_policy not in MISSING_VALUE_POLICIES:
        raise InvalidThreshold(f"Unknown missing_value_policy {missing_value_policy!r}")

    work = gated.assign(missing=gated["gpp"].isna())
    grouped = work.groupby(ANNUAL_KEY, sort=True, dropna=False)

    sums = grouped[["gpp", "rd"]].sum(min_count=1)
    if missing_value_policy == "propagate":
        has_nan = grouped[["gpp", "rd"]].agg(lambda s: s.isna().any())
        sums = sums.mask(has_nan.astype(bool))

    annual = pd.DataFrame(
        {
            "net_assimilation_sum": sums["gpp"],
            "respiration_sum": sums["rd"],
            "n_days": grouped.size(),
            "n_days_gated": grouped["gated"].sum().astype(int),
            "n_days_missing": grouped["missing"].sum().astype(int),
        }
    ).reset_index()
    annual["gated_fraction_of_year"] = annual["n_days_gated"] / annual["n_days"]

    return annual.sort_values(ANNUAL_KEY).reset_index(drop=True)


def agg_modis_day(
    daily: pd.DataFrame,
    phenology: pd.DataFrame,
    config: AggregationConfig | None = None,
) -> AggregationResult:
    """
    Aggregate daily P-model output into annual gated assimilation sums.

    Parameters
    ----------
    daily : pd.DataFrame
        Daily records with site_id, year, doy, latitude, longitude, gpp, rd, daylength
    phenology : pd.DataFrame
        Leaf-on dates with site_id, year, leaf_on_doy
    config : AggregationConfig | None
        Gating settings; defaults to an 11.2 h daylength cutoff

    Returns
    -------
    AggregationResult
        Annual table plus the count and keys of unmatched daily records
    """
    if config is None:
        config = AggregationConfig()
    config.validate()

    daily = validate_daily(daily)
    phenology = validate_phenology(phenology)

    joined, report = join_phenology(daily, phenology)
    gated = gate_daily(joined, config.daylength_cutoff, config.doy_cutoff)
    annual = aggregate_annual(gated, config.missing_value_policy)

    return AggregationResult(
        annual=annual,
        n_mismatched=int(report["n_records"].sum()),
        mismatched_keys=report,
        config=config,
    )
