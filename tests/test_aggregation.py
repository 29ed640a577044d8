"""Tests for the daily-to-annual aggregation module."""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd
import pytest

from conftest import make_daily, make_phenology
from pheno_eos.aggregation import (
    AggregationConfig,
    InvalidThreshold,
    JoinMismatch,
    MissingValueAmbiguity,
    agg_modis_day,
    aggregate_annual,
    gate_daily,
    join_phenology,
    validate_daily,
    validate_phenology,
)


class TestAggregationConfig:
    """Test configuration validation."""

    def test_defaults_are_valid(self) -> None:
        config = AggregationConfig()
        config.validate()
        assert config.daylength_cutoff == 11.2
        assert config.missing_value_policy == "exclude"
        assert config.doy_cutoff is None

    def test_negative_threshold(self) -> None:
        with pytest.raises(InvalidThreshold, match="non-negative"):
            AggregationConfig(daylength_cutoff=-1.0).validate()

    def test_nan_threshold(self) -> None:
        with pytest.raises(InvalidThreshold):
            AggregationConfig(daylength_cutoff=float("nan")).validate()

    def test_zero_threshold_allowed(self) -> None:
        AggregationConfig(daylength_cutoff=0.0).validate()

    def test_unknown_policy(self) -> None:
        with pytest.raises(InvalidThreshold, match="missing_value_policy"):
            AggregationConfig(missing_value_policy="zero").validate()

    def test_doy_cutoff_out_of_range(self) -> None:
        with pytest.raises(InvalidThreshold, match="doy_cutoff"):
            AggregationConfig(doy_cutoff=400).validate()

    def test_invalid_threshold_is_value_error(self) -> None:
        """Callers catching ValueError also catch bad thresholds."""
        assert issubclass(InvalidThreshold, ValueError)

    def test_rejected_before_reading_data(self) -> None:
        """A bad threshold fails even when the tables are unusable."""
        with pytest.raises(InvalidThreshold):
            agg_modis_day(pd.DataFrame(), pd.DataFrame(), AggregationConfig(daylength_cutoff=-3))


class TestValidation:
    """Test schema checks on the input tables."""

    def test_missing_columns(self) -> None:
        with pytest.raises(ValueError, match="missing required columns"):
            validate_daily(pd.DataFrame({"site_id": ["A"], "year": [2010]}))

    def test_source_aliases_accepted(self) -> None:
        """Column names of the original P-model output are renamed."""
        raw = pd.DataFrame(
            {
                "sitename": ["A"],
                "year": [2010],
                "doy": [200],
                "lat": [46.0],
                "lon": [7.0],
                "gpp": [1.0],
                "rd": [0.1],
                "daylength": [14.0],
            }
        )
        out = validate_daily(raw)
        assert list(out.columns) == [
            "site_id", "year", "doy", "latitude", "longitude", "gpp", "rd", "daylength"
        ]
        assert out.loc[0, "site_id"] == "A"

    def test_phenology_alias(self) -> None:
        raw = pd.DataFrame({"sitename": ["A"], "year": [2010], "SOS_2_doy": [120]})
        out = validate_phenology(raw)
        assert out.loc[0, "leaf_on_doy"] == 120

    def test_duplicate_daily_key(self) -> None:
        daily = make_daily([{"doy": 100, "gpp": 1.0}, {"doy": 100, "gpp": 2.0}])
        with pytest.raises(ValueError, match="share a"):
            validate_daily(daily)

    def test_duplicate_phenology_key(self) -> None:
        pheno = pd.DataFrame({"site_id": ["A", "A"], "year": [2010, 2010], "leaf_on_doy": [100, 110]})
        with pytest.raises(ValueError, match="share a"):
            validate_phenology(pheno)

    def test_doy_out_of_range(self) -> None:
        daily = make_daily([{"doy": 367, "gpp": 1.0}])
        with pytest.raises(ValueError, match="outside 1..366"):
            validate_daily(daily)

    def test_site_id_as_string(self) -> None:
        daily = make_daily([{"doy": 1, "gpp": 1.0}], site_id=101)
        assert validate_daily(daily)["site_id"].tolist() == ["101"]

    def test_missing_daylength_rejected(self) -> None:
        daily = make_daily(
            [
                {"doy": 300, "gpp": 4.0, "daylength": np.nan},
                {"doy": 301, "gpp": 4.0, "daylength": "n/a"},
            ]
        )
        with pytest.raises(ValueError, match="2 rows have a missing or non-numeric 'daylength'"):
            validate_daily(daily)

    def test_missing_daylength_rejected_by_agg_modis_day(self) -> None:
        daily = make_daily([{"doy": 300, "gpp": 4.0, "daylength": np.nan}])
        with pytest.raises(ValueError, match="daylength"):
            agg_modis_day(daily, make_phenology({("A", 2010): 100}), AggregationConfig(daylength_cutoff=10.0))

    def test_fractional_year_rejected(self) -> None:
        daily = make_daily([{"doy": 1, "gpp": 1.0}], year=2010.7)
        with pytest.raises(ValueError, match="non-integer 'year'"):
            validate_daily(daily)

    def test_fractional_doy_rejected(self) -> None:
        daily = make_daily([{"doy": 100.5, "gpp": 1.0}])
        with pytest.raises(ValueError, match="non-integer 'doy'"):
            validate_daily(daily)

    def test_integral_floats_accepted(self) -> None:
        daily = make_daily([{"doy": 100.0, "gpp": 1.0}], year=2010.0)
        out = validate_daily(daily)
        assert out.loc[0, "year"] == 2010
        assert out.loc[0, "doy"] == 100

    def test_phenology_without_leaf_on_dropped(self) -> None:
        pheno = pd.DataFrame({"site_id": ["A", "B"], "year": [2010, 2010], "leaf_on_doy": [100, np.nan]})
        out = validate_phenology(pheno)
        assert out["site_id"].tolist() == ["A"]


class TestGating:
    """Test the per-day gating rule."""

    def _gate(self, daily: pd.DataFrame, leaf_on: int, cutoff: float, doy_cutoff=None) -> pd.DataFrame:
        joined, _ = join_phenology(validate_daily(daily), make_phenology({("A", 2010): leaf_on}))
        return gate_daily(joined, cutoff, doy_cutoff)

    def test_before_leaf_on_is_zero(self) -> None:
        daily = make_daily([{"doy": d, "gpp": 4.0, "rd": 0.4, "daylength": 15.0} for d in range(90, 100)])
        out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert (out["gpp"] == 0.0).all()
        assert (out["rd"] == 0.0).all()
        assert out["gated"].all()

    def test_short_day_is_zero(self) -> None:
        daily = make_daily([{"doy": 300, "gpp": 4.0, "daylength": 9.5}])
        out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert out.loc[0, "gpp"] == 0.0

    def test_daylength_equal_to_cutoff_is_gated(self) -> None:
        daily = make_daily([{"doy": 300, "gpp": 4.0, "daylength": 10.0}])
        out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert out.loc[0, "gpp"] == 0.0

    def test_leaf_on_day_itself_passes(self) -> None:
        daily = make_daily([{"doy": 100, "gpp": 4.0, "daylength": 13.0}])
        out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert out.loc[0, "gpp"] == 4.0
        assert not out.loc[0, "gated"]

    def test_passing_days_unchanged(self) -> None:
        values = [0.123456789, 7.0, 1e-12, 42.5]
        daily = make_daily(
            [{"doy": 150 + i, "gpp": v, "rd": v / 10, "daylength": 14.0} for i, v in enumerate(values)]
        )
        out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert out["gpp"].tolist() == values
        assert out["rd"].tolist() == [v / 10 for v in values]

    def test_missing_stays_missing_when_gated(self) -> None:
        daily = make_daily([{"doy": 50, "gpp": np.nan, "rd": np.nan, "daylength": 8.0}])
        with pytest.warns(MissingValueAmbiguity):
            out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert pd.isna(out.loc[0, "gpp"])
        assert pd.isna(out.loc[0, "rd"])
        assert out.loc[0, "gated"]

    def test_rd_gated_on_its_own_definedness(self) -> None:
        daily = make_daily(
            [
                {"doy": 50, "gpp": np.nan, "rd": 0.7, "daylength": 12.0},
                {"doy": 200, "gpp": 3.0, "rd": 0.1, "daylength": 12.0},
            ]
        )
        with pytest.warns(MissingValueAmbiguity):
            out = self._gate(daily, leaf_on=100, cutoff=10.0)
        assert pd.isna(out.loc[0, "gpp"])
        assert out.loc[0, "rd"] == 0.0
        assert out.loc[0, "gated"]
        annual = aggregate_annual(out, "exclude")
        assert annual.loc[0, "respiration_sum"] == pytest.approx(0.1)

    def test_doy_cutoff(self) -> None:
        daily = make_daily(
            [
                {"doy": 266, "gpp": 2.0, "daylength": 12.0},
                {"doy": 267, "gpp": 2.0, "daylength": 12.0},
            ]
        )
        out = self._gate(daily, leaf_on=100, cutoff=10.0, doy_cutoff=266)
        assert out["gpp"].tolist() == [2.0, 0.0]

    def test_does_not_mutate_input(self) -> None:
        daily = make_daily([{"doy": 50, "gpp": 4.0}])
        joined, _ = join_phenology(validate_daily(daily), make_phenology({("A", 2010): 100}))
        before = joined.copy()
        gate_daily(joined, 10.0)
        pd.testing.assert_frame_equal(joined, before)


class TestJoin:
    """Test the daily/phenology join."""

    def test_unmatched_site_year_dropped_and_counted(self) -> None:
        daily = pd.concat(
            [
                make_daily([{"doy": 200, "gpp": 1.0}], site_id="A"),
                make_daily([{"doy": 200, "gpp": 1.0}, {"doy": 201, "gpp": 1.0}], site_id="B"),
            ],
            ignore_index=True,
        )
        pheno = make_phenology({("A", 2010): 100})
        with pytest.warns(JoinMismatch, match="2 daily record"):
            joined, report = join_phenology(validate_daily(daily), validate_phenology(pheno))
        assert joined["site_id"].unique().tolist() == ["A"]
        assert report.to_dict("records") == [{"site_id": "B", "year": 2010, "n_records": 2}]

    def test_year_must_match(self) -> None:
        daily = make_daily([{"doy": 200, "gpp": 1.0}], year=2011)
        with pytest.warns(JoinMismatch):
            joined, report = join_phenology(validate_daily(daily), make_phenology({("A", 2010): 100}))
        assert joined.empty
        assert len(report) == 1

    def test_no_warning_when_all_match(self, scenario_daily, scenario_phenology) -> None:
        with warnings.catch_warnings():
            warnings.simplefilter("error", JoinMismatch)
            _, report = join_phenology(validate_daily(scenario_daily), validate_phenology(scenario_phenology))
        assert report.empty


class TestAggregateAnnual:
    """Test annual summation and the missing-value policies."""

    def _gated(self, rows: list[dict]) -> pd.DataFrame:
        daily = make_daily(rows)
        joined, _ = join_phenology(validate_daily(daily), make_phenology({("A", 2010): 1}))
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", MissingValueAmbiguity)
            return gate_daily(joined, 10.0)

    def test_exclude_skips_missing(self) -> None:
        gated = self._gated([{"doy": 200, "gpp": 2.0}, {"doy": 201, "gpp": np.nan}, {"doy": 202, "gpp": 3.0}])
        annual = aggregate_annual(gated, "exclude")
        assert annual.loc[0, "net_assimilation_sum"] == 5.0
        assert annual.loc[0, "n_days_missing"] == 1

    def test_propagate_makes_sum_missing(self) -> None:
        gated = self._gated([{"doy": 200, "gpp": 2.0, "rd": 0.2}, {"doy": 201, "gpp": np.nan, "rd": 0.1}])
        annual = aggregate_annual(gated, "propagate")
        assert pd.isna(annual.loc[0, "net_assimilation_sum"])
        assert annual.loc[0, "respiration_sum"] == pytest.approx(0.3)

    def test_all_missing_is_missing_not_zero(self) -> None:
        gated = self._gated([{"doy": d, "gpp": np.nan, "rd": np.nan} for d in (200, 201, 202)])
        annual = aggregate_annual(gated, "exclude")
        assert pd.isna(annual.loc[0, "net_assimilation_sum"])
        assert pd.isna(annual.loc[0, "respiration_sum"])

    def test_provenance_columns(self) -> None:
        gated = self._gated(
            [
                {"doy": 200, "gpp": 2.0, "daylength": 8.0},
                {"doy": 201, "gpp": 2.0, "daylength": 12.0},
                {"doy": 202, "gpp": 2.0, "daylength": 12.0},
                {"doy": 203, "gpp": 2.0, "daylength": 9.0},
            ]
        )
        annual = aggregate_annual(gated)
        row = annual.iloc[0]
        assert row["n_days"] == 4
        assert row["n_days_gated"] == 2
        assert row["gated_fraction_of_year"] == 0.5
        assert row["net_assimilation_sum"] == 4.0

    def test_unknown_policy(self) -> None:
        gated = self._gated([{"doy": 200, "gpp": 2.0}])
        with pytest.raises(InvalidThreshold):
            aggregate_annual(gated, "drop")


class TestAggModisDay:
    """Test the full aggregation."""

    def test_scenario(self, scenario_daily, scenario_phenology) -> None:
        """doy 278 is before leaf-on, doy 279 is too short, doy 281 counts."""
        result = agg_modis_day(scenario_daily, scenario_phenology, AggregationConfig(daylength_cutoff=10.0))
        annual = result.annual
        assert len(annual) == 1
        row = annual.iloc[0]
        assert row["site_id"] == "A"
        assert row["year"] == 2010
        assert row["net_assimilation_sum"] == 3.0
        assert row["respiration_sum"] == 0.5
        assert result.n_mismatched == 0

    def test_output_key_columns(self, scenario_daily, scenario_phenology) -> None:
        annual = agg_modis_day(scenario_daily, scenario_phenology).annual
        assert list(annual.columns[:4]) == ["site_id", "latitude", "longitude", "year"]
        assert {"net_assimilation_sum", "respiration_sum", "gated_fraction_of_year"} <= set(annual.columns)

    def test_all_missing_site_year(self, scenario_phenology) -> None:
        daily = make_daily([{"doy": d, "gpp": np.nan, "daylength": 12.0} for d in (281, 282)])
        with pytest.warns(MissingValueAmbiguity):
            annual = agg_modis_day(daily, scenario_phenology, AggregationConfig(daylength_cutoff=10.0)).annual
        assert pd.isna(annual.loc[0, "net_assimilation_sum"])

    def test_mismatch_is_not_fatal(self, scenario_daily, scenario_phenology) -> None:
        extra = make_daily([{"doy": 200, "gpp": 9.0}], site_id="Z", year=2012)
        daily = pd.concat([scenario_daily, extra], ignore_index=True)
        with pytest.warns(JoinMismatch):
            result = agg_modis_day(daily, scenario_phenology, AggregationConfig(daylength_cutoff=10.0))
        assert result.annual["site_id"].tolist() == ["A"]
        assert result.n_mismatched == 1
        assert result.mismatched_keys.loc[0, "site_id"] == "Z"

    def test_order_invariance(self, multi_site_daily, multi_site_phenology) -> None:
        config = AggregationConfig(daylength_cutoff=11.0)
        a = agg_modis_day(multi_site_daily, multi_site_phenology, config).annual
        shuffled = multi_site_daily.sample(frac=1.0, random_state=7).reset_index(drop=True)
        b = agg_modis_day(shuffled, multi_site_phenology, config).annual
        pd.testing.assert_frame_equal(a, b, check_exact=False, rtol=1e-9)

    def test_idempotent(self, multi_site_daily, multi_site_phenology) -> None:
        a = agg_modis_day(multi_site_daily, multi_site_phenology).annual
        b = agg_modis_day(multi_site_daily, multi_site_phenology).annual
        pd.testing.assert_frame_equal(a, b)

    def test_inputs_not_mutated(self, multi_site_daily, multi_site_phenology) -> None:
        daily_before = multi_site_daily.copy()
        pheno_before = multi_site_phenology.copy()
        agg_modis_day(multi_site_daily, multi_site_phenology)
        pd.testing.assert_frame_equal(multi_site_daily, daily_before)
        pd.testing.assert_frame_equal(multi_site_phenology, pheno_before)

    def test_one_row_per_site_year(self, multi_site_daily, multi_site_phenology) -> None:
        annual = agg_modis_day(multi_site_daily, multi_site_phenology).annual
        assert len(annual) == 6
        assert (annual["n_days"] == 365).all()

    def test_matches_manual_sum(self, multi_site_daily, multi_site_phenology) -> None:
        cutoff = 11.0
        annual = agg_modis_day(
            multi_site_daily, multi_site_phenology, AggregationConfig(daylength_cutoff=cutoff)
        ).annual
        d = multi_site_daily[(multi_site_daily["site_id"] == "s2") & (multi_site_daily["year"] == 2006)]
        keep = (d["doy"] >= 105) & (d["daylength"] > cutoff)
        expected = d.loc[keep, "gpp"].sum()
        got = annual.loc[(annual["site_id"] == "s2") & (annual["year"] == 2006), "net_assimilation_sum"].item()
        assert got == pytest.approx(expected, rel=1e-12)

    def test_lower_threshold_never_decreases_sum(self, multi_site_daily, multi_site_phenology) -> None:
        """gpp >= 0, so admitting more days can only add to the sum."""
        low = agg_modis_day(multi_site_daily, multi_site_phenology, AggregationConfig(daylength_cutoff=10.0)).annual
        high = agg_modis_day(multi_site_daily, multi_site_phenology, AggregationConfig(daylength_cutoff=11.2)).annual
        assert (low["net_assimilation_sum"] >= high["net_assimilation_sum"]).all()
