"""
Command-line interface for pheno_eos package.
"""

import sys
import warnings
from pathlib import Path

from .aggregation import AggregationConfig, agg_modis_day
from .analysis import fit_eos_models, model_tables, prepare_eos_table
from .config import DAYLENGTH_CUTOFF
from .io import read_table, write_sheets, write_table


def main(argv=None):
    """Aggregate daily P-model output to annual gated sums."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 3:
        print("Usage: pheno-eos-aggregate <daily> <phenology> <output> [daylength_cutoff]")
        print("\nExample:")
        print("  pheno-eos-aggregate data/pmodel_daily/ data/modis_pheno_sites.csv output/pmodel_anet_10h.csv 10")
        sys.exit(1)

    daily_path, pheno_path, output_path = (Path(a) for a in args[:3])

    try:
        cutoff = float(args[3]) if len(args) > 3 else DAYLENGTH_CUTOFF
        config = AggregationConfig(daylength_cutoff=cutoff)
        config.validate()

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result = agg_modis_day(read_table(daily_path), read_table(pheno_path), config)
        for w in caught:
            print(f"Warning: {w.message}")

        write_table(result.annual, output_path, sheet_name="annual_anet")
        print(f"\nAggregated {len(result.annual)} site-years (daylength cutoff {cutoff} h)")
        if result.n_mismatched:
            print(
                f"  {result.n_mismatched} daily records in "
                f"{len(result.mismatched_keys)} site-years had no phenology record and were dropped"
            )
        print(f"\nResults saved to: {output_path}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def analyze_main(argv=None):
    """Fit the EOS ~ Anet models and write the model tables."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) < 3:
        print("Usage: pheno-eos-analyze <annual> <phenology> <output_dir>")
        sys.exit(1)

    annual_path, pheno_path, out_dir = (Path(a) for a in args[:3])

    try:
        df = prepare_eos_table(read_table(annual_path), read_table(pheno_path))
        print(f"\n{df['site_id'].nunique()} sites, {len(df)} site-years with EOS > SOS")

        fits = fit_eos_models(df)
        out = write_sheets(model_tables(fits), out_dir / "eos_anet_models.xlsx")
        for name, fit in fits.items():
            r2 = fit.r_squared()
            print(f"  {name}: n={fit.nobs}, R2m={r2['r2_marginal']:.3f}, R2c={r2['r2_conditional']:.3f}")
        print(f"\nResults saved to: {out}")
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
