# 03_temporal_trends_pep.py : long-term trends of EOS, SOS and Anet at PEP725 ground-observation sites
# Inputs:
#   synthetic_data/pep_meta_drivers.csv              (PEP phenology + LPJ-GUESS cA_tot)
#   01_aggregate_pmodel_daily/pmodel_anet_11.2h.csv  (P-model Anet)
# Outputs (into 03_temporal_trends_pep/):
#   trend_results.xlsx     (coefficients, fit_summary, unscaled_trends)
#   ED_Fig1.tif / .jpg     (EOS, Anet P-model, Anet LPJ-GUESS and SOS against year)

import sys
import warnings
from pathlib import Path

import matplotlib.pyplot as plt

from pheno_eos.analysis import fit_trend_models, model_tables
from pheno_eos.anet import net_assimilation
from pheno_eos.io import read_table, write_sheets
from pheno_eos.models import effect_curve, partial_residuals
from pheno_eos.plotting import mm_to_inches, plot_effect, save_figure, tag_panels
from pheno_eos.utils import apply_aliases

try:
    sys.stdout.reconfigure(encoding="utf-8")
except Exception:
    pass

plt.rcParams["font.size"] = 7

# ---- paths ----
ROOT = Path(__file__).resolve().parent
IN_PEP = ROOT / "synthetic_data" / "pep_meta_drivers.csv"
IN_ANNUAL = ROOT / "01_aggregate_pmodel_daily" / "pmodel_anet_11.2h.csv"

OUT_DIR = ROOT / "03_temporal_trends_pep"
OUT_DIR.mkdir(parents=True, exist_ok=True)
OUT_XLSX = OUT_DIR / "trend_results.xlsx"

RESPONSES = ["leaf_off_doy", "gpp_net", "ca_tot", "leaf_on_doy"]
RANDOM = ["id_site", "species"]
ANET_LABEL = "$A_{net}$ (gC m$^{-2}$ yr$^{-1}$)"

# ---- load & join ----
pep = apply_aliases(read_table(IN_PEP))
pep["site_id"] = pep["site_id"].astype(str)
pep["id_site"] = pep["id_site"].astype(str)

with warnings.catch_warnings():
    warnings.simplefilter("ignore", UserWarning)
    annual = net_assimilation(read_table(IN_ANNUAL), zero_policy="fully_gated")
annual["site_id"] = annual["site_id"].astype(str)
annual = annual.drop(columns=["latitude", "longitude"])

df = pep.merge(annual, on=["site_id", "year"], how="left")
print(f"{df['id_site'].nunique()} PEP sites, {df['species'].nunique()} species, {len(df)} rows")

# ---- trends ----
fits = fit_trend_models(df, RESPONSES, RANDOM)
write_sheets(model_tables(fits), OUT_XLSX)
for response, fit in fits.items():
    est, se = fit.unscaled_trend("year")
    print(f"  {response} ~ year: {est:+.3f} ± {se:.3f} per year (n={fit.nobs})")
print(f"\nTrend tables saved to: {OUT_XLSX}")

# ---- ED Fig. 1 ----
panels = {
    "leaf_off_doy": ("EOS ~ Year", "PEP data", "EOS (DOY)"),
    "gpp_net": ("$A_{net}$ ~ Year", "PEP data and P-model", ANET_LABEL),
    "ca_tot": ("$A_{net}$ ~ Year", "PEP data and LPJ model", ANET_LABEL),
    "leaf_on_doy": ("SOS ~ Year", "PEP data", "SOS (DOY)"),
}
fig, axes = plt.subplots(2, 2, figsize=mm_to_inches(120, 120))
for ax, (response, (title, subtitle, ylabel)) in zip(axes.ravel(), panels.items()):
    fit = fits[response]
    plot_effect(
        ax,
        partial_residuals(fit, "year"),
        effect_curve(fit, "year"),
        "year",
        xlabel="Year",
        ylabel=ylabel,
        title=title,
        subtitle=subtitle,
    )
tag_panels(axes.ravel())
fig.tight_layout()
print("Saved:", *save_figure(fig, OUT_DIR / "ED_Fig1"))
