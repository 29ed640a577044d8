"""
EOS ~ Anet analysis: table preparation and the standard set of models.
"""

from __future__ import annotations

import pandas as pd

from .anet import join_eos, net_assimilation, separate_anomalies
from .models import MixedModelFit, fit_mixed_model


def prepare_eos_table(
    annual: pd.DataFrame,
    phenology: pd.DataFrame,
    zero_policy: str = "keep",
) -> pd.DataFrame:
    """Net assimilation joined to EOS/SOS observations, with site means and anomalies."""
    annual = net_assimilation(annual, zero_policy=zero_policy)
    df = join_eos(phenology, annual)
    return separate_anomalies(df, "gpp_net")


def fit_eos_models(df: pd.DataFrame) -> dict[str, MixedModelFit]:
    """
    Fit the two EOS models.

    - "iav": EOS ~ Anet + (1|site)
    - "mean_anomaly": EOS ~ mean Anet + Anet anomaly + (1|site) + (1|year)
    """
    return {
        "iav": fit_mixed_model(df, "leaf_off_doy", ["gpp_net"], ["site_id"]),
        "mean_anomaly": fit_mixed_model(
            df, "leaf_off_doy", ["mean_gpp_net", "anom_gpp_net"], ["site_id", "year"]
        ),
    }


def fit_trend_models(df: pd.DataFrame, responses: list[str], random: list[str]) -> dict[str, MixedModelFit]:
    """Long-term trends: ``response ~ year`` with random intercepts, one model per response."""
    fits = {}
    for response in responses:
        reml = response not in ("gpp_net", "leaf_on_doy")
        fits[response] = fit_mixed_model(df, response, ["year"], random, reml=reml)
    return fits


def model_tables(fits: dict[str, MixedModelFit]) -> dict[str, pd.DataFrame]:
    """Coefficients, fit statistics and unscaled trends of several models, as sheets."""
    coefs, summaries, trends = [], [], []
    for name, fit in fits.items():
        c = fit.coefficients()
        c.insert(0, "model", name)
        coefs.append(c)

        s = fit.summary_frame()
        s.insert(0, "model", name)
        summaries.append(s)

        for term in fit.fixed:
            est, se = fit.unscaled_trend(term)
            trends.append({"model": name, "term": term, "estimate_unscaled": est, "std_error_unscaled": se})

    return {
        "coefficients": pd.concat(coefs, ignore_index=True),
        "fit_summary": pd.concat(summaries, ignore_index=True),
        "unscaled_trends": pd.DataFrame(trends),
    }
