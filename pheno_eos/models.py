"""
Linear mixed-effects models relating phenology to assimilation.

Thin layer over statsmodels MixedLM: fixed effects are z-scored before
fitting, random intercepts are given by grouping columns. Helpers pull out the
quantities reported in the analysis (coefficients, unscaled trends, R²,
partial residuals and effect curves).
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf
from scipy import stats
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from .utils import require_columns, zscore_cols

INTERCEPT = "Intercept"


@dataclass
class MixedModelFit:
    """A fitted model together with the rows and scaling used to fit it."""

    result: object
    data: pd.DataFrame
    response: str
    fixed: list[str]
    random: list[str]
    moments: dict[str, tuple[float, float]]

    @property
    def nobs(self) -> int:
        return int(len(self.data))

    @property
    def fe_names(self) -> list[str]:
        return list(self.result.model.exog_names)

    @property
    def fe_params(self) -> pd.Series:
        return pd.Series(np.asarray(self.result.fe_params, dtype=float), index=self.fe_names)

    @property
    def bse_fe(self) -> pd.Series:
        return pd.Series(np.asarray(self.result.bse_fe, dtype=float), index=self.fe_names)

    def coefficients(self, level: float = 0.95) -> pd.DataFrame:
        """Fixed-effect estimates on the z scale with Wald tests and CIs."""
        est = self.fe_params
        se = self.bse_fe
        z = est / se
        crit = stats.norm.ppf(0.5 + level / 2)
        out = pd.DataFrame(
            {
                "term": [_raw_name(n) for n in est.index],
                "estimate": est.values,
                "std_error": se.values,
                "z_value": z.values,
                "p_value": 2 * stats.norm.sf(np.abs(z.values)),
                "ci_lower": (est - crit * se).values,
                "ci_upper": (est + crit * se).values,
            }
        )
        return out

    def unscaled_trend(self, name: str) -> tuple[float, float]:
        """Estimate and standard error per unit of the raw predictor."""
        if name not in self.moments:
            raise KeyError(f"'{name}' is not a fixed effect of this model: {self.fixed}")
        sd = self.moments[name][1]
        term = f"{name}_z"
        return float(self.fe_params[term] / sd), float(self.bse_fe[term] / sd)

    def variance_components(self) -> dict[str, float]:
        if len(self.random) == 1:
            return {self.random[0]: float(np.asarray(self.result.cov_re)[0, 0])}
        names = self.result.model.exog_vc.names
        return {r: float(v) for r, v in zip(names, self.result.vcomp)}

    def r_squared(self) -> dict[str, float]:
        """
        Marginal (fixed effects only) and conditional (fixed + random) R²
        after Nakagawa & Schielzeth (2013).
        """
        exog = self.result.model.exog
        var_f = float(np.var(exog @ self.fe_params.values, ddof=1))
        var_r = float(sum(self.variance_components().values()))
        var_e = float(self.result.scale)
        total = var_f + var_r + var_e
        return {"r2_marginal": var_f / total, "r2_conditional": (var_f + var_r) / total}

    def fixed_prediction(self, name: str, values) -> np.ndarray:
        """Fixed-effect prediction along ``name`` with the other terms at their mean."""
        design = self._design(name, np.asarray(values, dtype=float))
        return design @ self.fe_params.values

    def summary_frame(self) -> pd.DataFrame:
        r2 = self.r_squared()
        row = {
            "response": self.response,
            "fixed": " + ".join(self.fixed),
            "random": " + ".join(self.random),
            "nobs": self.nobs,
            "log_likelihood": float(self.result.llf),
            "converged": bool(getattr(self.result, "converged", True)),
            "residual_variance": float(self.result.scale),
            **{f"var_{k}": v for k, v in self.variance_components().items()},
            **r2,
        }
        return pd.DataFrame([row])

    def _design(self, name: str, values: np.ndarray) -> np.ndarray:
        if name not in self.moments:
            raise KeyError(f"'{name}' is not a fixed effect of this model: {self.fixed}")
        design = np.empty((len(values), len(self.fe_names)))
        for j, col in enumerate(self.fe_names):
            if col == INTERCEPT:
                design[:, j] = 1.0
            elif col == f"{name}_z":
                mean, sd = self.moments[name]
                design[:, j] = (values - mean) / sd
            else:
                design[:, j] = self.data[col].mean()
        return design


def _raw_name(term: str) -> str:
    return term[:-2] if term.endswith("_z") else term


def fit_mixed_model(
    df: pd.DataFrame,
    response: str,
    fixed: list[str],
    random: list[str],
    reml: bool = True,
) -> MixedModelFit:
    """
    Fit ``response ~ scale(fixed...) + (1|random...)``.

    Parameters
    ----------
    df : pd.DataFrame
        Analysis table
    response : str
        Response column (e.g. "leaf_off_doy")
    fixed : list[str]
        Fixed-effect columns, z-scored before fitting
    random : list[str]
        Grouping columns for random intercepts; more than one gives crossed
        random effects
    reml : bool
        Restricted maximum likelihood (True) or maximum likelihood

    Returns
    -------
    MixedModelFit
        Fitted model; rows with missing values are excluded
    """
    if not fixed:
        raise ValueError("At least one fixed effect is required")
    if not random:
        raise ValueError("At least one random-effect grouping column is required")
    need = [response] + list(fixed) + list(random)
    require_columns(df, need, "model")

    data = df[need].copy()
    for c in [response] + list(fixed):
        data[c] = pd.to_numeric(data[c], errors="coerce")
    data = data.replace([np.inf, -np.inf], np.nan).dropna(subset=need)
    if data[random].nunique().min() < 2:
        raise ValueError(f"Need at least two levels in each of {random} after dropping missing rows")

    data, moments = zscore_cols(data, fixed)
    data = data.reset_index(drop=True)
    formula = f"{response} ~ " + " + ".join(f"{c}_z" for c in fixed)

    if len(random) == 1:
        model = smf.mixedlm(formula, data, groups=data[random[0]].astype(str))
    else:
        data["all_rows"] = 1
        vc = {r: f"0 + C({r})" for r in random}
        model = smf.mixedlm(formula, data, groups="all_rows", re_formula="0", vc_formula=vc)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        result = model.fit(reml=reml)

    return MixedModelFit(
        result=result,
        data=data,
        response=response,
        fixed=list(fixed),
        random=list(random),
        moments=moments,
    )


def partial_residuals(fit: MixedModelFit, name: str) -> pd.DataFrame:
    """
    Partial residuals of the response against ``name``.

    Fixed-effect prediction along the observed values of ``name`` (other terms
    held at their mean) plus the conditional model residuals.
    """
    x = fit.data[name].to_numpy(dtype=float)
    resid = np.asarray(fit.result.resid, dtype=float)
    out = fit.data[fit.random].copy()
    out[name] = x
    out["partial"] = fit.fixed_prediction(name, x) + resid
    return out


def effect_curve(fit: MixedModelFit, name: str, n: int = 50, level: float = 0.95) -> pd.DataFrame:
    """
    Fixed-effect curve of ``name`` over its observed range with a CI band.

    The band uses the normal approximation on the fixed-effect covariance.
    """
    x = fit.data[name]
    grid = np.linspace(float(x.min()), float(x.max()), n)
    design = fit._design(name, grid)
    k = len(fit.fe_names)
    # fixed effects come first in the parameter vector
    cov = np.asarray(fit.result.cov_params())[:k, :k]
    fitted = design @ fit.fe_params.values
    se = np.sqrt(np.einsum("ij,jk,ik->i", design, cov, design))
    crit = stats.norm.ppf(0.5 + level / 2)
    return pd.DataFrame(
        {
            name: grid,
            "fit": fitted,
            "se": se,
            "lower": fitted - crit * se,
            "upper": fitted + crit * se,
        }
    )
