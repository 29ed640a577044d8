"""
Shared constants for the pheno_eos pipeline.

Column names, accepted source-data aliases, gating thresholds and the
sensitivity scenarios used throughout the analysis.
"""

# Canonical column names
DAILY_KEY = ["site_id", "year", "doy"]
SITE_YEAR = ["site_id", "year"]
ANNUAL_KEY = ["site_id", "latitude", "longitude", "year"]

DAILY_COLUMNS = ["site_id", "year", "doy", "latitude", "longitude", "gpp", "rd", "daylength"]
PHENOLOGY_COLUMNS = ["site_id", "year", "leaf_on_doy"]

# Source datasets use several names for the same quantity.
COLUMN_ALIASES = {
    "sitename": "site_id",
    "timeseries": "site_id",
    "lat": "latitude",
    "lon": "longitude",
    "day_of_year": "doy",
    "gross_primary_production": "gpp",
    "respiration": "rd",
    "daylength_hours": "daylength",
    "sos_2_doy": "leaf_on_doy",
    "on": "leaf_on_doy",
    "doy_out": "leaf_on_doy",
    "leaf_on_day_of_year": "leaf_on_doy",
    "eos_2_doy": "leaf_off_doy",
    "off": "leaf_off_doy",
    "doy_off": "leaf_off_doy",
    "pep_id": "id_site",
    "autumn_anomaly": "anom_off",
    "spring_anomaly": "anom_on",
}

# Gating
DAYLENGTH_CUTOFF = 11.2
MISSING_VALUE_POLICIES = ("exclude", "propagate")
ZERO_POLICIES = ("keep", "fully_gated", "as_missing")

# Sensitivity runs for the definition of the growing season.
# doy 172 = 21 Jun, doy 266 = 23 Sep (non-leap year)
SENSITIVITY_SCENARIOS = {
    "11.2h": {"daylength_cutoff": 11.2, "doy_cutoff": None},
    "10h": {"daylength_cutoff": 10.0, "doy_cutoff": None},
    "23S": {"daylength_cutoff": 11.2, "doy_cutoff": 266},
    "21J": {"daylength_cutoff": 11.2, "doy_cutoff": 172},
}

# Maps
GRID_RESOLUTION = 0.1
MAP_EXTENT = [-180, 180, 15, 75]
EOS_LIMITS = (235, 342)
ANET_LIMITS = (650, 2550)

# Figures
DPI = 300
MM_PER_INCH = 25.4
