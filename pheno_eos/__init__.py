"""
EOS ~ Anet analysis package

Aggregates simulated daily carbon assimilation into annual, phenology-gated
sums and relates them to observed autumn leaf senescence.
"""

__version__ = "0.1.0"

from . import aggregation
from . import anet
from . import analysis
from . import gridding
from . import io
from . import models
from . import utils

__all__ = [
    "aggregation",
    "anet",
    "analysis",
    "gridding",
    "io",
    "models",
    "utils",
]
