from .client import ChartMetadata, HelmClient
from .pipeline import ChartCandidate, discover_charts, run_pipeline

__all__ = [
    "ChartCandidate",
    "ChartMetadata",
    "HelmClient",
    "discover_charts",
    "run_pipeline",
]
