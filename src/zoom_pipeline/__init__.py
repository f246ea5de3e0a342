"""zoom-pipeline: tabular datasets from Zoom's reporting API."""

__version__ = "0.1.0"
