"""canvas autorename: keep canvas image names in line with their grid cell."""

__version__ = "0.1.0"
