"""Export GitHub traffic, engagement and CI metrics to InfluxDB."""

__version__ = "0.1.0"
