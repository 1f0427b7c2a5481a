"""Base exception for the exporter."""


class ExporterError(Exception):
    """Base exception for failures that abort an export run."""
