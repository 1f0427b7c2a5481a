"""InfluxDB line protocol and write client."""

from gh_traffic_exporter.influx.lineprotocol import (
    TAG_VALUE_LIMIT,
    CollectionBuffer,
    MetricSample,
    escape_tag_value,
    unescape_tag_value,
)
from gh_traffic_exporter.influx.writer import InfluxWriter, NoDataError, PublishError

__all__ = [
    "TAG_VALUE_LIMIT",
    "CollectionBuffer",
    "InfluxWriter",
    "MetricSample",
    "NoDataError",
    "PublishError",
    "escape_tag_value",
    "unescape_tag_value",
]
