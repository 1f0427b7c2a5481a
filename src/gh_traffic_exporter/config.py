"""Configuration loading and validation."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

DEFAULT_CONFIG_PATH = Path("github_exporter.json")


class Config(BaseModel):
    """Exporter configuration.

    Field aliases match the keys of the JSON configuration file. Snake case
    names are accepted as well so the model can be built directly in code.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bucket: str = Field(alias="Bucket")
    influxdb_host: str = Field(alias="InfluxDBHost")
    influxdb_api_token: str = Field(alias="InfluxDBApiToken", repr=False)
    org: str = Field(alias="Org")
    github_api_token: str = Field(alias="GithubApiToken", repr=False)
    request_timeout: float = Field(default=30.0, gt=0, alias="RequestTimeout")

    @field_validator("bucket", "influxdb_host", "influxdb_api_token", "org", "github_api_token")
    @classmethod
    def validate_required(cls, v: str, info: ValidationInfo) -> str:
        """Reject empty or whitespace-only values."""
        v = v.strip()
        if not v:
            alias = cls.model_fields[info.field_name].alias
            msg = f"{alias} is required"
            raise ValueError(msg)
        return v

    @property
    def influxdb_write_url(self) -> str:
        """InfluxDB v2 write endpoint for the configured host."""
        return f"https://{self.influxdb_host}/api/v2/write"


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration from a JSON file.

    Args:
        path: Path to the JSON configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ValidationError: If the config is malformed or a required field is missing.
    """
    if not path.exists():
        msg = f"Config file not found: {path}"
        raise FileNotFoundError(msg)

    return Config.model_validate_json(path.read_text())
