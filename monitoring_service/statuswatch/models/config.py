from pydantic import BaseModel, ConfigDict, Field, field_validator

from statuswatch.config import EndpointConfig
from statuswatch.schedule import CronSchedule


class ConfigUpdate(BaseModel):
    """Partial configuration update; omitted fields keep their value."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    ping_interval: str | None = Field(default=None, alias="pingInterval")
    endpoints: list[EndpointConfig] | None = None
    log_file_path: str | None = Field(default=None, alias="logFilePath")
    data_retention_days: int | None = Field(default=None, ge=1, le=30, alias="dataRetentionDays")
    port: int | None = Field(default=None, ge=1024, le=65535)

    @field_validator("ping_interval")
    @classmethod
    def _valid_cron(cls, value: str | None) -> str | None:
        if value is not None:
            CronSchedule.parse(value)
        return value

    def changes(self) -> dict:
        """Fields the client actually sent, keyed by their JSON names."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
