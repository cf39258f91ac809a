from typing import Optional

from pydantic import BaseModel, ValidationError, field_validator


class SettingsSchema(BaseModel):
    weight_unit: str = "lb"
    timezone: str = "UTC"
    log_level: str = "INFO"
    timer_throttle_ms: int = 100
    timer_auto_reset_daily: bool = True
    session_hours: int = 24
    upload_dir: str = "uploads"
    app_password: Optional[str | bool] = None

    @field_validator("weight_unit")
    @classmethod
    def _unit(cls, value: str) -> str:
        if value not in {"lb", "kg"}:
            raise ValueError("weight_unit must be 'lb' or 'kg'")
        return value

    @field_validator("log_level")
    @classmethod
    def _level(cls, value: str) -> str:
        if value.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("invalid log_level")
        return value

    @field_validator("timer_throttle_ms", "session_hours")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
