"""Engine configuration pulled from environment variables via pydantic."""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger, setup_logging
logger = get_tagged_logger(__name__, tag="consensus_config")


class Settings(BaseSettings):
    """Environment-driven tuning knobs for the consensus engine."""
    model_config = SettingsConfigDict(env_prefix="CONSENSUS_", extra="ignore")

    outlier_z_threshold: float = 2.0
    trim_fraction: float = 0.1
    precipitation_threshold_mm: float = 0.1  # measurable precipitation
    uncertainty_days_threshold: int = 5
    outlier_callout_threshold: float = 2.0
    log_level: str = "INFO"
    job_name: str = "forecast_consensus"

    @field_validator("trim_fraction", mode="after")
    @classmethod
    def check_trim_fraction(cls, v: float) -> float:
        """Reject fractions that would trim the whole sample."""
        if not 0.0 <= v < 0.5:
            raise ValueError("trim_fraction must be in [0, 0.5)")
        return v

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        """Normalize level names so 'debug' and 'DEBUG' behave the same."""
        return str(v).strip().upper()


settings = Settings()


def configure_logging(settings_obj: Settings | None = None, *, override_existing: bool = False) -> None:
    """Apply the configured log level and job name to process-wide logging."""
    settings_obj = settings_obj or settings
    setup_logging(
        level=settings_obj.log_level,
        job_name=settings_obj.job_name,
        override_existing=override_existing,
    )


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4)}")
