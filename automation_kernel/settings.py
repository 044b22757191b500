"""Runtime settings, read from AUTOMATION_* environment variables or .env."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AutomationSettings(BaseSettings):
    """Configuration for the orchestrator, its collaborators and logging."""

    model_config = SettingsConfigDict(
        env_prefix="AUTOMATION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Collaborator timeouts; None disables the guard
    collaborator_timeout_seconds: Optional[float] = Field(default=10.0, gt=0)
    webhook_timeout_seconds: float = Field(default=10.0, gt=0)
    rule_store_timeout_seconds: Optional[float] = Field(default=5.0, gt=0)

    # 1 = rules dispatched one after another
    max_parallel_rules: int = Field(default=1, ge=1, le=32)

    escalation_role: str = "MANAGER"

    deadline_check_schedule: str = "*/15 * * * *"
    deadline_warning_days: int = Field(default=3, ge=0)
    deadline_escalation_days: int = Field(default=1, ge=0)

    log_level: str = "info"
    log_json: bool = True
    log_db_path: str = ":memory:"
