"""Configuration models for validation using Pydantic."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class CredentialsConfig(BaseModel):
    """API credentials loaded from environment variables."""

    # Supabase (required)
    supabase_url: str = Field(..., min_length=1, description="Supabase project URL")
    supabase_key: str = Field(..., min_length=1, description="Supabase service role key")
    database_url: Optional[str] = Field(None, description="PostgreSQL database URL (optional, for schema setup)")

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate Supabase URL format."""
        if not v or v == "https://your-project.supabase.co":
            raise ValueError("Supabase URL must be set in .env file")
        if not v.startswith("https://"):
            raise ValueError("Supabase URL must start with https://")
        return v.rstrip("/")

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Validate Supabase key is set."""
        if not v or v == "your_supabase_service_role_key_here":
            raise ValueError("Supabase key must be set in .env file")
        return v


class AssignmentPolicy(BaseModel):
    """Tunable rules applied when handing out review assignments."""

    # Product copy mentions two concurrent reviews while the matcher has
    # always enforced one; kept as a setting.
    max_active_assignments: int = Field(default=1, ge=1, description="Assignments in 'assigned' status a reviewer may hold")
    review_window_hours: int = Field(default=48, ge=1, description="Hours a reviewer has to finish a requested assignment")
    queue_review_window_days: int = Field(default=7, ge=1, description="Days a reviewer has to finish a bulk-assigned review")
    premium_to_free_ratio: int = Field(default=3, ge=1, description="Premium extensions assigned per free extension in bulk passes")


class NotificationConfig(BaseModel):
    """Settings for the outbound notification edge function."""

    function_name: str = Field(default="mailerlite-integration", min_length=1)
    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")


class Config(BaseModel):
    """Application configuration."""

    credentials: CredentialsConfig
    policy: AssignmentPolicy = Field(default_factory=AssignmentPolicy)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper
