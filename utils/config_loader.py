"""Configuration loader that reads from .env and validates with Pydantic."""

import os
import sys
from pathlib import Path
from dotenv import load_dotenv
from pydantic import ValidationError

from models.config_models import AssignmentPolicy, Config, CredentialsConfig, NotificationConfig


def _env_override(name: str) -> dict:
    """Return {name: value} for a set, non-empty env var so model defaults apply otherwise."""
    value = os.getenv(name.upper())
    return {name: value} if value else {}


def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Reads from .env file in the project root and validates all required
    credentials and settings using Pydantic models.

    Returns:
        Config: Validated configuration object

    Raises:
        SystemExit: If configuration is invalid or missing required fields
    """
    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    try:
        policy_values = {}
        for field in ("max_active_assignments", "review_window_hours",
                      "queue_review_window_days", "premium_to_free_ratio"):
            policy_values.update(_env_override(field))

        notification_values = {}
        if os.getenv("NOTIFICATION_FUNCTION"):
            notification_values["function_name"] = os.getenv("NOTIFICATION_FUNCTION")
        if os.getenv("NOTIFICATION_TIMEOUT"):
            notification_values["timeout"] = os.getenv("NOTIFICATION_TIMEOUT")

        config = Config(
            credentials=CredentialsConfig(
                supabase_url=os.getenv("SUPABASE_URL", ""),
                supabase_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_KEY", ""),
                database_url=os.getenv("DATABASE_URL"),
            ),
            policy=AssignmentPolicy(**policy_values),
            notifications=NotificationConfig(**notification_values),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

        return config

    except ValidationError as e:
        print("❌ Configuration validation failed:", file=sys.stderr)
        print("\nPlease check your .env file. Missing or invalid fields:", file=sys.stderr)

        for error in e.errors():
            field_path = " → ".join(str(x) for x in error["loc"])
            message = error["msg"]
            print(f"  • {field_path}: {message}", file=sys.stderr)

        print("\nHint: Copy .env.example to .env and fill in your credentials.", file=sys.stderr)
        sys.exit(1)
