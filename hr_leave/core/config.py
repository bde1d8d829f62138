import os
import logging
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()


class LeavePolicySettings(BaseModel):
    """Default yearly allocations created at onboarding."""
    default_cl_days: int = Field(default=int(os.getenv("DEFAULT_CL_DAYS", "12")))
    default_sl_days: int = Field(default=int(os.getenv("DEFAULT_SL_DAYS", "6")))
    # LOP is unbounded; this number is only a sentinel stored in the balance row
    lop_sentinel_days: int = Field(default=int(os.getenv("LOP_SENTINEL_DAYS", "999")))


class Config(BaseModel):
    app_name: str = "HR Leave & Attendance Service"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # Auth (token verification only, issuance lives with the identity provider)
    secret_key: str = os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD")
    jwt_algorithm: str = os.getenv("JWT_ALGORITHM", "HS256")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Leave policy
    leave: LeavePolicySettings = LeavePolicySettings()

    # Daily attendance job
    attendance_scheduler_enabled: bool = os.getenv("ATTENDANCE_SCHEDULER_ENABLED", "true").lower() == "true"
    attendance_run_time: str = os.getenv("ATTENDANCE_RUN_TIME", "00:05")  # HH:MM, local time
    # Longest catch-up sweep accepted in one call
    attendance_backfill_max_days: int = int(os.getenv("ATTENDANCE_BACKFILL_MAX_DAYS", "62"))

    version: str = "1.0.0"
    request_id_header: str = "X-Request-ID"

    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv(
                "CORS_ORIGINS",
                "http://localhost:3000,http://localhost:5173,"
                "http://127.0.0.1:3000,http://127.0.0.1:5173",
            ).split(",")
            if o.strip()
        ]
    )


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for non-development environments. "
            "Set it as an environment variable."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("Using insecure default SECRET_KEY - only acceptable in development.")
