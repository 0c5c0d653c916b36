from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "challengr-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Challengr")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/challengr_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    notification_queue: str = os.getenv("NOTIFICATION_QUEUE", "notifications")

    # Media store (S3 / MinIO)
    s3_endpoint: str = os.getenv("S3_ENDPOINT", "http://minio:9000")
    s3_access_key: str = os.getenv("S3_ACCESS_KEY", "minioadmin")
    s3_secret_key: str = os.getenv("S3_SECRET_KEY", "minioadmin")
    s3_bucket_uploads: str = os.getenv("S3_BUCKET_UPLOADS", "challengr-proofs-dev")
    s3_public_url: str = os.getenv("S3_PUBLIC_URL", "http://localhost:9000")
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(25 * 1024 * 1024)))

    # Identity
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))

    # Fallbacks for the admin_config store
    validator_reward_points: int = int(os.getenv("VALIDATOR_REWARD_POINTS", "5"))
    default_challenge_points: int = int(os.getenv("DEFAULT_CHALLENGE_POINTS", "10"))
    leaderboard_size: int = int(os.getenv("LEADERBOARD_SIZE", "5"))

settings = Settings()
