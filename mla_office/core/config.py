# mla_office/core/config.py

import json
import os
from functools import lru_cache
from typing import Dict, Optional

import boto3
from pydantic_settings import BaseSettings, SettingsConfigDict

from mla_office.utils.logger import get_logger

logger = get_logger(__name__)


#
# =====================================================
#  AWS SECRETS MANAGER
# =====================================================
#


@lru_cache(maxsize=32)
def cached_secret_values(secret_id: str | None, region: str | None) -> dict:
    """
    Fetch a JSON secret from AWS Secrets Manager, once per (secret_id, region).

    A blank secret id means "not configured" and yields an empty dict, so
    callers fall back to environment values.
    """
    if not secret_id or not secret_id.strip():
        return {}

    region = region or os.getenv("AWS_REGION", "ap-south-1")
    client = boto3.client("secretsmanager", region_name=region)
    payload = client.get_secret_value(SecretId=secret_id)["SecretString"]

    logger.info("Loaded secret from Secrets Manager", secret_id=secret_id, region=region)
    return json.loads(payload)


#
# =====================================================
#  SETTINGS
# =====================================================
#


class Settings(BaseSettings):
    """
    Service settings, read from the environment and an optional `.env` file.

    Database and Redis credentials may instead live in Secrets Manager
    (`DB_SECRET_ID`, `REDIS_SECRET_ID`); secret keys win over env values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    # AWS
    aws_region: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    db_secret_id: Optional[str] = None  # e.g. mla-office/staging/db
    redis_secret_id: Optional[str] = None  # e.g. mla-office/staging/redis

    # MySQL. DATABASE_URL, when set, is used as is.
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_user: str = "root"
    db_password: str = ""
    db_database: str = "mla_office"
    db_port: int = 3306

    # Redis (Celery broker and result backend)
    redis_host: str = "localhost"
    redis_port: str = "6379"
    redis_username: Optional[str] = None
    redis_password: Optional[str] = None

    # Object storage
    s3_bucket_name: Optional[str] = None
    s3_public_base_url: Optional[str] = None  # e.g. https://cdn.example.com
    export_storage_prefix: str = "exports"

    # Exports
    export_module_key: str = "back-office"
    export_list_default_limit: int = 10
    export_soft_time_limit: int = 25 * 60  # seconds, job is marked failed
    export_time_limit: int = 30 * 60  # seconds, worker process is killed

    def _with_secret(self, secret_id: Optional[str], fields: Dict[str, str]) -> Dict[str, str]:
        """Map secret keys onto settings fields, keeping env values for missing keys."""
        secret = cached_secret_values(secret_id, self.aws_region)
        return {
            field: secret.get(key) or getattr(self, field)
            for key, field in fields.items()
        }

    #
    # ---------------------------
    #  DATABASE
    # ---------------------------
    #
    @property
    def db_url(self) -> str:
        """SQLAlchemy URL for the MySQL database."""
        if self.database_url:
            return self.database_url

        db = self._with_secret(self.db_secret_id, {
            "DB_HOST": "db_host",
            "DB_USER": "db_user",
            "DB_PASSWORD": "db_password",
            "DB_DATABASE": "db_database",
            "DB_PORT": "db_port",
        })
        return (
            f"mysql+pymysql://{db['db_user']}:{db['db_password']}"
            f"@{db['db_host']}:{int(db['db_port'])}/{db['db_database']}"
        )

    #
    # ---------------------------
    #  REDIS
    # ---------------------------
    #
    @property
    def redis_url(self) -> str:
        redis = self._with_secret(self.redis_secret_id, {
            "REDIS_HOST": "redis_host",
            "REDIS_PORT": "redis_port",
            "REDIS_USERNAME": "redis_username",
            "REDIS_PASSWORD": "redis_password",
        })

        credentials = ""
        if redis["redis_password"]:
            credentials = f"{redis['redis_username'] or ''}:{redis['redis_password']}@"
        return f"redis://{credentials}{redis['redis_host']}:{redis['redis_port']}"

    @property
    def celery_broker(self) -> str:
        return f"{self.redis_url}/1"

    @property
    def celery_backend(self) -> str:
        return f"{self.redis_url}/2"


settings = Settings()
