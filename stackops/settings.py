from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Compose project
    compose_dir: str = os.getenv("STACKOPS_COMPOSE_DIR", "/opt/n8n-production")
    compose_file: str = os.getenv("STACKOPS_COMPOSE_FILE", "docker-compose.yml")
    # Empty means auto-detect (podman-compose, docker-compose, docker compose).
    compose_command: str = os.getenv("STACKOPS_COMPOSE_COMMAND", "")
    stack_file: str | None = os.getenv("STACKOPS_STACK_FILE")

    # Container runtime
    docker_host: str | None = os.getenv("STACKOPS_DOCKER_HOST")
    runtime_timeout_s: int = _env_int("STACKOPS_RUNTIME_TIMEOUT_S", 60)
    compose_timeout_s: int = _env_int("STACKOPS_COMPOSE_TIMEOUT_S", 300)
    health_timeout_s: int = _env_int("STACKOPS_HEALTH_TIMEOUT_S", 5)
    check_workers: int = _env_int("STACKOPS_CHECK_WORKERS", 1)

    # Event log / output
    db_path: str = os.getenv("STACKOPS_DB_PATH", "stackops.db")
    no_color: bool = _env_bool("STACKOPS_NO_COLOR", False) or "NO_COLOR" in os.environ

    # Email alerting (optional)
    enable_email: bool = _env_bool("STACKOPS_ENABLE_EMAIL", False)
    smtp_host: str = os.getenv("STACKOPS_SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = _env_int("STACKOPS_SMTP_PORT", 587)
    smtp_user: str | None = os.getenv("STACKOPS_SMTP_USER")
    smtp_password: str | None = os.getenv("STACKOPS_SMTP_PASSWORD")
    email_from: str | None = os.getenv("STACKOPS_EMAIL_FROM")
    email_to: str | None = os.getenv("STACKOPS_EMAIL_TO")


settings = Settings()
