"""Runtime configuration loaded from LIVOS_* environment variables.

Precedence:
1. Built-in defaults (pydantic model defaults)
2. Environment variables (LIVOS_* prefix)
"""

import os
from pathlib import Path
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field


class DomainsConfig(BaseModel):
    """Domains used to reach the release server."""

    primary: str = Field(default="localhost", description="Primary domain of the installation")
    use_https: bool = Field(default=False, description="Whether to use HTTPS")
    api: str = Field(default="api", description="API subdomain prefix, combined as {api}.{primary}")

    @property
    def api_base_url(self) -> str:
        protocol = "https" if self.use_https else "http"
        return f"{protocol}://{self.api}.{self.primary}"


class PathsConfig(BaseModel):
    """Filesystem locations of the installation."""

    base: Path = Field(default=Path("/opt/livos"), description="Installation directory")
    data: Path = Field(default=Path("/opt/livos/data"), description="Persistent data directory")
    logs: Path = Field(default=Path("/opt/livos/logs"), description="Log directory")

    @property
    def store_file(self) -> Path:
        return self.data / "livinity.json"


class ServerConfig(BaseModel):
    """HTTP listener settings."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=12320, gt=0, lt=65536)


class Settings(BaseModel):
    """Top-level configuration of the lifecycle service."""

    version: str = Field(default="1.0.0", description="Running LivOS version")
    domains: DomainsConfig = Field(default_factory=DomainsConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    update_grace_seconds: float = Field(
        default=1.0, ge=0, description="Pause between a finished operation and the reboot"
    )
    release_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout for release server requests"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Level of the service log"
    )
    managed_services: list[str] = Field(
        default_factory=lambda: ["docker"],
        description="systemd units stopped before a reboot or poweroff",
    )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Validated Settings instance
    """
    env = os.environ if environ is None else environ

    domains: dict = {}
    if "LIVOS_DOMAIN" in env:
        domains["primary"] = env["LIVOS_DOMAIN"]
    if "LIVOS_USE_HTTPS" in env:
        domains["use_https"] = _parse_bool(env["LIVOS_USE_HTTPS"])
    if "LIVOS_API_SUBDOMAIN" in env:
        domains["api"] = env["LIVOS_API_SUBDOMAIN"]

    paths: dict = {}
    if "LIVOS_BASE_DIR" in env:
        paths["base"] = env["LIVOS_BASE_DIR"]
    if "LIVOS_DATA_DIR" in env:
        paths["data"] = env["LIVOS_DATA_DIR"]
    if "LIVOS_LOGS_DIR" in env:
        paths["logs"] = env["LIVOS_LOGS_DIR"]

    server: dict = {}
    if "LIVOS_HOST" in env:
        server["host"] = env["LIVOS_HOST"]
    if "LIVOS_PORT" in env:
        server["port"] = env["LIVOS_PORT"]

    data: dict = {"domains": domains, "paths": paths, "server": server}
    if "LIVOS_LOG_LEVEL" in env:
        data["log_level"] = env["LIVOS_LOG_LEVEL"].strip().upper()
    if "LIVOS_VERSION" in env:
        data["version"] = env["LIVOS_VERSION"]
    if "LIVOS_MANAGED_SERVICES" in env:
        data["managed_services"] = [
            unit.strip() for unit in env["LIVOS_MANAGED_SERVICES"].split(",") if unit.strip()
        ]

    return Settings(**data)
