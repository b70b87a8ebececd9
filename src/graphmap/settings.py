from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GraphSettings(BaseSettings):
    """Connection settings for the graph store.

    Environment variables are prefixed with GRAPHMAP_.
    """

    model_config = SettingsConfigDict(env_prefix="GRAPHMAP_", extra="ignore")

    # --- Store ---
    url: str = Field(default="http://localhost:7474", description="Store base URL")
    endpoint: str = Field(default="/db/data", description="REST root under the base URL")
    username: str | None = None
    password: str | None = None

    # --- Transport ---
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    connect_retries: int = Field(default=3, description="Attempts when the connection cannot be made")

    # --- Core ---
    log_level: str = Field(default="INFO", description="Python logging level")

    @property
    def root(self) -> str:
        return self.url.rstrip("/") + "/" + self.endpoint.strip("/")


settings = GraphSettings()
