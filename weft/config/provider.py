"""Provider adapter configuration."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field


class ProviderConfig(BaseModel):
    """Connection settings shared by the provider adapters."""

    api_key: str | None = Field(None, description="API key; falls back to the SDK's env lookup")
    base_url: str | None = Field(None, description="Override endpoint (proxies, compatible servers)")
    max_tokens: int = Field(4096, gt=0, description="Completion token cap")
    timeout: float = Field(60.0, gt=0, description="Request timeout in seconds")

    @classmethod
    def from_env(cls, prefix: str, **overrides) -> ProviderConfig:
        prefix = prefix.upper()
        values = {
            "api_key": os.environ.get(f"{prefix}_API_KEY"),
            "base_url": os.environ.get(f"{prefix}_BASE_URL"),
        }
        values.update(overrides)
        return cls(**values)
