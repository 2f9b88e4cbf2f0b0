"""
Weft Configuration Module
"""

from weft.config.agent import AgentConfig, MissingToolsConversionStrategy
from weft.config.provider import ProviderConfig

__all__ = [
    "AgentConfig",
    "MissingToolsConversionStrategy",
    "ProviderConfig",
]
