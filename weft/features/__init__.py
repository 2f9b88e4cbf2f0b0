"""Feature pipeline and built-in features."""

from .base import AgentFeature, FeatureConfig, FeatureMessageProcessor
from .event_handler import EventHandler, EventHandlerConfig
from .messages import FeatureEvent
from .pipeline import AgentPipeline, Hook
from .tracing import TraceConsoleWriter, TraceFileWriter, TraceLogWriter, Tracing

__all__ = [
    "AgentPipeline", "Hook",
    "AgentFeature", "FeatureConfig", "FeatureMessageProcessor", "FeatureEvent",
    "EventHandler", "EventHandlerConfig",
    "Tracing", "TraceLogWriter", "TraceFileWriter", "TraceConsoleWriter",
]
