from .feature import TraceFeatureConfig, Tracing
from .writers import TraceConsoleWriter, TraceFileWriter, TraceLogWriter, format_event

__all__ = [
    "Tracing", "TraceFeatureConfig",
    "TraceLogWriter", "TraceFileWriter", "TraceConsoleWriter", "format_event",
]
