"""Touch Guard - adaptive frame gating and face touch detection."""

__version__ = "0.1.0"

from .config import AppConfig, TrackingConfig, get_config, get_config_manager
from .errors import ConfigurationError, InferenceError, TouchGuardError
from .frame import Frame
from .frame_clock import should_process
from .interfaces import AlertSink, Embedder, NullAlertSink, PreviewSink, Segmenter
from .pipeline import CycleResult, PipelineSnapshot, TouchPipeline
from .state import PipelineState, RateMode, TouchAlertState
from .touch import ScanOrder

__all__ = [
    "TouchPipeline",
    "CycleResult",
    "PipelineSnapshot",
    "PipelineState",
    "TouchAlertState",
    "RateMode",
    "ScanOrder",
    "Frame",
    "should_process",
    "Embedder",
    "Segmenter",
    "AlertSink",
    "PreviewSink",
    "NullAlertSink",
    "AppConfig",
    "TrackingConfig",
    "get_config",
    "get_config_manager",
    "TouchGuardError",
    "InferenceError",
    "ConfigurationError",
]
