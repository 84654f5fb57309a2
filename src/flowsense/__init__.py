"""flowsense — real-time behavioural-state inference from wearable and editor signals."""

from flowsense.engine import InferenceEngine
from flowsense.models import (
    AnalysisResult,
    EventKind,
    FlowState,
    IntensityLevel,
    MotionConfig,
    PostureState,
)

__all__ = [
    "AnalysisResult",
    "EventKind",
    "FlowState",
    "InferenceEngine",
    "IntensityLevel",
    "MotionConfig",
    "PostureState",
]

__version__ = "0.1.0"
