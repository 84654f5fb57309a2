"""Per-tick detectors: intensity, posture, sedentary, posture alerts, flow and heart rate."""

from flowsense.detectors.flow import FlowDetector
from flowsense.detectors.heart_rate import HeartRateAlertDetector, HeartRateBaseline
from flowsense.detectors.intensity import classify_intensity
from flowsense.detectors.posture import SustainedMotionDetector, classify_posture
from flowsense.detectors.posture_alert import PostureAlertDetector
from flowsense.detectors.sedentary import SedentaryDetector

__all__ = [
    "FlowDetector",
    "HeartRateAlertDetector",
    "HeartRateBaseline",
    "PostureAlertDetector",
    "SedentaryDetector",
    "SustainedMotionDetector",
    "classify_intensity",
    "classify_posture",
]
