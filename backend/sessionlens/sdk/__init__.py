"""Recorder SDK: capture interaction events on a monitored page and ship them to the collector."""
from sessionlens.sdk.buffer import EventBuffer
from sessionlens.sdk.config import RecorderSettings
from sessionlens.sdk.delivery import DeliveryClient, DeliveryFailure, TaskBeacon
from sessionlens.sdk.dom import Element, resolve_target_label
from sessionlens.sdk.recorder import PageContext, SessionRecorder

__all__ = [
    "EventBuffer",
    "RecorderSettings",
    "DeliveryClient",
    "DeliveryFailure",
    "TaskBeacon",
    "Element",
    "resolve_target_label",
    "PageContext",
    "SessionRecorder",
]
