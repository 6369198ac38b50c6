"""Trigger sources and delivery."""

from .change import ConfigChangeTrigger
from .dispatcher import TriggerDispatcher
from .schedule import Cadence, ScheduleTrigger

__all__ = ["Cadence", "ConfigChangeTrigger", "ScheduleTrigger", "TriggerDispatcher"]
