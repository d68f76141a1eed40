"""
Correlate package: attribute raw events to organization members.
"""

from .aggregator import Aggregator
from .models import ActivityRecord

__all__ = ["Aggregator", "ActivityRecord"]
