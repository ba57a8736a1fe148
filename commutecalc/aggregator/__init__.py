"""
Weekly commute aggregation
"""

from .service import CommuteAggregator
from .session import CommuteSession

__all__ = ["CommuteAggregator", "CommuteSession"]
