"""
Fleet domain models package.
"""

from .vehicle import Vehicle
from .checklist import DailyChecklist

__all__ = [
    'Vehicle',
    'DailyChecklist',
]
