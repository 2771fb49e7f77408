"""
Enums Module
============

This module provides enumeration types for the SoilMonitor application.
Enums ensure type safety and consistency across the codebase.
"""

from soilmonitor.enums.connection import ConnectionState
from soilmonitor.enums.plants import PlantCategory, PlantWaterStatus

__all__ = [
    "ConnectionState",
    "PlantCategory",
    "PlantWaterStatus",
]
