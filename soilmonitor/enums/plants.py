"""
Plant-related Enumerations
==========================

Categories of the FAO reference table and the watering status a reading is
classified into.
"""

from enum import Enum


class PlantCategory(str, Enum):
    """Crop groups from FAO-56 Table 22"""

    SMALL_VEGETABLES = "small_vegetables"
    SOLANUM_FAMILY = "solanum_family"
    CUCUMBER_FAMILY = "cucumber_family"
    ROOTS_AND_TUBERS = "roots_and_tubers"
    LEGUMES = "legumes"
    PERENNIAL_VEGETABLES = "perennial_vegetables"
    CEREALS = "cereals"
    TROPICAL_FRUITS = "tropical_fruits"
    GRAPES_AND_BERRIES = "grapes_and_berries"
    FRUIT_TREES = "fruit_trees"
    HOUSEPLANTS = "houseplants"

    def __str__(self):
        return self.value


class PlantWaterStatus(str, Enum):
    """Watering status bands, ordered wettest to driest"""

    TOO_WET = "too_wet"
    OPTIMAL = "optimal"
    NEEDS_WATER_SOON = "needs_water_soon"
    NEEDS_WATER_NOW = "needs_water_now"
    STRESSED = "stressed"

    def __str__(self):
        return self.value

    @property
    def label(self) -> str:
        return _LABELS[self][0]

    @property
    def label_de(self) -> str:
        return _LABELS[self][1]

    @property
    def color_value(self) -> int:
        """ARGB color used by the dashboard gauge."""
        return _COLORS[self]


_LABELS = {
    PlantWaterStatus.TOO_WET: ("Too Wet", "Zu nass"),
    PlantWaterStatus.OPTIMAL: ("Optimal", "Optimal"),
    PlantWaterStatus.NEEDS_WATER_SOON: ("Water Soon", "Bald gießen"),
    PlantWaterStatus.NEEDS_WATER_NOW: ("Water Now!", "Jetzt gießen!"),
    PlantWaterStatus.STRESSED: ("Stressed!", "Gestresst!"),
}

_COLORS = {
    PlantWaterStatus.TOO_WET: 0xFF2196F3,  # blue
    PlantWaterStatus.OPTIMAL: 0xFF4CAF50,  # green
    PlantWaterStatus.NEEDS_WATER_SOON: 0xFFFFEB3B,  # yellow
    PlantWaterStatus.NEEDS_WATER_NOW: 0xFFFF9800,  # orange
    PlantWaterStatus.STRESSED: 0xFFF44336,  # red
}
