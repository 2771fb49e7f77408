"""
Plant Water Thresholds
======================
Reference table of plant water needs based on FAO Irrigation and Drainage
Paper 56, Table 22: soil water depletion fraction for no stress (``p``).

``p`` is the fraction of total available water that can be depleted before the
plant experiences water stress. A capacitive probe reports moisture relative to
its own wet/dry endpoints, so ``p`` is turned into the sensor percentage below
which the plant needs water::

    water_needed_threshold = round((1 - p) * 100)

Source: https://www.fao.org/4/x0490e/x0490e0e.htm
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from soilmonitor.constants import (
    NEEDS_WATER_NOW_MARGIN_PERCENT,
    OPTIMAL_MARGIN_PERCENT,
    OPTIMAL_RANGE_CEILING_PERCENT,
    OPTIMAL_RANGE_SPAN_PERCENT,
    TOO_WET_PERCENT,
)
from soilmonitor.domain.calibration import round_half_away
from soilmonitor.enums.plants import PlantCategory, PlantWaterStatus

DEFAULT_PLANT_NAME = "Generic Plant"


@dataclass(frozen=True)
class PlantThreshold:
    """
    Immutable reference entry for one plant.

    Attributes:
        name: English name
        name_de: German name
        category: FAO crop group
        depletion_fraction: FAO ``p`` value (0.0 - 1.0)
        min_root_depth: Minimum rooting depth in meters
        max_root_depth: Maximum rooting depth in meters
        watering_advice: Short advice text (English)
        watering_advice_de: Short advice text (German)
    """

    name: str
    name_de: str
    category: PlantCategory
    depletion_fraction: float
    min_root_depth: float
    max_root_depth: float
    watering_advice: str
    watering_advice_de: str

    def __post_init__(self):
        if not (0.0 <= self.depletion_fraction <= 1.0):
            raise ValueError(f"Depletion fraction must be between 0 and 1, got {self.depletion_fraction}")

    @property
    def water_needed_threshold(self) -> int:
        """Sensor percentage below which the plant needs water."""
        return round_half_away((1 - self.depletion_fraction) * 100)

    @property
    def optimal_range(self) -> Tuple[int, int]:
        """(lower, upper) moisture band: lower is the stress point, upper avoids waterlogging."""
        lower = self.water_needed_threshold
        upper = min(max(lower + OPTIMAL_RANGE_SPAN_PERCENT, 0), OPTIMAL_RANGE_CEILING_PERCENT)
        return lower, upper

    def get_status(self, sensor_percent: int) -> PlantWaterStatus:
        """Classify a moisture percentage; bands are tested wettest first."""
        threshold = self.water_needed_threshold
        if sensor_percent >= TOO_WET_PERCENT:
            return PlantWaterStatus.TOO_WET
        if sensor_percent >= threshold + OPTIMAL_MARGIN_PERCENT:
            return PlantWaterStatus.OPTIMAL
        if sensor_percent >= threshold:
            return PlantWaterStatus.NEEDS_WATER_SOON
        if sensor_percent >= threshold - NEEDS_WATER_NOW_MARGIN_PERCENT:
            return PlantWaterStatus.NEEDS_WATER_NOW
        return PlantWaterStatus.STRESSED


def _plant(name, name_de, category, p, min_root, max_root, advice, advice_de) -> PlantThreshold:
    return PlantThreshold(name, name_de, category, p, min_root, max_root, advice, advice_de)


_C = PlantCategory

PLANTS: Tuple[PlantThreshold, ...] = (
    # Small vegetables
    _plant("Broccoli", "Brokkoli", _C.SMALL_VEGETABLES, 0.45, 0.4, 0.6,
           "Keep soil consistently moist", "Boden gleichmäßig feucht halten"),
    _plant("Cabbage", "Kohl", _C.SMALL_VEGETABLES, 0.45, 0.5, 0.8,
           "Regular watering, avoid drought", "Regelmäßig gießen, Trockenheit vermeiden"),
    _plant("Carrots", "Karotten", _C.SMALL_VEGETABLES, 0.35, 0.5, 1.0,
           "Sensitive to drought - water frequently", "Trockenheitsempfindlich - häufig gießen"),
    _plant("Celery", "Sellerie", _C.SMALL_VEGETABLES, 0.20, 0.3, 0.5,
           "Very sensitive! Keep always moist", "Sehr empfindlich! Immer feucht halten"),
    _plant("Garlic", "Knoblauch", _C.SMALL_VEGETABLES, 0.30, 0.3, 0.5,
           "Moderate watering, well-drained soil", "Mäßig gießen, durchlässiger Boden"),
    _plant("Lettuce", "Salat", _C.SMALL_VEGETABLES, 0.30, 0.3, 0.5,
           "Keep moist, shallow roots dry quickly", "Feucht halten, flache Wurzeln trocknen schnell"),
    _plant("Onions", "Zwiebeln", _C.SMALL_VEGETABLES, 0.30, 0.3, 0.6,
           "Regular watering during growth", "Regelmäßig gießen während des Wachstums"),
    _plant("Spinach", "Spinat", _C.SMALL_VEGETABLES, 0.20, 0.3, 0.5,
           "Very sensitive to drought!", "Sehr trockenheitsempfindlich!"),
    _plant("Radishes", "Radieschen", _C.SMALL_VEGETABLES, 0.30, 0.3, 0.5,
           "Keep evenly moist for best flavor", "Gleichmäßig feucht für besten Geschmack"),
    # Solanum family
    _plant("Tomato", "Tomate", _C.SOLANUM_FAMILY, 0.40, 0.7, 1.5,
           "Deep watering, consistent moisture", "Tief gießen, gleichmäßige Feuchtigkeit"),
    _plant("Eggplant", "Aubergine", _C.SOLANUM_FAMILY, 0.45, 0.7, 1.2,
           "Regular deep watering", "Regelmäßig tief gießen"),
    _plant("Bell Pepper", "Paprika", _C.SOLANUM_FAMILY, 0.30, 0.5, 1.0,
           "Sensitive - keep consistently moist", "Empfindlich - gleichmäßig feucht halten"),
    _plant("Chili Pepper", "Chili", _C.SOLANUM_FAMILY, 0.30, 0.5, 1.0,
           "Regular watering, avoid waterlogging", "Regelmäßig gießen, Staunässe vermeiden"),
    # Cucumber family
    _plant("Cucumber", "Gurke", _C.CUCUMBER_FAMILY, 0.50, 0.7, 1.2,
           "Tolerant, but likes consistent moisture", "Tolerant, mag aber gleichmäßige Feuchtigkeit"),
    _plant("Pumpkin", "Kürbis", _C.CUCUMBER_FAMILY, 0.35, 1.0, 1.5,
           "Deep roots but needs regular water", "Tiefe Wurzeln, braucht regelmäßig Wasser"),
    _plant("Zucchini", "Zucchini", _C.CUCUMBER_FAMILY, 0.50, 0.6, 1.0,
           "Moderate water needs", "Mäßiger Wasserbedarf"),
    _plant("Watermelon", "Wassermelone", _C.CUCUMBER_FAMILY, 0.40, 0.8, 1.5,
           "Deep watering, especially during fruiting", "Tief gießen, besonders während der Fruchtbildung"),
    # Roots and tubers
    _plant("Potato", "Kartoffel", _C.ROOTS_AND_TUBERS, 0.35, 0.4, 0.6,
           "Consistent moisture for best yield", "Gleichmäßige Feuchtigkeit für beste Ernte"),
    _plant("Sweet Potato", "Süßkartoffel", _C.ROOTS_AND_TUBERS, 0.65, 1.0, 1.5,
           "Drought tolerant once established", "Trockenheitstolerant wenn etabliert"),
    _plant("Beets", "Rote Bete", _C.ROOTS_AND_TUBERS, 0.50, 0.6, 1.0,
           "Moderate watering", "Mäßig gießen"),
    # Legumes
    _plant("Green Beans", "Grüne Bohnen", _C.LEGUMES, 0.45, 0.5, 0.7,
           "Regular watering during flowering", "Regelmäßig gießen während der Blüte"),
    _plant("Peas", "Erbsen", _C.LEGUMES, 0.35, 0.6, 1.0,
           "Sensitive during flowering", "Empfindlich während der Blüte"),
    _plant("Soybeans", "Sojabohnen", _C.LEGUMES, 0.50, 0.6, 1.3,
           "Moderate water needs", "Mäßiger Wasserbedarf"),
    # Perennial vegetables
    _plant("Strawberries", "Erdbeeren", _C.PERENNIAL_VEGETABLES, 0.20, 0.2, 0.3,
           "Very sensitive! Shallow roots need frequent water",
           "Sehr empfindlich! Flache Wurzeln brauchen häufig Wasser"),
    _plant("Asparagus", "Spargel", _C.PERENNIAL_VEGETABLES, 0.45, 1.2, 1.8,
           "Deep roots, moderate water needs", "Tiefe Wurzeln, mäßiger Wasserbedarf"),
    # Cereals
    _plant("Corn/Maize", "Mais", _C.CEREALS, 0.55, 1.0, 1.7,
           "Critical during tasseling and silking", "Kritisch während der Blüte"),
    _plant("Wheat", "Weizen", _C.CEREALS, 0.55, 1.0, 1.5,
           "Moderate tolerance", "Mäßige Toleranz"),
    _plant("Rice", "Reis", _C.CEREALS, 0.20, 0.5, 1.0,
           "Needs flooded/very wet conditions", "Braucht überflutete/sehr nasse Bedingungen"),
    # Tropical fruits
    _plant("Banana", "Banane", _C.TROPICAL_FRUITS, 0.35, 0.5, 0.9,
           "Loves water! Keep consistently moist", "Liebt Wasser! Gleichmäßig feucht halten"),
    _plant("Coffee", "Kaffee", _C.TROPICAL_FRUITS, 0.40, 0.9, 1.5,
           "Regular watering, good drainage", "Regelmäßig gießen, gute Drainage"),
    _plant("Pineapple", "Ananas", _C.TROPICAL_FRUITS, 0.50, 0.3, 0.6,
           "Moderate, avoid waterlogging", "Mäßig, Staunässe vermeiden"),
    # Grapes and berries
    _plant("Grapes (Wine)", "Weintrauben", _C.GRAPES_AND_BERRIES, 0.45, 1.0, 2.0,
           "Deep roots, moderate stress can improve quality",
           "Tiefe Wurzeln, mäßiger Stress kann Qualität verbessern"),
    _plant("Berries (Bushes)", "Beeren (Büsche)", _C.GRAPES_AND_BERRIES, 0.50, 0.6, 1.2,
           "Regular watering during fruiting", "Regelmäßig gießen während der Fruchtbildung"),
    # Fruit trees
    _plant("Apple", "Apfel", _C.FRUIT_TREES, 0.50, 1.0, 2.0,
           "Deep watering, especially when fruiting", "Tief gießen, besonders bei Fruchtbildung"),
    _plant("Citrus", "Zitrus", _C.FRUIT_TREES, 0.50, 1.1, 1.5,
           "Regular deep watering", "Regelmäßig tief gießen"),
    _plant("Avocado", "Avocado", _C.FRUIT_TREES, 0.70, 0.5, 1.0,
           "Drought tolerant, avoid overwatering!", "Trockenheitstolerant, nicht übergießen!"),
    _plant("Olive", "Olive", _C.FRUIT_TREES, 0.65, 1.2, 1.7,
           "Very drought tolerant", "Sehr trockenheitstolerant"),
    # Common houseplants (estimated from similar crops)
    _plant("Basil", "Basilikum", _C.HOUSEPLANTS, 0.30, 0.2, 0.4,
           "Keep moist but not waterlogged", "Feucht halten, aber keine Staunässe"),
    _plant("Mint", "Minze", _C.HOUSEPLANTS, 0.40, 0.4, 0.8,
           "Likes moisture, hard to overwater", "Mag Feuchtigkeit, schwer zu übergießen"),
    _plant("Rosemary", "Rosmarin", _C.HOUSEPLANTS, 0.60, 0.3, 0.6,
           "Drought tolerant, let dry between watering", "Trockenheitstolerant, zwischen Gießen trocknen lassen"),
    _plant("Lavender", "Lavendel", _C.HOUSEPLANTS, 0.65, 0.3, 0.5,
           "Very drought tolerant, avoid overwatering", "Sehr trockenheitstolerant, nicht übergießen"),
    _plant("Ficus", "Ficus", _C.HOUSEPLANTS, 0.50, 0.3, 0.8,
           "Let top soil dry between watering", "Obere Erde zwischen Gießen trocknen lassen"),
    _plant("Peace Lily", "Einblatt", _C.HOUSEPLANTS, 0.35, 0.2, 0.4,
           "Likes moisture, will droop when thirsty", "Mag Feuchtigkeit, hängt wenn durstig"),
    _plant("Snake Plant", "Bogenhanf", _C.HOUSEPLANTS, 0.75, 0.2, 0.4,
           "Very drought tolerant! Let dry completely", "Sehr trockenheitstolerant! Komplett trocknen lassen"),
    _plant("Pothos", "Efeutute", _C.HOUSEPLANTS, 0.50, 0.2, 0.4,
           "Let top inch dry between watering", "Obere Schicht zwischen Gießen trocknen lassen"),
    _plant("Monstera", "Monstera", _C.HOUSEPLANTS, 0.45, 0.3, 0.6,
           "Moderate watering, good drainage", "Mäßig gießen, gute Drainage"),
    _plant("Succulent/Cactus", "Sukkulente/Kaktus", _C.HOUSEPLANTS, 0.80, 0.1, 0.3,
           "Minimal water! Let dry completely", "Minimal gießen! Komplett trocknen lassen"),
    # Fallback profile
    _plant(DEFAULT_PLANT_NAME, "Allgemeine Pflanze", _C.HOUSEPLANTS, 0.50, 0.3, 0.6,
           "Water when top soil feels dry", "Gießen wenn obere Erde sich trocken anfühlt"),
)

_BY_NAME = {plant.name: plant for plant in PLANTS}


def default_plant() -> PlantThreshold:
    return _BY_NAME[DEFAULT_PLANT_NAME]


def get_plant(name: str | None) -> PlantThreshold:
    """Return the plant with this name (case-insensitive), or the default profile."""
    if not name:
        return default_plant()
    plant = _BY_NAME.get(name)
    if plant is None:
        wanted = name.strip().lower()
        plant = next((p for p in PLANTS if p.name.lower() == wanted), None)
    return plant or default_plant()


def sorted_by_name() -> List[PlantThreshold]:
    return sorted(PLANTS, key=lambda plant: plant.name)


def get_by_category(category: PlantCategory) -> List[PlantThreshold]:
    return [plant for plant in PLANTS if plant.category == category]


def search(query: str) -> List[PlantThreshold]:
    """Case-insensitive substring search over the English and German names."""
    needle = query.lower()
    return [plant for plant in PLANTS if needle in plant.name.lower() or needle in plant.name_de.lower()]
