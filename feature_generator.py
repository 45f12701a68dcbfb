"""
FeatureGenerator: Procedural generation of landscape features along a route.

Implements the placement and classification algorithms:
- Clustered placement (2-4 features around a random centre)
- Scattered placement away from the route ends
- Terrain-weighted category draws and category-weighted interaction draws
- Lore drawn from a per-category/per-terrain pool

All randomization goes through an injectable RandomSource for reproducibility.
"""

from typing import Dict, List, Optional, Sequence, Tuple
import logging
import math
import numpy as np

from config import DEFAULT_CONFIG, GenerationConfig
from dataclasses_core import (
    LandscapeFeature, Route, FeatureVisual,
    TerrainType, FeatureCategory, InteractionKind,
    FEATURE_PROPERTIES,
)
from random_source import NumpyRandomSource, RandomSource, weighted_choice


logger = logging.getLogger(__name__)


# ==============================================================================
# WEIGHT TABLES
# ==============================================================================

TERRAIN_FEATURE_WEIGHTS: Dict[TerrainType, Dict[FeatureCategory, float]] = {
    TerrainType.DESERT: {
        FeatureCategory.SACRED_SITE: 0.3,
        FeatureCategory.ANIMAL_TRACKS: 0.25,
        FeatureCategory.PLANT_SIGNS: 0.2,
        FeatureCategory.GEOLOGICAL: 0.25,
    },
    TerrainType.GRASSLAND: {
        FeatureCategory.SACRED_SITE: 0.2,
        FeatureCategory.ANIMAL_TRACKS: 0.4,
        FeatureCategory.PLANT_SIGNS: 0.3,
        FeatureCategory.GEOLOGICAL: 0.1,
    },
    TerrainType.FOREST: {
        FeatureCategory.SACRED_SITE: 0.25,
        FeatureCategory.ANIMAL_TRACKS: 0.2,
        FeatureCategory.PLANT_SIGNS: 0.35,
        FeatureCategory.GEOLOGICAL: 0.2,
    },
}

FEATURE_INTERACTION_WEIGHTS: Dict[FeatureCategory, Dict[InteractionKind, float]] = {
    FeatureCategory.SACRED_SITE: {
        InteractionKind.CLICK: 0.1,
        InteractionKind.HOLD: 0.6,
        InteractionKind.SEQUENCE: 0.2,
        InteractionKind.TRACE: 0.1,
    },
    FeatureCategory.ANIMAL_TRACKS: {
        InteractionKind.CLICK: 0.3,
        InteractionKind.HOLD: 0.2,
        InteractionKind.SEQUENCE: 0.1,
        InteractionKind.TRACE: 0.4,
    },
    FeatureCategory.PLANT_SIGNS: {
        InteractionKind.CLICK: 0.5,
        InteractionKind.HOLD: 0.3,
        InteractionKind.SEQUENCE: 0.2,
        InteractionKind.TRACE: 0.0,
    },
    FeatureCategory.GEOLOGICAL: {
        InteractionKind.CLICK: 0.2,
        InteractionKind.HOLD: 0.4,
        InteractionKind.SEQUENCE: 0.3,
        InteractionKind.TRACE: 0.1,
    },
}


# ==============================================================================
# LORE POOL
# ==============================================================================

LORE_VARIATIONS: Dict[FeatureCategory, Dict[TerrainType, Tuple[str, ...]]] = {
    FeatureCategory.SACRED_SITE: {
        TerrainType.DESERT: (
            "Ancient ceremonial ground where generations have gathered to honor the ancestors and seek guidance.",
            "Sacred waterhole where the rainbow serpent rested, leaving marks in the red stone.",
            "Initiation site where young people learned the old laws under the desert stars.",
            "Meeting place of the seven sisters, whose songs still echo in the wind.",
        ),
        TerrainType.GRASSLAND: (
            "Corroboree ground where traditional dances celebrate the seasons.",
            "Sacred grove where the ancestral spirits watch over the grasslands.",
            "Ceremonial circle marked by arranged stones, telling the creation story.",
            "Gathering place where elders share knowledge with the next generation.",
        ),
        TerrainType.FOREST: (
            "Ancient burial ground beneath the old-growth trees.",
            "Sacred cave where the rock paintings tell of the dreamtime.",
            "Healing spring surrounded by powerful medicinal plants.",
            "Vision quest site where seekers find their spirit guides.",
        ),
    },
    FeatureCategory.ANIMAL_TRACKS: {
        TerrainType.DESERT: (
            "Fresh kangaroo tracks leading toward water, following ancient pathways.",
            "Goanna tracks crossing between rocky outcrops, marking territory.",
            "Dingo prints following the scent trails known for generations.",
            "Echidna burrows showing seasonal movement patterns.",
        ),
        TerrainType.GRASSLAND: (
            "Wallaby paths worn smooth by countless journeys to water.",
            "Emu tracks heading toward seasonal fruiting grounds.",
            "Wombat trails connecting burrows across the grassland.",
            "Bird scratches revealing rich feeding areas below.",
        ),
        TerrainType.FOREST: (
            "Possum highways through the canopy, marked on ancient trees.",
            "Deer paths winding between sacred groves and water sources.",
            "Lyrebird scrapes where courtship displays have echoed for ages.",
            "Koala scratches marking eucalyptus groves and shelter trees.",
        ),
    },
    FeatureCategory.PLANT_SIGNS: {
        TerrainType.DESERT: (
            "Desert pea blooming after rare rains, marking seasonal cycles.",
            "Sturt's pea showing the path to hidden water sources.",
            "Saltbush clusters indicating soil changes and animal paths.",
            "Ghost gum with carved symbols pointing toward sacred sites.",
        ),
        TerrainType.GRASSLAND: (
            "Kangaroo grass seeds ready for traditional bread-making.",
            "Billy buttons blooming in patterns that predict rainfall.",
            "Native millet patches showing optimal gathering seasons.",
            "Wattle trees flowering to announce initiation ceremonies.",
        ),
        TerrainType.FOREST: (
            "Bunya pine cones marking the great gathering seasons.",
            "Medicinal bark that heals both body and spirit wounds.",
            "Berry bushes fruiting in cycles known to the grandmothers.",
            "Tree ferns marking permanent water and sheltered camping.",
        ),
    },
    FeatureCategory.GEOLOGICAL: {
        TerrainType.DESERT: (
            "Rock formations shaped by the Dreamtime ancestors, holding creation stories.",
            "Ochre deposits used for ceremony and healing for thousands of years.",
            "Stone arrangements mapping the movements of celestial ancestors.",
            "Breakaway country where the earth tells stories of ancient seas.",
        ),
        TerrainType.GRASSLAND: (
            "Granite tors marking traditional boundaries and meeting points.",
            "Stone circles aligned with seasonal star movements.",
            "Clay deposits perfect for traditional pottery and art.",
            "Rocky ridges that channel water and guide animal migrations.",
        ),
        TerrainType.FOREST: (
            "Ancient lava flows creating fertile soil for sacred plants.",
            "Sandstone galleries displaying thousands of years of rock art.",
            "Quartz outcrops reflecting moonlight for nighttime ceremonies.",
            "Limestone caves providing shelter and acoustic spaces for song.",
        ),
    },
}


# ==============================================================================
# POSITION GENERATOR
# ==============================================================================

def _interval(low: float, high: float, distance: float) -> Tuple[float, float]:
    """Return ``(low, high)``, collapsing onto the route midpoint when inverted."""
    if low > high:
        midpoint = distance / 2.0
        return midpoint, midpoint
    return low, high


class PositionGenerator:
    """
    Places feature positions along a route.

    Algorithm:
    1. Reserve a fraction of the total count for clusters
    2. Emit clusters of 2-4 features spread around a random centre
    3. Scatter the rest uniformly, keeping away from the route ends
    """

    def __init__(self, config: GenerationConfig, rng: RandomSource) -> None:
        self.config = config
        self.rng = rng

    def generate(self, distance: float, total: int) -> List[float]:
        """Generate ``total`` positions within ``[0, distance]``."""
        cluster_budget = int(math.floor(total * self.config.cluster_fraction))
        positions = self._generate_clusters(distance, cluster_budget)
        positions.extend(self._generate_scattered(distance, total - len(positions)))
        return [float(np.clip(p, 0.0, distance)) for p in positions]

    def _generate_clusters(self, distance: float, budget: int) -> List[float]:
        """Generate clustered positions; budget too small for a cluster is left to scattering."""
        positions: List[float] = []
        cfg = self.config

        center_low, center_high = _interval(
            cfg.cluster_center_margin, distance - cfg.cluster_center_margin, distance
        )
        edge_low, edge_high = _interval(
            cfg.cluster_edge_margin, distance - cfg.cluster_edge_margin, distance
        )

        remaining = budget
        while remaining >= cfg.cluster_size_min:
            size = min(self.rng.randint(cfg.cluster_size_min, cfg.cluster_size_max), remaining)
            center = self.rng.uniform(center_low, center_high)
            for _ in range(size):
                offset = self.rng.uniform(-cfg.cluster_spread, cfg.cluster_spread)
                positions.append(float(np.clip(center + offset, edge_low, edge_high)))
            remaining -= size

        return positions

    def _generate_scattered(self, distance: float, count: int) -> List[float]:
        low, high = _interval(
            self.config.scatter_edge_margin,
            distance - self.config.scatter_edge_margin,
            distance,
        )
        return [self.rng.uniform(low, high) for _ in range(max(0, count))]


# ==============================================================================
# FEATURE GENERATOR (Main Orchestrator)
# ==============================================================================

class FeatureGenerator:
    """
    Orchestrates feature generation for a route.

    Produces a sorted tuple of LandscapeFeatures and returns a copy of the
    route carrying them. The procedure is deterministic for a given
    RandomSource sequence.
    """

    def __init__(
        self,
        config: Optional[GenerationConfig] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        """
        Initialize feature generator.

        Args:
            config: Generation configuration (uses defaults if None)
            rng: Random source (unseeded numpy source if None)
        """
        self.config = config or DEFAULT_CONFIG.generation
        self.rng = rng or NumpyRandomSource()
        self.positions = PositionGenerator(self.config, self.rng)

    def feature_count(self, distance: float) -> int:
        """Draw a density and turn it into a total feature count."""
        rate = self.rng.uniform(self.config.features_per_mile_min, self.config.features_per_mile_max)
        return max(self.config.min_features, int(round(distance * rate)))

    def generate_features(self, route: Route) -> List[LandscapeFeature]:
        """
        Generate features for a route.

        Returns:
            Features sorted ascending by position
        """
        total = self.feature_count(route.distance)
        positions = sorted(self.positions.generate(route.distance, total))

        features = [
            self._create_feature(f"{route.route_id}-feature-{index}", position, route.terrain)
            for index, position in enumerate(positions)
        ]
        logger.debug("Generated %d features for route %s", len(features), route.route_id)
        return features

    def generate(self, route: Route) -> Route:
        """Return a copy of ``route`` populated with freshly generated features."""
        return route.with_features(self.generate_features(route))

    def _create_feature(self, feature_id: str, position: float, terrain: TerrainType) -> LandscapeFeature:
        category = self._draw(TERRAIN_FEATURE_WEIGHTS[terrain])
        interaction_kind = self._draw(FEATURE_INTERACTION_WEIGHTS[category])
        props = FEATURE_PROPERTIES[category]

        return LandscapeFeature(
            feature_id=feature_id,
            category=category,
            position=position,
            points=props.base_points,
            interaction_kind=interaction_kind,
            visual=FeatureVisual(
                icon=props.icon,
                color=props.color,
                size=self.rng.uniform(self.config.size_min, self.config.size_max),
            ),
            lore=self._draw_lore(category, terrain),
        )

    def _draw(self, table: Dict):
        items = list(table.keys())
        weights = list(table.values())
        return weighted_choice(items, weights, self.rng)

    def _draw_lore(self, category: FeatureCategory, terrain: TerrainType) -> str:
        pool = LORE_VARIATIONS[category][terrain]
        return pool[self.rng.randint(0, len(pool) - 1)]


# ==============================================================================
# ROUTE UTILITIES
# ==============================================================================

def validate_route(route: Route) -> bool:
    """Check that a route has features, all within bounds and sorted by position."""
    if not route.features:
        return False

    if any(f.position < 0 or f.position > route.distance for f in route.features):
        return False

    positions = [f.position for f in route.features]
    return all(a <= b for a, b in zip(positions, positions[1:]))


def populate_routes(
    routes: Sequence[Route],
    rng: Optional[RandomSource] = None,
    config: Optional[GenerationConfig] = None,
) -> List[Route]:
    """Generate features for every route, sharing one random source."""
    generator = FeatureGenerator(config, rng)
    return [generator.generate(route) for route in routes]


def calculate_route_difficulty(route: Route) -> float:
    """
    Score how demanding a route is; higher is harder.

    Combines feature density, time pressure (miles per minute) and length.
    """
    feature_density = len(route.features) / route.distance
    time_pressure = route.distance / route.duration
    length_challenge = route.distance / 10.0
    return feature_density * 2 + time_pressure * 3 + length_challenge


def generate_route(route: Route, seed: Optional[int] = None) -> Route:
    """
    Quick route population with default configuration.

    Args:
        route: Catalog route
        seed: Random seed (None for a fresh layout every call)

    Returns:
        Route with generated features
    """
    return FeatureGenerator(rng=NumpyRandomSource(seed)).generate(route)
