"""Core data classes for Route, LandscapeFeature, and GameResult entities.

This module defines the fundamental data structures for the driving game.
Routes are read-only templates, features carry the only per-tick mutable flags,
and game results are immutable history records.

No physics or scoring logic - pure data representation and static tables.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple
from uuid import uuid4


# ==============================================================================
# ENUMERATIONS & TYPE DEFINITIONS
# ==============================================================================

class TerrainType(Enum):
    """Terrain category of a route; drives feature category weights."""
    DESERT = "desert"
    GRASSLAND = "grassland"
    FOREST = "forest"


class FeatureCategory(Enum):
    """Closed set of landscape feature categories."""
    SACRED_SITE = "sacred-site"
    ANIMAL_TRACKS = "animal-tracks"
    PLANT_SIGNS = "plant-signs"
    GEOLOGICAL = "geological"


class InteractionKind(Enum):
    """Mini-game attached to a feature."""
    CLICK = "click"
    HOLD = "hold"
    SEQUENCE = "sequence"
    TRACE = "trace"


class GameStatus(Enum):
    """Session lifecycle status."""
    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self in (GameStatus.WON, GameStatus.LOST)


class CompletionReason(Enum):
    """Why a session ended."""
    SUCCESS = "success"
    TIME_UP = "time-up"
    INSUFFICIENT_POINTS = "insufficient-points"


# ==============================================================================
# SEMANTIC PROPERTIES (Immutable configurations)
# ==============================================================================

@dataclass(frozen=True)
class FeatureProperties:
    """Presentation and reward properties associated with each feature category."""
    icon: str
    base_points: int
    color: str

    def __post_init__(self) -> None:
        """Validate properties are in valid ranges."""
        assert self.base_points > 0, "base_points must be positive"


FEATURE_PROPERTIES: Dict[FeatureCategory, FeatureProperties] = {
    FeatureCategory.SACRED_SITE: FeatureProperties(icon="🗿", base_points=100, color="#8B4513"),
    FeatureCategory.ANIMAL_TRACKS: FeatureProperties(icon="🦘", base_points=60, color="#CD853F"),
    FeatureCategory.PLANT_SIGNS: FeatureProperties(icon="🌿", base_points=40, color="#228B22"),
    FeatureCategory.GEOLOGICAL: FeatureProperties(icon="🪨", base_points=80, color="#A0522D"),
}


# ==============================================================================
# LANDSCAPE FEATURE DATA CLASS
# ==============================================================================

@dataclass(frozen=True)
class FeatureVisual:
    """Render hint for a feature: icon, colour and pixel size."""
    icon: str
    color: str
    size: float


@dataclass
class LandscapeFeature:
    """
    A point of interest along a route.

    Features are created by the feature generator and stored sorted by
    position. Only two fields change during a session: ``is_active`` is
    recomputed every tick from the player's distance, and ``is_completed`` is
    set once when the attached interaction finishes and never reset.

    Attributes:
        feature_id: Unique identifier within the route
        category: Feature category
        position: Distance along the route in miles
        points: Base point value before the speed multiplier
        interaction_kind: Mini-game used to collect the points
        visual: Icon/colour/size render hint
        lore: Flavour text
        is_active: Player currently within interaction range
        is_completed: Interaction finished
    """

    feature_id: str
    category: FeatureCategory
    position: float
    points: int
    interaction_kind: InteractionKind
    visual: FeatureVisual
    lore: str = ""
    is_active: bool = False
    is_completed: bool = False

    def __post_init__(self) -> None:
        """Validate feature properties."""
        assert self.position >= 0, "Feature position cannot be negative"
        assert self.points >= 0, "Feature points cannot be negative"

    @property
    def is_available(self) -> bool:
        """Whether an interaction may be started on this feature."""
        return self.is_active and not self.is_completed

    def get_properties(self) -> FeatureProperties:
        """Get static category properties for this feature."""
        return FEATURE_PROPERTIES[self.category]


# ==============================================================================
# ROUTE DATA CLASS
# ==============================================================================

@dataclass(frozen=True)
class Route:
    """
    Fixed-length journey template.

    A route is created once per session from a catalog entry plus a freshly
    generated feature tuple and is read-only afterwards.

    Attributes:
        route_id: Catalog identifier
        name: Display name
        distance: Total distance in miles
        duration: Allotted time in minutes
        target_points: Points needed to win
        terrain: Terrain category
        description: Menu description
        features: Generated features sorted by position
    """

    route_id: str
    name: str
    distance: float
    duration: float
    target_points: int
    terrain: TerrainType
    description: str = ""
    features: Tuple[LandscapeFeature, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        """Validate route properties."""
        assert self.distance > 0, "Route distance must be positive"
        assert self.duration > 0, "Route duration must be positive"
        assert self.target_points >= 0, "Target points cannot be negative"

    @property
    def duration_seconds(self) -> float:
        return self.duration * 60.0

    def with_features(self, features) -> "Route":
        """Return a copy of this route carrying the given features."""
        return replace(self, features=tuple(features))


ROUTE_CATALOG: Tuple[Route, ...] = (
    Route(
        route_id="desert-crossing",
        name="Desert Crossing",
        distance=15.0,
        duration=6.0,
        target_points=800,
        terrain=TerrainType.DESERT,
        description="A gentle introduction across red sand country with scattered sacred sites.",
    ),
    Route(
        route_id="grassland-journey",
        name="Grassland Journey",
        distance=20.0,
        duration=8.0,
        target_points=1200,
        terrain=TerrainType.GRASSLAND,
        description="Rolling country rich with animal signs and seasonal plant indicators.",
    ),
    Route(
        route_id="mountain-passage",
        name="Mountain Passage",
        distance=25.0,
        duration=10.0,
        target_points=1600,
        terrain=TerrainType.FOREST,
        description="Challenging terrain with complex geological formations and dense feature clusters.",
    ),
)


def get_route(route_id: str) -> Optional[Route]:
    """Get catalog route by ID."""
    for route in ROUTE_CATALOG:
        if route.route_id == route_id:
            return route
    return None


# ==============================================================================
# GAME RESULT DATA CLASS
# ==============================================================================

@dataclass(frozen=True)
class GameResult:
    """
    Immutable record of one finished session.

    Attributes:
        route_id: Route played
        route_name: Route display name
        final_score: Points at the end of the session
        target_score: Points required by the route
        is_won: Whether the session was won
        completion_reason: Why the session ended
        duration: Wall-clock play time in seconds
        average_speed: Mean speed over the session (mph)
        top_speed: Highest speed reached (mph)
        features_found: Features that came into range
        features_completed: Features whose interaction finished
        completion_rate: completed / found
        distance_covered: Miles travelled
        time_remaining: Seconds left on the clock
        result_id: Unique identifier
        timestamp: Epoch seconds when the result was recorded
    """

    route_id: str
    route_name: str
    final_score: int
    target_score: int
    is_won: bool
    completion_reason: CompletionReason
    duration: float
    average_speed: float
    top_speed: float
    features_found: int
    features_completed: int
    completion_rate: float
    distance_covered: float
    time_remaining: float
    result_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: float = 0.0

    def summary(self) -> str:
        """Generate result summary for logs and the CLI."""
        outcome = "WON" if self.is_won else "LOST"
        return (f"{self.route_name}: {outcome} ({self.completion_reason.value}) - "
                f"{self.final_score}/{self.target_score} pts, "
                f"{self.distance_covered:.1f} mi, "
                f"{self.features_completed}/{self.features_found} features")
