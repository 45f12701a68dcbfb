from typing import List, Sequence

import pytest

from dataclasses_core import (
    CompletionReason, FeatureCategory, FeatureVisual, GameResult,
    InteractionKind, LandscapeFeature, Route, TerrainType, FEATURE_PROPERTIES,
)
from serialization import InMemoryHistoryStore
from simulator import GameSimulator, SimulationClock
from random_source import NumpyRandomSource


class ScriptedRandomSource:
    """Replays a fixed list of [0, 1) draws, cycling when exhausted."""

    def __init__(self, values: Sequence[float]) -> None:
        self.values: List[float] = list(values)
        self.index = 0

    def random(self) -> float:
        value = self.values[self.index % len(self.values)]
        self.index += 1
        return value

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def randint(self, low: int, high: int) -> int:
        return min(high, low + int(self.random() * (high - low + 1)))


def make_feature(
    position: float,
    category: FeatureCategory = FeatureCategory.SACRED_SITE,
    kind: InteractionKind = InteractionKind.HOLD,
    feature_id: str = "f-0",
) -> LandscapeFeature:
    props = FEATURE_PROPERTIES[category]
    return LandscapeFeature(
        feature_id=feature_id,
        category=category,
        position=position,
        points=props.base_points,
        interaction_kind=kind,
        visual=FeatureVisual(icon=props.icon, color=props.color, size=32.0),
    )


def make_result(
    final_score: int = 500,
    is_won: bool = False,
    route_id: str = "desert-crossing",
    **overrides,
) -> GameResult:
    values = dict(
        route_id=route_id,
        route_name=route_id.replace("-", " ").title(),
        final_score=final_score,
        target_score=800,
        is_won=is_won,
        completion_reason=CompletionReason.SUCCESS if is_won else CompletionReason.TIME_UP,
        duration=300.0,
        average_speed=30.0,
        top_speed=50.0,
        features_found=10,
        features_completed=5,
        completion_rate=0.5,
        distance_covered=8.0,
        time_remaining=0.0,
        timestamp=1000.0,
    )
    values.update(overrides)
    return GameResult(**values)


@pytest.fixture
def clock():
    return SimulationClock(start=1000.0)


@pytest.fixture
def store():
    return InMemoryHistoryStore()


@pytest.fixture
def simulator(clock, store):
    return GameSimulator(store=store, clock=clock, rng=NumpyRandomSource(7))


@pytest.fixture
def short_route():
    return Route(
        route_id="test-loop",
        name="Test Loop",
        distance=0.05,
        duration=1.0,
        target_points=0,
        terrain=TerrainType.DESERT,
    )
