"""
Interactions: timed mini-games bound to a single landscape feature.

Each kind is its own dataclass carrying only the payload it needs, so a trace
path can never sit on a click interaction. All variants share the feature
reference, deadline, start timestamp and a progress value in [0, 1].
"""

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Tuple
import math

import numpy as np

from config import DEFAULT_CONFIG, InteractionConfig
from dataclasses_core import InteractionKind
from random_source import RandomSource


Point = Tuple[float, float]


# ==============================================================================
# BASE INTERACTION
# ==============================================================================

@dataclass
class Interaction:
    """
    Common state of a live mini-game.

    Attributes:
        feature_id: Feature the interaction targets
        time_limit: Seconds available, already scaled by speed tier
        start_time: Clock timestamp when the interaction started
        progress: Completion fraction in [0, 1]
    """

    kind: ClassVar[InteractionKind]

    feature_id: str
    time_limit: float
    start_time: float
    progress: float = 0.0

    def set_progress(self, progress: float) -> None:
        """Store progress clamped to [0, 1]."""
        if math.isnan(progress):
            progress = 0.0
        self.progress = float(np.clip(progress, 0.0, 1.0))

    def is_complete(self) -> bool:
        return self.progress >= 1.0

    def is_expired(self, now: float) -> bool:
        """Whether the deadline has passed."""
        return now - self.start_time > self.time_limit

    def time_left(self, now: float) -> float:
        return max(0.0, self.time_limit - (now - self.start_time))

    def shift(self, seconds: float) -> None:
        """Move the start timestamp forward, e.g. after a pause."""
        self.start_time += seconds


# ==============================================================================
# VARIANTS
# ==============================================================================

@dataclass
class ClickInteraction(Interaction):
    """Quick acknowledgment of the feature."""

    kind: ClassVar[InteractionKind] = InteractionKind.CLICK

    def acknowledge(self) -> None:
        self.progress = 1.0


@dataclass
class HoldInteraction(Interaction):
    """
    Press and hold until ``required_time`` has elapsed.

    Releasing before completion drops progress back to zero.
    """

    kind: ClassVar[InteractionKind] = InteractionKind.HOLD

    required_time: float = 2.0
    pressed_at: Optional[float] = None

    def press(self, now: float) -> None:
        if self.pressed_at is None:
            self.pressed_at = now

    def advance(self, now: float) -> float:
        """Recompute progress from the hold duration; returns the new progress."""
        if self.pressed_at is not None:
            self.set_progress((now - self.pressed_at) / self.required_time)
        return self.progress

    def release(self, now: float) -> None:
        self.advance(now)
        self.pressed_at = None
        if not self.is_complete():
            self.progress = 0.0

    @property
    def is_held(self) -> bool:
        return self.pressed_at is not None

    def shift(self, seconds: float) -> None:
        super().shift(seconds)
        if self.pressed_at is not None:
            self.pressed_at += seconds


@dataclass
class SequenceInteraction(Interaction):
    """Enter the target symbols in order; a wrong symbol restarts the sequence."""

    kind: ClassVar[InteractionKind] = InteractionKind.SEQUENCE

    target: Tuple[str, ...] = ()
    entered: List[str] = field(default_factory=list)

    def enter(self, symbol: str) -> bool:
        """
        Enter the next symbol.

        Returns:
            True if the symbol matched the expected one
        """
        if not self.target or self.is_complete():
            return False

        expected = self.target[len(self.entered)]
        if symbol != expected:
            self.entered.clear()
            self.progress = 0.0
            return False

        self.entered.append(symbol)
        self.set_progress(len(self.entered) / len(self.target))
        return True

    @property
    def next_symbol(self) -> Optional[str]:
        if len(self.entered) >= len(self.target):
            return None
        return self.target[len(self.entered)]


@dataclass
class TraceInteraction(Interaction):
    """
    Draw a path close to the target path.

    Progress is the similarity score; the interaction completes once
    similarity exceeds ``threshold``.
    """

    kind: ClassVar[InteractionKind] = InteractionKind.TRACE

    target_path: Tuple[Point, ...] = ()
    drawn_path: List[Point] = field(default_factory=list)
    threshold: float = 0.8
    max_distance: float = 30.0
    similarity: float = 0.0

    def start_stroke(self, x: float, y: float) -> None:
        """Begin a new stroke, discarding the previous one."""
        self.drawn_path = [(float(x), float(y))]
        self.similarity = 0.0
        self.progress = 0.0

    def add_point(self, x: float, y: float) -> float:
        """Extend the stroke; returns the updated similarity."""
        self.drawn_path.append((float(x), float(y)))
        self.similarity = self.calculate_similarity(self.drawn_path)
        self.set_progress(self.similarity)
        return self.similarity

    def calculate_similarity(self, path: List[Point]) -> float:
        """``1 - mean(nearest target distance) / max_distance``, floored at 0."""
        if len(path) < 2 or not self.target_path:
            return 0.0

        drawn = np.asarray(path, dtype=float)
        target = np.asarray(self.target_path, dtype=float)
        distances = np.linalg.norm(drawn[:, None, :] - target[None, :, :], axis=2)
        average_distance = float(distances.min(axis=1).mean())
        return max(0.0, 1.0 - average_distance / self.max_distance)

    def is_complete(self) -> bool:
        return self.similarity > self.threshold or self.progress >= 1.0


# ==============================================================================
# FACTORY
# ==============================================================================

def shuffled(items: Tuple[str, ...], rng: Optional[RandomSource]) -> Tuple[str, ...]:
    """Fisher-Yates shuffle driven by a RandomSource; identity without one."""
    result = list(items)
    if rng is None:
        return tuple(result)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return tuple(result)


def create_interaction(
    kind: InteractionKind,
    feature_id: str,
    time_limit: float,
    start_time: float,
    config: Optional[InteractionConfig] = None,
    rng: Optional[RandomSource] = None,
) -> Interaction:
    """
    Build the variant for ``kind`` with its payload filled from configuration.

    Args:
        kind: Interaction kind
        feature_id: Target feature
        time_limit: Deadline in seconds
        start_time: Clock timestamp
        config: Interaction configuration (defaults if None)
        rng: Random source used to order sequence symbols (fixed order if None)

    Returns:
        New interaction with zero progress
    """
    config = config or DEFAULT_CONFIG.interactions
    common = dict(feature_id=feature_id, time_limit=time_limit, start_time=start_time)

    if kind is InteractionKind.HOLD:
        return HoldInteraction(required_time=config.hold_required_time, **common)
    if kind is InteractionKind.SEQUENCE:
        return SequenceInteraction(target=shuffled(config.sequence_elements, rng), **common)
    if kind is InteractionKind.TRACE:
        return TraceInteraction(
            target_path=config.trace_target_path,
            threshold=config.trace_completion_threshold,
            max_distance=config.trace_max_distance,
            **common,
        )
    return ClickInteraction(**common)


# ==============================================================================
# DWELL READING
# ==============================================================================

@dataclass
class DwellReading:
    """Open-ended reading of a feature; rewarded by time spent when it stops."""
    feature_id: str
    start_time: float

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.start_time)

    def shift(self, seconds: float) -> None:
        self.start_time += seconds
