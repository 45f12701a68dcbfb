"""
Simulator: Session state machine for the driving game.

Owns the one live session (route, clock, position/speed, features, active
interaction) behind a narrow command API. Driven by an external tick
scheduler; renderers read immutable snapshots.

States: menu -> playing <-> paused; playing -> won | lost; any -> menu (reset).
"""

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Set, Tuple
import copy
import logging
import math
import time

from config import DEFAULT_CONFIG, GameConfig, ViewportConfig
from dataclasses_core import (
    CompletionReason, GameResult, GameStatus, LandscapeFeature, Route,
)
from feature_generator import FeatureGenerator
from interactions import (
    ClickInteraction, DwellReading, HoldInteraction, Interaction,
    SequenceInteraction, TraceInteraction, create_interaction,
)
from physics_model import (
    SECONDS_PER_HOUR, calculate_progress, is_feature_in_range,
    update_position, update_speed,
)
from random_source import NumpyRandomSource, RandomSource
from scoring import (
    calculate_dwell_points, calculate_feature_points,
    calculate_interaction_time_limit, get_speed_tier,
)
from serialization import HistoryStore


logger = logging.getLogger(__name__)


# ==============================================================================
# CLOCKS
# ==============================================================================

class SimulationClock:
    """Manually advanced clock for headless drivers and tests."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += max(0.0, float(seconds))
        return self.now


# ==============================================================================
# VIEWPORT
# ==============================================================================

@dataclass(frozen=True)
class Viewport:
    """
    Visible window over the landscape strip.

    Attributes:
        center_x: Landscape pixel under the vehicle
        center_y: Vertical centre of the game area
        width: Game area width in pixels
        height: Game area height in pixels
        scale: Pixels per mile for the current route
    """
    center_x: float
    center_y: float
    width: float
    height: float
    scale: float

    def visible_range(self, render_distance: float) -> Tuple[float, float]:
        """(start, end) in miles of the culling window around the vehicle."""
        half = render_distance / self.scale
        return (self.center_x / self.scale - half, self.center_x / self.scale + half)


def compute_viewport(position: float, route_distance: float, config: ViewportConfig) -> Viewport:
    scale = config.landscape_width / route_distance
    return Viewport(
        center_x=position * scale,
        center_y=config.game_height / 2.0,
        width=float(config.game_width),
        height=float(config.game_height),
        scale=scale,
    )


def visible_features(
    features: List[LandscapeFeature],
    viewport: Viewport,
    render_distance: float,
) -> List[LandscapeFeature]:
    """Filter features to those inside the render window (input order kept)."""
    start, end = viewport.visible_range(render_distance)
    return [f for f in features if start <= f.position <= end]


# ==============================================================================
# WIN / LOSS RULES
# ==============================================================================

def is_game_won(points: float, target_points: float, position: float, route_distance: float) -> bool:
    return points >= target_points and position >= route_distance


def is_game_lost(
    time_remaining: float,
    points: float,
    target_points: float,
    position: float,
    route_distance: float,
) -> bool:
    """Time is up and the win condition does not hold; finishing exactly at zero still wins."""
    if time_remaining > 0:
        return False
    return not is_game_won(points, target_points, position, route_distance)


# ==============================================================================
# SESSION STATE
# ==============================================================================

@dataclass
class SessionState:
    """Mutable root of one playthrough. Owned exclusively by GameSimulator."""
    route: Route
    features: List[LandscapeFeature]
    target_points: int
    start_time: float
    viewport: Viewport
    status: GameStatus = GameStatus.PLAYING
    time: float = 0.0
    position: float = 0.0
    speed: float = 0.0
    points: int = 0
    interaction: Optional[Interaction] = None
    reading: Optional[DwellReading] = None
    top_speed: float = 0.0
    found_ids: Set[str] = field(default_factory=set)
    paused_at: Optional[float] = None
    result: Optional[GameResult] = None


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only view handed to renderers and HUDs."""
    status: GameStatus
    time: float = 0.0
    position: float = 0.0
    speed: float = 0.0
    points: int = 0
    target_points: int = 0
    time_remaining: float = 0.0
    progress: float = 0.0
    speed_tier: str = ""
    route: Optional[Route] = None
    features: Tuple[LandscapeFeature, ...] = ()
    visible_features: Tuple[LandscapeFeature, ...] = ()
    interaction: Optional[Interaction] = None
    reading: Optional[DwellReading] = None
    viewport: Optional[Viewport] = None
    result: Optional[GameResult] = None


# ==============================================================================
# SIMULATOR
# ==============================================================================

class GameSimulator:
    """
    Session state machine.

    Composes the feature generator, physics integrator, interaction
    subsystem and scoring model. Commands issued in a status that does not
    allow them are ignored.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        store: Optional[HistoryStore] = None,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[RandomSource] = None,
    ) -> None:
        """
        Initialize simulator.

        Args:
            config: Engine configuration (defaults if None)
            store: History store receiving each finished session (none if None)
            clock: Timestamp source in seconds (``time.time`` if None)
            rng: Random source for generation and sequence order
        """
        self.config = config or DEFAULT_CONFIG
        self.store = store
        self.clock = clock or time.time
        self.rng = rng or NumpyRandomSource()
        self.generator = FeatureGenerator(self.config.generation, self.rng)
        self.session: Optional[SessionState] = None

        self.on_game_end_callbacks: List[Callable[[GameResult], None]] = []

    # ========================================================================
    # CALLBACK REGISTRATION
    # ========================================================================

    def register_game_end_callback(self, callback: Callable[[GameResult], None]) -> None:
        """Register callback when a session ends."""
        self.on_game_end_callbacks.append(callback)

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    @property
    def status(self) -> GameStatus:
        return self.session.status if self.session else GameStatus.MENU

    def initialize_game(self, route: Route) -> Optional[SessionState]:
        """
        Start a session on ``route`` with a fresh feature set.

        Only valid from the menu.
        """
        if self.session is not None:
            logger.debug("initialize_game ignored in status %s", self.status.value)
            return None

        populated = self.generator.generate(route)
        features = list(populated.features)
        now = self.clock()

        self.session = SessionState(
            route=populated,
            features=features,
            target_points=populated.target_points,
            start_time=now,
            viewport=compute_viewport(0.0, populated.distance, self.config.viewport),
        )
        logger.info("Session started on %s with %d features", populated.route_id, len(features))
        return self.session

    def reset_game(self) -> None:
        """Return to the menu, discarding the session."""
        if self.session is not None:
            logger.debug("Session on %s discarded", self.session.route.route_id)
        self.session = None

    def pause_game(self) -> None:
        s = self.session
        if s is None or s.status is not GameStatus.PLAYING:
            return
        s.status = GameStatus.PAUSED
        s.paused_at = self.clock()

    def resume_game(self) -> None:
        """Resume play; the paused span is not charged to the time budget."""
        s = self.session
        if s is None or s.status is not GameStatus.PAUSED:
            return
        now = self.clock()
        paused_at = s.paused_at if s.paused_at is not None else now
        paused_for = max(0.0, now - paused_at)
        s.start_time += paused_for
        if s.interaction is not None:
            s.interaction.shift(paused_for)
        if s.reading is not None:
            s.reading.shift(paused_for)
        s.paused_at = None
        s.status = GameStatus.PLAYING

    # ========================================================================
    # SIMULATION STEP
    # ========================================================================

    def update_game(self, delta_time: float, is_accelerating: bool) -> None:
        """
        Advance the session by one tick.

        Args:
            delta_time: Tick duration in seconds (drivers clamp it)
            is_accelerating: Accelerate signal
        """
        s = self.session
        if s is None or s.status is not GameStatus.PLAYING:
            return

        dt = max(0.0, float(delta_time))
        now = self.clock()

        # (a) physics
        s.speed = update_speed(s.speed, is_accelerating, dt, self.config.physics)
        s.position = update_position(s.position, s.speed, dt)
        s.time += dt
        s.top_speed = max(s.top_speed, s.speed)
        s.viewport = compute_viewport(s.position, s.route.distance, self.config.viewport)

        # (b) range checks
        self._update_feature_ranges(s)

        # (c) interaction deadline and range
        self._update_live_interaction(s, now)
        self._update_reading(s, now)

        # (d) clock
        time_remaining = self._time_remaining(s, now)

        # (e) win / loss
        if is_game_won(s.points, s.target_points, s.position, s.route.distance):
            self.end_game(CompletionReason.SUCCESS)
        elif is_game_lost(time_remaining, s.points, s.target_points, s.position, s.route.distance):
            if s.position >= s.route.distance:
                self.end_game(CompletionReason.INSUFFICIENT_POINTS)
            else:
                self.end_game(CompletionReason.TIME_UP)

    def _update_feature_ranges(self, s: SessionState) -> None:
        for feature in s.features:
            in_range = not feature.is_completed and is_feature_in_range(
                feature.position, s.position, s.route.distance, self.config.viewport
            )
            if in_range and feature.feature_id not in s.found_ids:
                s.found_ids.add(feature.feature_id)
                logger.debug("Feature %s found at %.2f mi", feature.feature_id, feature.position)
            feature.is_active = in_range

    def _update_live_interaction(self, s: SessionState, now: float) -> None:
        interaction = s.interaction
        if interaction is None:
            return

        if interaction.is_expired(now):
            logger.debug("Interaction on %s timed out", interaction.feature_id)
            s.interaction = None
            return

        feature = self._find_feature(interaction.feature_id)
        if feature is None or not feature.is_available:
            logger.debug("Interaction on %s dropped, feature out of range", interaction.feature_id)
            s.interaction = None
            return

        if isinstance(interaction, HoldInteraction) and interaction.is_held:
            interaction.advance(now)
            if interaction.is_complete():
                self.complete_interaction()

    def _update_reading(self, s: SessionState, now: float) -> None:
        if s.reading is None:
            return
        feature = self._find_feature(s.reading.feature_id)
        if feature is None or not feature.is_active:
            self.stop_reading()

    def _time_remaining(self, s: SessionState, now: float) -> float:
        return max(0.0, s.route.duration_seconds - (now - s.start_time))

    # ========================================================================
    # INTERACTIONS
    # ========================================================================

    def _find_feature(self, feature_id: str) -> Optional[LandscapeFeature]:
        if self.session is None:
            return None
        for feature in self.session.features:
            if feature.feature_id == feature_id:
                return feature
        return None

    def _playing(self) -> Optional[SessionState]:
        s = self.session
        if s is None or s.status is not GameStatus.PLAYING:
            return None
        return s

    def start_interaction(self, feature_id: str) -> Optional[Interaction]:
        """
        Start the mini-game attached to an in-range, uncompleted feature.

        The deadline is the kind's base time compressed by the current speed
        tier. Ignored while another interaction or a reading is live.
        """
        s = self._playing()
        if s is None or s.interaction is not None or s.reading is not None:
            logger.debug("start_interaction(%s) ignored", feature_id)
            return None

        feature = self._find_feature(feature_id)
        if feature is None or not feature.is_available:
            logger.debug("start_interaction(%s) ignored, feature unavailable", feature_id)
            return None

        kind = feature.interaction_kind
        base_time = self.config.interactions.base_times.get(kind.value, 0.0)
        time_limit = calculate_interaction_time_limit(base_time, s.speed, self.config.speed_tiers)
        s.interaction = create_interaction(
            kind, feature_id, time_limit, self.clock(), self.config.interactions, self.rng
        )
        return s.interaction

    def update_interaction(self, progress: float) -> None:
        s = self._playing()
        if s is None or s.interaction is None:
            return
        s.interaction.set_progress(progress)

    def complete_interaction(self) -> int:
        """
        Award the live interaction's feature.

        Returns:
            Points awarded (0 when there was nothing to complete)
        """
        s = self._playing()
        if s is None or s.interaction is None:
            return 0

        feature = self._find_feature(s.interaction.feature_id)
        if feature is None:
            return 0

        awarded = calculate_feature_points(feature.points, s.speed, self.config.speed_tiers)
        feature.is_completed = True
        feature.is_active = False
        s.points += awarded
        s.interaction = None
        logger.debug("Feature %s completed for %d points", feature.feature_id, awarded)
        return awarded

    def cancel_interaction(self) -> None:
        if self.session is not None:
            self.session.interaction = None

    # Gesture input, forwarded to the live variant

    def acknowledge(self) -> int:
        s = self._playing()
        if s is None or not isinstance(s.interaction, ClickInteraction):
            return 0
        s.interaction.acknowledge()
        return self.complete_interaction()

    def press_hold(self) -> None:
        s = self._playing()
        if s is not None and isinstance(s.interaction, HoldInteraction):
            s.interaction.press(self.clock())

    def release_hold(self) -> int:
        s = self._playing()
        if s is None or not isinstance(s.interaction, HoldInteraction):
            return 0
        s.interaction.release(self.clock())
        if s.interaction.is_complete():
            return self.complete_interaction()
        return 0

    def enter_symbol(self, symbol: str) -> bool:
        """Feed one symbol to a sequence interaction; returns whether it matched."""
        s = self._playing()
        if s is None or not isinstance(s.interaction, SequenceInteraction):
            return False
        matched = s.interaction.enter(symbol)
        if s.interaction.is_complete():
            self.complete_interaction()
        return matched

    def start_trace(self, x: float, y: float) -> None:
        s = self._playing()
        if s is not None and isinstance(s.interaction, TraceInteraction):
            s.interaction.start_stroke(x, y)

    def add_trace_point(self, x: float, y: float) -> float:
        """Extend the trace stroke; returns the similarity so far."""
        s = self._playing()
        if s is None or not isinstance(s.interaction, TraceInteraction):
            return 0.0
        similarity = s.interaction.add_point(x, y)
        if s.interaction.is_complete():
            self.complete_interaction()
        return similarity

    # ========================================================================
    # DWELL READING
    # ========================================================================

    def start_reading(self, feature_id: str) -> Optional[DwellReading]:
        s = self._playing()
        if s is None or s.reading is not None or s.interaction is not None:
            return None
        feature = self._find_feature(feature_id)
        if feature is None or not feature.is_available:
            return None
        s.reading = DwellReading(feature_id=feature_id, start_time=self.clock())
        return s.reading

    def stop_reading(self) -> int:
        """
        Stop reading and credit the dwell points.

        Returns:
            Points awarded
        """
        s = self.session
        if s is None or s.reading is None or s.status.is_terminal:
            return 0
        now = s.paused_at if s.paused_at is not None else self.clock()
        dwell = s.reading.elapsed(now)
        awarded = calculate_dwell_points(dwell, s.speed, self.config.scoring, self.config.speed_tiers)
        s.points += awarded
        s.reading = None
        logger.debug("Reading stopped after %.2fs for %d points", dwell, awarded)
        return awarded

    # ========================================================================
    # GAME END
    # ========================================================================

    def end_game(self, reason: CompletionReason) -> Optional[GameResult]:
        """
        Finish the session and hand the result to the history store once.

        A failing store is logged; the terminal status and score stand.
        """
        s = self.session
        if s is None or s.status.is_terminal:
            return None

        now = self.clock()
        played_until = s.paused_at if s.paused_at is not None else now
        if s.reading is not None:
            self.stop_reading()

        s.interaction = None
        s.status = GameStatus.WON if reason is CompletionReason.SUCCESS else GameStatus.LOST
        s.result = self._build_result(s, reason, played_until, now)
        logger.info("Session ended: %s", s.result.summary())

        self._persist(s.result)

        for callback in self.on_game_end_callbacks:
            callback(s.result)

        return s.result

    def _build_result(
        self, s: SessionState, reason: CompletionReason, played_until: float, timestamp: float
    ) -> GameResult:
        found = len(s.found_ids)
        completed = sum(1 for f in s.features if f.is_completed)
        average_speed = (s.position / s.time) * SECONDS_PER_HOUR if s.time > 0 else 0.0

        return GameResult(
            route_id=s.route.route_id,
            route_name=s.route.name,
            final_score=s.points,
            target_score=s.target_points,
            is_won=reason is CompletionReason.SUCCESS,
            completion_reason=reason,
            duration=max(0.0, played_until - s.start_time),
            average_speed=average_speed,
            top_speed=s.top_speed,
            features_found=found,
            features_completed=completed,
            completion_rate=completed / found if found else 0.0,
            distance_covered=min(s.position, s.route.distance),
            time_remaining=self._time_remaining(s, played_until),
            timestamp=timestamp,
        )

    def _persist(self, result: GameResult) -> bool:
        if self.store is None:
            return False
        try:
            saved = self.store.save(result)
        except Exception as exc:
            logger.warning("Could not save game result %s: %s", result.result_id, exc)
            return False
        if not saved:
            logger.warning("History store rejected game result %s", result.result_id)
        return saved

    # ========================================================================
    # STATE & INFO
    # ========================================================================

    def time_remaining(self) -> float:
        s = self.session
        if s is None:
            return 0.0
        if s.result is not None:
            return s.result.time_remaining
        now = s.paused_at if s.paused_at is not None else self.clock()
        return self._time_remaining(s, now)

    def snapshot(self) -> GameSnapshot:
        """
        Immutable view of the session for renderers.

        Features, the live interaction and the reading are copies; writing to
        them leaves the session untouched.
        """
        s = self.session
        if s is None:
            return GameSnapshot(status=GameStatus.MENU)

        features = tuple(replace(f) for f in s.features)

        return GameSnapshot(
            status=s.status,
            time=s.time,
            position=s.position,
            speed=s.speed,
            points=s.points,
            target_points=s.target_points,
            time_remaining=self.time_remaining(),
            progress=calculate_progress(s.position, s.route.distance),
            speed_tier=get_speed_tier(s.speed, self.config.speed_tiers).name,
            route=s.route,
            features=features,
            visible_features=tuple(visible_features(
                features, s.viewport, self.config.viewport.feature_render_distance
            )),
            interaction=copy.deepcopy(s.interaction),
            reading=copy.deepcopy(s.reading),
            viewport=s.viewport,
            result=s.result,
        )

    def summary(self) -> str:
        """Get simulator summary."""
        s = self.session
        if s is None:
            return f"Simulator State: {GameStatus.MENU.name}"
        return "\n".join([
            f"Simulator State: {s.status.name}",
            f"Route: {s.route.name} ({s.route.distance:.0f} mi, {len(s.features)} features)",
            f"Position: {format_distance(s.position)}, Speed: {format_speed(s.speed)}",
            f"Points: {format_points(s.points)} / {format_points(s.target_points)}",
            f"Time remaining: {format_time(self.time_remaining())}",
        ])


# ==============================================================================
# FORMATTING HELPERS
# ==============================================================================

def format_time(seconds: float) -> str:
    """Format seconds as ``M:SS``."""
    seconds = max(0.0, seconds)
    minutes = int(seconds // 60)
    remaining = int(math.floor(seconds % 60))
    return f"{minutes}:{remaining:02d}"


def format_speed(speed: float) -> str:
    return f"{int(math.floor(speed + 0.5))} mph"


def format_distance(miles: float) -> str:
    return f"{miles:.1f} miles"


def format_points(points: int) -> str:
    return f"{points:,}"
