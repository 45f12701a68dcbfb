"""
SpeedIsCheapEnv: Gymnasium environment around the game simulator.

Drives a GameSimulator at a fixed tick on a simulated clock, so episodes are
deterministic for a given seed and run as fast as the CPU allows.

Ready for integration with DQN, PPO and other discrete-action RL algorithms.
"""

from typing import Any, Dict, Optional, Tuple
import math

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from config import DEFAULT_CONFIG, GameConfig
from dataclasses_core import InteractionKind, get_route
from physics_model import clamp_delta_time
from random_source import NumpyRandomSource
from serialization import HistoryStore
from simulator import GameSimulator, SimulationClock


# ==============================================================================
# ENVIRONMENT CONSTANTS
# ==============================================================================

# Actions: 0 = coast, 1 = accelerate, 2 = engage nearest active feature
ACTION_COAST = 0
ACTION_ACCELERATE = 1
ACTION_ENGAGE = 2
N_ACTIONS = 3

# progress, speed ratio, time ratio, points ratio, next feature distance,
# interaction progress, interaction live
OBS_DIM = 7

# Seconds of continuous engagement each kind needs to complete
DEFAULT_GESTURE_TIMES: Dict[InteractionKind, float] = {
    InteractionKind.CLICK: 0.3,
    InteractionKind.HOLD: 2.0,
    InteractionKind.SEQUENCE: 2.0,
    InteractionKind.TRACE: 1.5,
}


# ==============================================================================
# GYMNASIUM ENVIRONMENT
# ==============================================================================

class SpeedIsCheapEnv(gym.Env):
    """
    Gymnasium environment for one route.

    Reward is the points gained during the step. Episodes terminate when the
    session is won or lost and are truncated after ``max_episode_steps``.
    """

    metadata = {
        "render_modes": ["human", "ansi"],
        "render_fps": 10,
    }

    def __init__(
        self,
        route_id: str = "desert-crossing",
        config: Optional[GameConfig] = None,
        store: Optional[HistoryStore] = None,
        dt: float = 0.1,
        max_episode_steps: Optional[int] = None,
        gesture_times: Optional[Dict[InteractionKind, float]] = None,
        render_mode: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> None:
        """
        Initialize SpeedIsCheapEnv.

        Args:
            route_id: Catalog route to play
            config: Engine configuration (defaults if None)
            store: History store for finished episodes
            dt: Tick duration in seconds (clamped to the frame-skip cap)
            max_episode_steps: Step cap (enough to exhaust the route clock if None)
            gesture_times: Engagement seconds per interaction kind
            render_mode: "human" prints, "ansi" returns text, None for no rendering
            seed: Random seed for reproducibility
        """
        route = get_route(route_id)
        if route is None:
            raise ValueError(f"Unknown route: {route_id}")

        self.route = route
        self.config = config or DEFAULT_CONFIG
        self.store = store
        self.dt = clamp_delta_time(dt, self.config.performance)
        self.gesture_times = dict(DEFAULT_GESTURE_TIMES)
        if gesture_times:
            self.gesture_times.update(gesture_times)
        self.render_mode = render_mode
        self.seed_value = seed

        if max_episode_steps is None:
            max_episode_steps = int(math.ceil(route.duration_seconds / self.dt)) + 1
        self.max_episode_steps = max_episode_steps

        self.clock = SimulationClock()
        self.simulator = self._make_simulator(seed)

        self.episode_step = 0
        self.episode_reward = 0.0

        self._define_spaces()

    # ========================================================================
    # GYMNASIUM INTERFACE
    # ========================================================================

    def _define_spaces(self) -> None:
        self.action_space = spaces.Discrete(N_ACTIONS)
        self.observation_space = spaces.Box(
            low=0.0,
            high=1.0,
            shape=(OBS_DIM,),
            dtype=np.float32,
        )

    def _make_simulator(self, seed: Optional[int]) -> GameSimulator:
        return GameSimulator(
            config=self.config,
            store=self.store,
            clock=self.clock,
            rng=NumpyRandomSource(seed),
        )

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict] = None
    ) -> Tuple[np.ndarray, Dict]:
        """
        Start a new session on the route.

        Args:
            seed: Random seed; regenerates features deterministically
            options: Additional options (unused)

        Returns:
            (observation, info) tuple
        """
        super().reset(seed=seed)

        if seed is not None:
            self.seed_value = seed
        self.clock = SimulationClock()
        self.simulator = self._make_simulator(self.seed_value)
        self.simulator.initialize_game(self.route)

        self.episode_step = 0
        self.episode_reward = 0.0

        return self._get_observation(), self._get_info()

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict]:
        """
        Execute single environment step.

        Args:
            action: 0 coast, 1 accelerate, 2 engage

        Returns:
            (observation, reward, terminated, truncated, info) tuple
        """
        assert self.action_space.contains(action), f"Invalid action: {action}"

        points_before = self._points()

        if action == ACTION_ENGAGE:
            self._engage()

        self.clock.advance(self.dt)
        self.simulator.update_game(self.dt, action == ACTION_ACCELERATE)

        reward = float(self._points() - points_before)
        terminated = self.simulator.status.is_terminal

        self.episode_step += 1
        self.episode_reward += reward
        truncated = not terminated and self.episode_step >= self.max_episode_steps

        return self._get_observation(), reward, terminated, truncated, self._get_info()

    def render(self) -> Optional[str]:
        """
        Render environment.

        Returns:
            Text frame if render_mode is 'ansi', None otherwise
        """
        frame = self.simulator.summary()
        if self.render_mode == "human":
            print(frame)
        elif self.render_mode == "ansi":
            return frame
        return None

    def close(self) -> None:
        self.simulator.reset_game()

    # ========================================================================
    # INTERNAL METHODS
    # ========================================================================

    def _points(self) -> int:
        session = self.simulator.session
        return session.points if session else 0

    def _engage(self) -> None:
        """Start or advance an interaction with the nearest active feature."""
        session = self.simulator.session
        if session is None:
            return

        if session.interaction is None:
            candidates = [f for f in session.features if f.is_available]
            if not candidates:
                return
            nearest = min(candidates, key=lambda f: abs(f.position - session.position))
            if self.simulator.start_interaction(nearest.feature_id) is None:
                return

        interaction = session.interaction
        gesture_time = self.gesture_times.get(interaction.kind, 1.0)
        step_progress = self.dt / gesture_time if gesture_time > 0 else 1.0
        self.simulator.update_interaction(interaction.progress + step_progress)
        if interaction.progress >= 1.0:
            self.simulator.complete_interaction()

    def _next_feature_distance(self) -> float:
        session = self.simulator.session
        ahead = [
            f.position - session.position
            for f in session.features
            if not f.is_completed and f.position >= session.position
        ]
        if not ahead:
            return 1.0
        return min(ahead) / session.route.distance

    def _get_observation(self) -> np.ndarray:
        obs = np.zeros(OBS_DIM, dtype=np.float32)
        session = self.simulator.session
        if session is None:
            return obs

        snapshot = self.simulator.snapshot()
        obs[0] = snapshot.progress
        obs[1] = snapshot.speed / self.config.physics.max_speed
        obs[2] = snapshot.time_remaining / session.route.duration_seconds
        obs[3] = min(1.0, snapshot.points / snapshot.target_points) if snapshot.target_points else 1.0
        obs[4] = self._next_feature_distance()
        if session.interaction is not None:
            obs[5] = session.interaction.progress
            obs[6] = 1.0
        return np.clip(obs, 0.0, 1.0).astype(np.float32)

    def _get_info(self) -> Dict[str, Any]:
        """
        Get info dict.

        Returns:
            Info dictionary with debug/status information
        """
        snapshot = self.simulator.snapshot()
        return {
            'step': self.episode_step,
            'status': snapshot.status.value,
            'position': snapshot.position,
            'speed': snapshot.speed,
            'speed_tier': snapshot.speed_tier,
            'points': snapshot.points,
            'time_remaining': snapshot.time_remaining,
            'episode_reward': float(self.episode_reward),
            'result': snapshot.result,
        }


# ==============================================================================
# CONVENIENCE FUNCTIONS
# ==============================================================================

def make_env(
    route_id: str = "desert-crossing",
    seed: Optional[int] = None,
    store: Optional[HistoryStore] = None,
    config: Optional[GameConfig] = None,
    dt: float = 0.1,
    max_episode_steps: Optional[int] = None,
    render_mode: Optional[str] = None,
) -> SpeedIsCheapEnv:
    """
    Create a SpeedIsCheapEnv instance.

    Args:
        route_id: Catalog route
        seed: Random seed
        store: History store receiving the result
        config: Engine configuration
        dt: Tick duration
        max_episode_steps: Maximum steps per episode
        render_mode: "human", "ansi", or None

    Returns:
        SpeedIsCheapEnv instance
    """
    return SpeedIsCheapEnv(
        route_id=route_id,
        config=config,
        store=store,
        dt=dt,
        max_episode_steps=max_episode_steps,
        render_mode=render_mode,
        seed=seed,
    )
