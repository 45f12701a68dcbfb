"""
PhysicsModel: one-dimensional speed and position integration.

The vehicle only moves forward along the route. Speed is in mph, positions in
miles, time in seconds. Every function here is pure so identical tick
sequences replay exactly.
"""

from typing import Optional
import numpy as np

from config import DEFAULT_CONFIG, PerformanceConfig, PhysicsConfig, ViewportConfig


SECONDS_PER_HOUR = 3600.0


# ==============================================================================
# INTEGRATION
# ==============================================================================

def update_speed(
    current_speed: float,
    is_accelerating: bool,
    delta_time: float,
    physics: Optional[PhysicsConfig] = None,
) -> float:
    """
    Advance speed by one tick.

    Accelerating adds ``acceleration * dt``; otherwise friction removes
    ``friction * dt`` (there is no coasting). The result is clamped to
    ``[min_speed, max_speed]``.

    Args:
        current_speed: Speed before the tick (mph)
        is_accelerating: Accelerate signal from input
        delta_time: Tick duration in seconds (negative values count as 0)
        physics: Physics constants (defaults if None)

    Returns:
        New speed in mph
    """
    physics = physics or DEFAULT_CONFIG.physics
    dt = max(0.0, float(delta_time))

    if is_accelerating:
        new_speed = current_speed + physics.acceleration * dt
    else:
        new_speed = current_speed - physics.friction * dt

    return float(np.clip(new_speed, physics.min_speed, physics.max_speed))


def update_position(current_position: float, speed: float, delta_time: float) -> float:
    """Advance position by ``speed`` (mph converted to miles/second) over ``delta_time``."""
    miles_per_second = max(0.0, speed) / SECONDS_PER_HOUR
    return current_position + miles_per_second * max(0.0, float(delta_time))


def clamp_delta_time(delta_time: float, performance: Optional[PerformanceConfig] = None) -> float:
    """Cap a tick duration so a stalled frame cannot produce a huge step."""
    performance = performance or DEFAULT_CONFIG.performance
    return float(np.clip(delta_time, 0.0, performance.max_delta_time))


# ==============================================================================
# DISTANCE CONVERSIONS
# ==============================================================================

def miles_to_pixels(miles: float, route_distance: float, landscape_width: float) -> float:
    """Map a route distance onto the landscape strip."""
    return (miles / route_distance) * landscape_width


def pixels_to_miles(pixels: float, route_distance: float, landscape_width: float) -> float:
    """Inverse of :func:`miles_to_pixels`."""
    return (pixels / landscape_width) * route_distance


def calculate_progress(current_position: float, route_distance: float) -> float:
    """Fraction of the route covered, clamped to [0, 1]."""
    if route_distance <= 0:
        return 1.0
    return float(np.clip(current_position / route_distance, 0.0, 1.0))


def is_feature_in_range(
    feature_position: float,
    player_position: float,
    route_distance: float,
    viewport: Optional[ViewportConfig] = None,
) -> bool:
    """
    Check whether a feature is within interaction range of the player.

    Distance is measured on the landscape strip in pixels, so the range in
    miles grows with the route length.
    """
    viewport = viewport or DEFAULT_CONFIG.viewport
    feature_px = miles_to_pixels(feature_position, route_distance, viewport.landscape_width)
    player_px = miles_to_pixels(player_position, route_distance, viewport.landscape_width)
    return abs(feature_px - player_px) <= viewport.feature_interaction_range
