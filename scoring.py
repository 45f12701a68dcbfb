"""
Scoring: speed tiers, point awards and interaction time limits.

Both reward paths share the same tier table: the faster the vehicle, the lower
the multiplier. Mini-game completion and dwell reading keep separate formulas.
"""

from typing import Optional
import math

from config import DEFAULT_CONFIG, ScoringConfig, SpeedTierConfig, SpeedTierSpec


# ==============================================================================
# SPEED TIERS
# ==============================================================================

def get_speed_tier(speed: float, tiers: Optional[SpeedTierConfig] = None) -> SpeedTierSpec:
    """
    Look up the tier for a speed.

    Tiers are checked by ascending upper bound; anything above the last bound
    (or NaN) falls into the last tier, so every speed has a tier.
    """
    tiers = tiers or DEFAULT_CONFIG.speed_tiers
    for tier in tiers.tiers:
        if speed <= tier.max_speed:
            return tier
    return tiers.tiers[-1]


def get_speed_multiplier(speed: float, tiers: Optional[SpeedTierConfig] = None) -> float:
    return get_speed_tier(speed, tiers).multiplier


def get_speed_tier_name(speed: float, tiers: Optional[SpeedTierConfig] = None) -> str:
    return get_speed_tier(speed, tiers).name.title()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# ==============================================================================
# REWARDS
# ==============================================================================

def calculate_feature_points(
    base_points: float,
    speed: float,
    tiers: Optional[SpeedTierConfig] = None,
) -> int:
    """Points for completing a feature's mini-game at the given speed."""
    return max(0, _round_half_up(base_points * get_speed_multiplier(speed, tiers)))


def calculate_dwell_points(
    dwell_seconds: float,
    speed: float,
    scoring: Optional[ScoringConfig] = None,
    tiers: Optional[SpeedTierConfig] = None,
) -> int:
    """
    Points for passively reading a feature.

    ``floor(seconds * base_rate * max(minimum_multiplier, tier_multiplier))``;
    zero or negative dwell earns nothing.
    """
    scoring = scoring or DEFAULT_CONFIG.scoring
    if not dwell_seconds > 0:
        return 0
    multiplier = max(scoring.dwell_minimum_multiplier, get_speed_multiplier(speed, tiers))
    return int(math.floor(dwell_seconds * scoring.dwell_base_rate * multiplier))


def calculate_interaction_time_limit(
    base_time: float,
    speed: float,
    tiers: Optional[SpeedTierConfig] = None,
) -> float:
    """Deadline for a mini-game: base duration compressed by the speed tier."""
    return base_time * get_speed_tier(speed, tiers).time_scaling
