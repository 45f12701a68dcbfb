"""
History aggregation: statistics over finished sessions.

All functions are pure and take results newest first, as returned by a
HistoryStore. An empty history yields zeroed statistics and a stable trend.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List
from enum import Enum

import numpy as np

from dataclasses_core import ROUTE_CATALOG, GameResult


RECENT_WINDOW = 10
TREND_MIN_GAMES = 5
TREND_THRESHOLD = 0.1

# route_id -> (prerequisite route_id, best score required on it)
UNLOCK_THRESHOLDS: Dict[str, tuple] = {
    "grassland-journey": ("desert-crossing", 600),
    "mountain-passage": ("grassland-journey", 900),
}


class ImprovementTrend(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


# ==============================================================================
# STATISTICS DATA CLASSES
# ==============================================================================

@dataclass
class GameStats:
    """Totals across every stored session."""
    total_games: int = 0
    total_wins: int = 0
    total_losses: int = 0
    win_rate: float = 0.0
    best_overall_score: int = 0
    average_score: float = 0.0
    total_play_time: float = 0.0              # minutes
    total_features_found: int = 0
    total_features_completed: int = 0
    overall_completion_rate: float = 0.0
    highest_speed_ever: float = 0.0
    average_speed_across_games: float = 0.0
    recent_games: List[GameResult] = field(default_factory=list)
    recent_win_rate: float = 0.0
    recent_average_score: float = 0.0
    routes_played: List[str] = field(default_factory=list)
    routes_completed: List[str] = field(default_factory=list)


@dataclass
class RouteStats:
    """Per-route performance."""
    route_id: str
    route_name: str
    times_played: int = 0
    times_won: int = 0
    win_rate: float = 0.0
    best_score: int = 0
    best_time: float = 0.0
    best_completion_rate: float = 0.0
    average_score: float = 0.0
    average_speed: float = 0.0
    average_completion_rate: float = 0.0
    first_play_date: float = 0.0
    last_play_date: float = 0.0
    is_unlocked: bool = True


@dataclass
class GameHistory:
    """Combined history view."""
    games: List[GameResult] = field(default_factory=list)
    total_games: int = 0
    total_wins: int = 0
    win_rate: float = 0.0
    route_stats: Dict[str, RouteStats] = field(default_factory=dict)
    best_score: int = 0
    best_score_route: str = ""
    average_score: float = 0.0
    recent_win_rate: float = 0.0
    improvement_trend: ImprovementTrend = ImprovementTrend.STABLE


@dataclass
class AchievementSummary:
    """Achievement flags with unlocked/total counts."""
    achievements: Dict[str, bool] = field(default_factory=dict)
    unlocked_count: int = 0
    total_count: int = 0
    completion_rate: float = 0.0

    @property
    def unlocked(self) -> List[str]:
        return [name for name, earned in self.achievements.items() if earned]


def _mean(values: List[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def _unique(values: List[str]) -> List[str]:
    """Unique values in first-seen order."""
    return list(dict.fromkeys(values))


# ==============================================================================
# AGGREGATES
# ==============================================================================

def calculate_game_stats(games: List[GameResult]) -> GameStats:
    """
    Aggregate statistics over all games.

    Args:
        games: Results, newest first

    Returns:
        GameStats (all zeros for an empty history)
    """
    if not games:
        return GameStats()

    total = len(games)
    wins = sum(1 for g in games if g.is_won)
    found = sum(g.features_found for g in games)
    completed = sum(g.features_completed for g in games)
    recent = games[:RECENT_WINDOW]

    return GameStats(
        total_games=total,
        total_wins=wins,
        total_losses=total - wins,
        win_rate=wins / total,
        best_overall_score=max(g.final_score for g in games),
        average_score=_mean([g.final_score for g in games]),
        total_play_time=sum(g.duration for g in games) / 60.0,
        total_features_found=found,
        total_features_completed=completed,
        overall_completion_rate=completed / found if found else 0.0,
        highest_speed_ever=max(g.top_speed for g in games),
        average_speed_across_games=_mean([g.average_speed for g in games]),
        recent_games=list(recent),
        recent_win_rate=sum(1 for g in recent if g.is_won) / len(recent),
        recent_average_score=_mean([g.final_score for g in recent]),
        routes_played=_unique([g.route_id for g in games]),
        routes_completed=_unique([g.route_id for g in games if g.is_won]),
    )


def calculate_route_stats(games: List[GameResult]) -> Dict[str, RouteStats]:
    """Per-route statistics keyed by route id, in first-seen order."""
    grouped: Dict[str, List[GameResult]] = {}
    for game in games:
        grouped.setdefault(game.route_id, []).append(game)

    route_stats = {}
    for route_id, route_games in grouped.items():
        wins = sum(1 for g in route_games if g.is_won)
        route_stats[route_id] = RouteStats(
            route_id=route_id,
            route_name=route_games[0].route_name,
            times_played=len(route_games),
            times_won=wins,
            win_rate=wins / len(route_games),
            best_score=max(0, max(g.final_score for g in route_games)),
            best_time=max(0.0, max(g.duration for g in route_games)),
            best_completion_rate=max(0.0, max(g.completion_rate for g in route_games)),
            average_score=_mean([g.final_score for g in route_games]),
            average_speed=_mean([g.average_speed for g in route_games]),
            average_completion_rate=_mean([g.completion_rate for g in route_games]),
            first_play_date=min(g.timestamp for g in route_games),
            last_play_date=max(g.timestamp for g in route_games),
            is_unlocked=is_route_unlocked(route_id, games),
        )
    return route_stats


def calculate_improvement_trend(games: List[GameResult]) -> ImprovementTrend:
    """
    Compare the last 10 games with the 10 before them.

    Either window holding fewer than 5 games gives STABLE; otherwise a change
    in mean score beyond 10% either way sets the trend.
    """
    recent = games[:RECENT_WINDOW]
    older = games[RECENT_WINDOW:2 * RECENT_WINDOW]
    if len(recent) < TREND_MIN_GAMES or len(older) < TREND_MIN_GAMES:
        return ImprovementTrend.STABLE

    recent_avg = _mean([g.final_score for g in recent])
    older_avg = _mean([g.final_score for g in older])

    if older_avg == 0:
        return ImprovementTrend.IMPROVING if recent_avg > 0 else ImprovementTrend.STABLE

    improvement = (recent_avg - older_avg) / older_avg
    if improvement > TREND_THRESHOLD:
        return ImprovementTrend.IMPROVING
    if improvement < -TREND_THRESHOLD:
        return ImprovementTrend.DECLINING
    return ImprovementTrend.STABLE


def generate_game_history(games: List[GameResult]) -> GameHistory:
    stats = calculate_game_stats(games)
    best_route = next(
        (g.route_id for g in games if g.final_score == stats.best_overall_score), ""
    )
    return GameHistory(
        games=list(games),
        total_games=stats.total_games,
        total_wins=stats.total_wins,
        win_rate=stats.win_rate,
        route_stats=calculate_route_stats(games),
        best_score=stats.best_overall_score,
        best_score_route=best_route,
        average_score=stats.average_score,
        recent_win_rate=stats.recent_win_rate,
        improvement_trend=calculate_improvement_trend(games),
    )


# ==============================================================================
# PROGRESSION
# ==============================================================================

def is_route_unlocked(route_id: str, games: List[GameResult]) -> bool:
    """A route without a threshold is always open."""
    requirement = UNLOCK_THRESHOLDS.get(route_id)
    if requirement is None:
        return True
    prerequisite, required_score = requirement
    return any(g.route_id == prerequisite and g.final_score >= required_score for g in games)


def unlocked_routes(games: List[GameResult]) -> List[str]:
    return [route.route_id for route in ROUTE_CATALOG if is_route_unlocked(route.route_id, games)]


def evaluate_achievements(games: List[GameResult]) -> Dict[str, bool]:
    """Achievement flags derived from the whole history."""
    stats = calculate_game_stats(games)
    trend = calculate_improvement_trend(games)

    return {
        "first_win": stats.total_wins >= 1,
        "perfect_run": any(g.completion_rate >= 1.0 for g in games),
        "speed_demon": stats.highest_speed_ever >= 70,
        "slow_and_steady": any(g.average_speed <= 20 and g.is_won for g in games),
        "marathoner": stats.total_play_time >= 60,
        "dedicated": stats.total_games >= 50,
        "expert": stats.total_wins >= 20,
        "master": stats.win_rate >= 0.8 and stats.total_games >= 10,
        "desert_explorer": "desert-crossing" in stats.routes_completed,
        "grassland_wanderer": "grassland-journey" in stats.routes_completed,
        "mountain_climber": "mountain-passage" in stats.routes_completed,
        "consistent": stats.recent_win_rate >= 0.7 and len(stats.recent_games) >= RECENT_WINDOW,
        "improving": trend is ImprovementTrend.IMPROVING,
        "observant": stats.total_features_completed >= 100,
        "storyteller": stats.overall_completion_rate >= 0.8,
    }


def summarize_achievements(games: List[GameResult]) -> AchievementSummary:
    achievements = evaluate_achievements(games)
    unlocked_count = sum(1 for earned in achievements.values() if earned)
    total_count = len(achievements)
    return AchievementSummary(
        achievements=achievements,
        unlocked_count=unlocked_count,
        total_count=total_count,
        completion_rate=unlocked_count / total_count if total_count else 0.0,
    )


def analyze_performance(games: List[GameResult]) -> Dict[str, Any]:
    """
    Performance breakdown for reports.

    Returns:
        Dictionary with score progression (oldest of the last 20 first),
        route comparison, recent vs overall and speed trends
    """
    stats = calculate_game_stats(games)
    route_stats = calculate_route_stats(games)

    progression = [
        {"game_number": i + 1, "score": g.final_score, "is_won": g.is_won, "timestamp": g.timestamp}
        for i, g in enumerate(reversed(games[:20]))
    ]

    return {
        "improvement_trend": calculate_improvement_trend(games).value,
        "score_progression": progression,
        "route_comparison": [
            {
                "route_name": rs.route_name,
                "win_rate": rs.win_rate,
                "average_score": rs.average_score,
                "times_played": rs.times_played,
            }
            for rs in route_stats.values()
        ],
        "performance_comparison": {
            "overall": {
                "win_rate": stats.win_rate,
                "average_score": stats.average_score,
                "completion_rate": stats.overall_completion_rate,
            },
            "recent": {
                "win_rate": stats.recent_win_rate,
                "average_score": stats.recent_average_score,
                "completion_rate": _mean([g.completion_rate for g in stats.recent_games]),
            },
        },
        "speed_analysis": {
            "highest_speed": stats.highest_speed_ever,
            "average_speed": stats.average_speed_across_games,
            "speed_trends": [
                {
                    "average_speed": g.average_speed,
                    "top_speed": g.top_speed,
                    "score": g.final_score,
                    "completion_rate": g.completion_rate,
                }
                for g in games[:RECENT_WINDOW]
            ],
        },
    }
