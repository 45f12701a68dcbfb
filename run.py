"""
Headless driver: play one route with a simple autopilot, or inspect history.

    python run.py --route desert-crossing --seed 42
    python run.py --stats
"""

import argparse
import logging

from config import load_config
from dataclasses_core import ROUTE_CATALOG, get_route
from driving_env import ACTION_ACCELERATE, ACTION_COAST, ACTION_ENGAGE, SpeedIsCheapEnv
from history import (
    calculate_game_stats, generate_game_history, summarize_achievements, unlocked_routes,
)
from serialization import FileHistoryStore
from simulator import format_distance, format_points, format_speed, format_time


CRUISE_SPEED = 35.0  # top of the moderate tier


def autopilot(env: SpeedIsCheapEnv) -> int:
    """Engage whenever a feature is in range, otherwise hold cruise speed."""
    session = env.simulator.session
    if session.interaction is not None or any(f.is_available for f in session.features):
        return ACTION_ENGAGE
    if session.speed < CRUISE_SPEED:
        return ACTION_ACCELERATE
    return ACTION_COAST


def play(route_id: str, seed, store: FileHistoryStore, config) -> None:
    route = get_route(route_id)
    print(f"🚙 {route.name}: {route.distance:.0f} miles in {route.duration:.0f} minutes, "
          f"{format_points(route.target_points)} points to win")

    env = SpeedIsCheapEnv(route_id=route_id, config=config, store=store, seed=seed)
    env.reset(seed=seed)
    print(f"✓ {len(env.simulator.session.features)} features along the route\n")

    terminated = truncated = False
    info = {}
    while not (terminated or truncated):
        _, _, terminated, truncated, info = env.step(autopilot(env))
        if env.episode_step % 600 == 0:
            print(f"  {format_time(info['time_remaining'])} left | "
                  f"{format_distance(info['position'])} | {format_speed(info['speed'])} | "
                  f"{format_points(info['points'])} pts")

    result = info.get('result')
    if result is None:
        print("⚠ Episode truncated before the session ended")
        return
    print(f"\n{'🏁' if result.is_won else '⏱'} {result.summary()}")
    env.close()


def print_stats(store: FileHistoryStore) -> None:
    games = store.load_all()
    stats = calculate_game_stats(games)
    history = generate_game_history(games)

    print("📊 GAME HISTORY")
    print(f"  Games: {stats.total_games} ({stats.total_wins} won, win rate {stats.win_rate:.0%})")
    print(f"  Best score: {format_points(stats.best_overall_score)} on {history.best_score_route or '-'}")
    print(f"  Average score: {stats.average_score:.0f}")
    print(f"  Play time: {stats.total_play_time:.1f} minutes")
    print(f"  Trend: {history.improvement_trend.value}")
    print(f"  Routes unlocked: {', '.join(unlocked_routes(games))}")

    for route_stats in history.route_stats.values():
        print(f"  - {route_stats.route_name}: {route_stats.times_played} played, "
              f"best {format_points(route_stats.best_score)}")

    achievements = summarize_achievements(games)
    print(f"  Achievements: {achievements.unlocked_count}/{achievements.total_count} "
          f"{', '.join(achievements.unlocked)}")

    storage = store.info()
    print(f"  Storage: {store.path} ({storage['game_count']} games, {storage['estimated_size']})")


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="Headless driving game runner")
    parser.add_argument("--route", default=ROUTE_CATALOG[0].route_id,
                        choices=[route.route_id for route in ROUTE_CATALOG])
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", default=None, help="YAML balance file")
    parser.add_argument("--history", default=None, help="History file (.json or .yaml)")
    parser.add_argument("--stats", action="store_true", help="Print aggregated history")
    parser.add_argument("--clear", action="store_true", help="Delete stored history")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config(args.config)
    store = FileHistoryStore(
        args.history or config.storage.history_path,
        max_games=config.storage.max_stored_games,
        version=config.storage.version,
    )

    if args.clear:
        print("✓ History cleared" if store.clear() else "⚠ Could not clear history")
        return
    if args.stats:
        print_stats(store)
        return

    play(args.route, args.seed, store, config)


if __name__ == "__main__":
    main()
