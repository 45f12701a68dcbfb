import pytest

from history import (
    ImprovementTrend, analyze_performance, calculate_game_stats,
    calculate_improvement_trend, calculate_route_stats, evaluate_achievements,
    generate_game_history, is_route_unlocked, summarize_achievements, unlocked_routes,
)

from conftest import make_result


def test_empty_history_is_all_zero_and_stable():
    stats = calculate_game_stats([])
    assert stats.total_games == 0
    assert stats.win_rate == 0.0
    assert stats.best_overall_score == 0
    assert stats.average_score == 0.0
    assert stats.total_play_time == 0.0
    assert stats.recent_games == []
    assert calculate_route_stats([]) == {}

    history = generate_game_history([])
    assert history.total_games == 0
    assert history.best_score == 0
    assert history.best_score_route == ""
    assert history.improvement_trend is ImprovementTrend.STABLE


def test_game_stats_totals():
    games = [
        make_result(900, True, top_speed=75.0, duration=120.0, average_speed=40.0),
        make_result(400, False, route_id="grassland-journey", duration=240.0, average_speed=20.0),
        make_result(200, False, features_found=0, features_completed=0, duration=240.0, average_speed=30.0),
    ]
    stats = calculate_game_stats(games)

    assert stats.total_games == 3
    assert stats.total_wins == 1
    assert stats.total_losses == 2
    assert stats.win_rate == pytest.approx(1 / 3)
    assert stats.best_overall_score == 900
    assert stats.average_score == pytest.approx(500.0)
    assert stats.total_play_time == pytest.approx(10.0)
    assert stats.total_features_found == 20
    assert stats.total_features_completed == 10
    assert stats.overall_completion_rate == pytest.approx(0.5)
    assert stats.highest_speed_ever == 75.0
    assert stats.average_speed_across_games == pytest.approx(30.0)
    assert stats.routes_played == ["desert-crossing", "grassland-journey"]
    assert stats.routes_completed == ["desert-crossing"]


def test_recent_window_is_last_ten():
    games = [make_result(100, True)] * 10 + [make_result(0, False)] * 5
    stats = calculate_game_stats(games)
    assert len(stats.recent_games) == 10
    assert stats.recent_win_rate == 1.0
    assert stats.recent_average_score == pytest.approx(100.0)


def test_route_stats():
    games = [
        make_result(700, True, timestamp=300.0, duration=200.0, completion_rate=0.9),
        make_result(300, False, timestamp=100.0, duration=350.0, completion_rate=0.3),
        make_result(500, False, route_id="grassland-journey", timestamp=200.0),
    ]
    stats = calculate_route_stats(games)

    desert = stats["desert-crossing"]
    assert desert.times_played == 2
    assert desert.times_won == 1
    assert desert.win_rate == pytest.approx(0.5)
    assert desert.best_score == 700
    assert desert.best_time == 350.0
    assert desert.best_completion_rate == pytest.approx(0.9)
    assert desert.average_score == pytest.approx(500.0)
    assert desert.average_completion_rate == pytest.approx(0.6)
    assert desert.first_play_date == 100.0
    assert desert.last_play_date == 300.0
    assert desert.is_unlocked

    # 700 on desert-crossing opens grassland-journey
    assert stats["grassland-journey"].is_unlocked


@pytest.mark.parametrize("recent, older, expected", [
    (1200, 1000, ImprovementTrend.IMPROVING),
    (800, 1000, ImprovementTrend.DECLINING),
    (1050, 1000, ImprovementTrend.STABLE),
    (100, 0, ImprovementTrend.IMPROVING),
    (0, 0, ImprovementTrend.STABLE),
])
def test_improvement_trend(recent, older, expected):
    games = [make_result(recent)] * 10 + [make_result(older)] * 10
    assert calculate_improvement_trend(games) is expected


def test_trend_needs_five_games_in_each_window():
    games = [make_result(2000)] * 10 + [make_result(100)] * 4
    assert calculate_improvement_trend(games) is ImprovementTrend.STABLE


def test_trend_ignores_games_beyond_twenty():
    games = [make_result(1000)] * 20 + [make_result(1)] * 10
    assert calculate_improvement_trend(games) is ImprovementTrend.STABLE


def test_best_score_route():
    games = [make_result(300), make_result(950, route_id="mountain-passage"), make_result(950)]
    history = generate_game_history(games)
    assert history.best_score == 950
    assert history.best_score_route == "mountain-passage"
    assert set(history.route_stats) == {"desert-crossing", "mountain-passage"}


def test_route_unlocks():
    assert is_route_unlocked("desert-crossing", [])
    assert not is_route_unlocked("grassland-journey", [make_result(599)])
    assert is_route_unlocked("grassland-journey", [make_result(600)])
    assert not is_route_unlocked("mountain-passage", [make_result(950)])
    assert is_route_unlocked(
        "mountain-passage", [make_result(900, route_id="grassland-journey")]
    )
    assert unlocked_routes([make_result(650)]) == ["desert-crossing", "grassland-journey"]


def test_achievements():
    games = [
        make_result(900, True, top_speed=72.0, completion_rate=1.0, average_speed=18.0),
        make_result(100, False),
    ]
    achievements = evaluate_achievements(games)

    assert achievements["first_win"]
    assert achievements["perfect_run"]
    assert achievements["speed_demon"]
    assert achievements["slow_and_steady"]
    assert achievements["desert_explorer"]
    assert not achievements["grassland_wanderer"]
    assert not achievements["dedicated"]
    assert not achievements["master"]
    assert not any(evaluate_achievements([]).values())


def test_achievement_summary_counts():
    games = [
        make_result(900, True, top_speed=72.0, completion_rate=1.0, average_speed=18.0),
        make_result(100, False),
    ]
    summary = summarize_achievements(games)
    flags = evaluate_achievements(games)

    assert summary.achievements == flags
    assert summary.total_count == len(flags) == 15
    assert summary.unlocked_count == sum(flags.values()) == len(summary.unlocked)
    assert {"first_win", "speed_demon", "desert_explorer"} <= set(summary.unlocked)
    assert summary.completion_rate == pytest.approx(summary.unlocked_count / 15)

    empty = summarize_achievements([])
    assert (empty.unlocked_count, empty.total_count, empty.completion_rate) == (0, 15, 0.0)


def test_analyze_performance():
    games = [make_result(300 - i * 10, timestamp=100.0 - i) for i in range(25)]
    analysis = analyze_performance(games)

    progression = analysis["score_progression"]
    assert len(progression) == 20
    assert progression[0]["game_number"] == 1
    assert progression[-1]["score"] == 300
    assert analysis["route_comparison"][0]["times_played"] == 25
    assert len(analysis["speed_analysis"]["speed_trends"]) == 10
    assert analysis["performance_comparison"]["recent"]["completion_rate"] == pytest.approx(0.5)
    assert analysis["improvement_trend"] == "improving"
