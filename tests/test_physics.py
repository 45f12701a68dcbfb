import pytest

from config import PerformanceConfig, PhysicsConfig
from physics_model import (
    calculate_progress, clamp_delta_time, is_feature_in_range,
    miles_to_pixels, pixels_to_miles, update_position, update_speed,
)


@pytest.mark.parametrize("dt", [0.0, 0.016, 0.1, 1.0, 3.0])
def test_accelerating_speed_is_non_decreasing_until_max(dt):
    speed = 0.0
    for _ in range(1000):
        new_speed = update_speed(speed, True, dt)
        assert new_speed >= speed
        assert new_speed <= 80.0
        speed = new_speed
    if dt > 0:
        assert speed == 80.0
        assert update_speed(speed, True, dt) == 80.0


@pytest.mark.parametrize("dt", [0.0, 0.016, 0.1, 1.0, 3.0])
def test_coasting_speed_is_non_increasing_and_never_negative(dt):
    speed = 80.0
    for _ in range(200):
        new_speed = update_speed(speed, False, dt)
        assert new_speed <= speed
        assert new_speed >= 0.0
        speed = new_speed


def test_forty_one_second_ticks_saturate_speed():
    speed = 0.0
    position = 0.0
    expected_position = 0.0
    for tick in range(40):
        speed = update_speed(speed, True, 1.0)
        assert speed == min(80.0, 15.0 * (tick + 1))
        expected_position += speed / 3600.0
        position = update_position(position, speed, 1.0)

    assert speed == 80.0
    assert position == pytest.approx(expected_position)


def test_negative_delta_time_counts_as_zero():
    assert update_speed(30.0, True, -1.0) == 30.0
    assert update_position(2.0, 60.0, -5.0) == 2.0


def test_custom_physics_constants():
    physics = PhysicsConfig(max_speed=40.0, acceleration=100.0, friction=1.0)
    assert update_speed(0.0, True, 1.0, physics) == 40.0
    assert update_speed(40.0, False, 1.0, physics) == 39.0


def test_position_advances_by_miles_per_second():
    assert update_position(0.0, 60.0, 60.0) == pytest.approx(1.0)


def test_clamp_delta_time_caps_stalled_frames():
    assert clamp_delta_time(1.0) == pytest.approx(5.0 / 60.0)
    assert clamp_delta_time(0.01) == pytest.approx(0.01)
    assert clamp_delta_time(-0.5) == 0.0
    assert clamp_delta_time(1.0, PerformanceConfig(target_fps=30, max_frame_skip=3)) == pytest.approx(0.1)


def test_pixel_conversion_is_invertible():
    pixels = miles_to_pixels(7.5, 15.0, 1200)
    assert pixels == pytest.approx(600.0)
    assert pixels_to_miles(pixels, 15.0, 1200) == pytest.approx(7.5)


def test_progress_is_clamped():
    assert calculate_progress(7.5, 15.0) == pytest.approx(0.5)
    assert calculate_progress(20.0, 15.0) == 1.0
    assert calculate_progress(-1.0, 15.0) == 0.0


def test_interaction_range_scales_with_route_length():
    # 80 px of a 1200 px strip is one mile on a 15 mile route
    assert is_feature_in_range(5.0, 4.5, 15.0)
    assert is_feature_in_range(5.0, 5.9, 15.0)
    assert not is_feature_in_range(5.0, 3.5, 15.0)
    assert not is_feature_in_range(5.0, 6.2, 15.0)
