import pytest

from config import (
    DEFAULT_CONFIG_PATH, ConfigError, GameConfig, SpeedTierSpec, load_config,
)


def test_bundled_balance_file_matches_defaults():
    assert DEFAULT_CONFIG_PATH.exists()
    assert load_config() == GameConfig()


def test_defaults():
    config = GameConfig()
    assert config.physics.max_speed == 80.0
    assert config.physics.acceleration == 15.0
    assert config.physics.friction == 5.0
    assert [t.name for t in config.speed_tiers.tiers] == ["crawling", "moderate", "fast", "racing"]
    assert config.interactions.base_times["hold"] == 3.0
    assert config.storage.max_stored_games == 100
    assert config.performance.max_delta_time == pytest.approx(5.0 / 60.0)


def test_partial_file_merges_over_defaults(tmp_path):
    path = tmp_path / "balance.yaml"
    path.write_text("physics:\n  max_speed: 120.0\nstorage:\n  max_stored_games: 5\n")

    config = load_config(str(path))

    assert config.physics.max_speed == 120.0
    assert config.physics.acceleration == 15.0
    assert config.storage.max_stored_games == 5
    assert config.viewport.landscape_width == 1200


def test_tiers_from_yaml_become_specs(tmp_path):
    path = tmp_path / "balance.yaml"
    path.write_text(
        "speed_tiers:\n"
        "  tiers:\n"
        "    - {name: slow, max_speed: 20.0, multiplier: 1.0, time_scaling: 1.0}\n"
        "    - {name: quick, max_speed: 90.0, multiplier: 0.5, time_scaling: 0.5}\n"
    )
    tiers = load_config(str(path)).speed_tiers.tiers
    assert all(isinstance(t, SpeedTierSpec) for t in tiers)
    assert tiers[1].name == "quick"


def test_missing_file_uses_defaults(tmp_path, caplog):
    with caplog.at_level("WARNING"):
        config = load_config(str(tmp_path / "absent.yaml"))
    assert config == GameConfig()
    assert "not found" in caplog.text


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == GameConfig()


@pytest.mark.parametrize("content", [
    "physics: [unclosed\n",
    "- just\n- a list\n",
    "unknown_section:\n  x: 1\n",
    "physics:\n  top_speed: 99\n",
    "physics:\n  max_speed: -5\n",
    "physics: 3\n",
])
def test_bad_files_raise_config_error(tmp_path, content):
    path = tmp_path / "bad.yaml"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_config_error_is_value_error():
    assert issubclass(ConfigError, ValueError)


def test_dot_path_lookup():
    config = GameConfig()
    assert config.get("physics.max_speed") == 80.0
    assert config.get("interactions.base_times.trace") == 4.0
    assert config.get("physics.nope", 7) == 7
    assert config.get("nope.deeper") is None


def test_round_trip_through_dict():
    config = GameConfig()
    assert GameConfig.from_dict(config.to_dict()) == config
