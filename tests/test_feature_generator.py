import pytest

from config import GenerationConfig
from dataclasses_core import (
    FEATURE_PROPERTIES, ROUTE_CATALOG, FeatureCategory, InteractionKind,
    Route, TerrainType, get_route,
)
from feature_generator import (
    FEATURE_INTERACTION_WEIGHTS, LORE_VARIATIONS, TERRAIN_FEATURE_WEIGHTS,
    FeatureGenerator, PositionGenerator, calculate_route_difficulty,
    generate_route, populate_routes, validate_route,
)
from random_source import NumpyRandomSource

from conftest import ScriptedRandomSource


@pytest.mark.parametrize("route", ROUTE_CATALOG, ids=lambda r: r.route_id)
@pytest.mark.parametrize("seed", [0, 1, 42, 1234])
def test_features_sorted_and_within_route(route, seed):
    populated = generate_route(route, seed=seed)
    positions = [f.position for f in populated.features]

    assert positions == sorted(positions)
    assert all(0.0 <= p <= route.distance for p in positions)
    assert validate_route(populated)


@pytest.mark.parametrize("seed", [3, 9, 27])
def test_feature_count_follows_density_range(seed):
    route = get_route("grassland-journey")
    populated = generate_route(route, seed=seed)
    assert round(route.distance * 2) <= len(populated.features) <= round(route.distance * 6)


def test_feature_ids_are_unique():
    populated = generate_route(get_route("mountain-passage"), seed=5)
    ids = [f.feature_id for f in populated.features]
    assert len(set(ids)) == len(ids)
    assert all(i.startswith("mountain-passage-feature-") for i in ids)


def test_same_seed_same_layout():
    route = get_route("desert-crossing")
    a = generate_route(route, seed=99)
    b = generate_route(route, seed=99)
    assert [(f.position, f.category, f.interaction_kind) for f in a.features] == \
        [(f.position, f.category, f.interaction_kind) for f in b.features]


def test_features_start_fresh_and_use_category_properties():
    populated = generate_route(get_route("desert-crossing"), seed=2)
    for feature in populated.features:
        props = FEATURE_PROPERTIES[feature.category]
        assert feature.points == props.base_points
        assert feature.visual.icon == props.icon
        assert 24.0 <= feature.visual.size <= 40.0
        assert feature.lore in LORE_VARIATIONS[feature.category][TerrainType.DESERT]
        assert not feature.is_active
        assert not feature.is_completed


def test_trace_never_drawn_for_plant_signs():
    assert FEATURE_INTERACTION_WEIGHTS[FeatureCategory.PLANT_SIGNS][InteractionKind.TRACE] == 0.0
    for seed in range(5):
        populated = generate_route(get_route("mountain-passage"), seed=seed)
        for feature in populated.features:
            if feature.category is FeatureCategory.PLANT_SIGNS:
                assert feature.interaction_kind is not InteractionKind.TRACE


def test_weight_tables_cover_every_terrain_and_category():
    assert set(TERRAIN_FEATURE_WEIGHTS) == set(TerrainType)
    for weights in TERRAIN_FEATURE_WEIGHTS.values():
        assert set(weights) == set(FeatureCategory)
        assert sum(weights.values()) > 0
    assert set(FEATURE_INTERACTION_WEIGHTS) == set(FeatureCategory)


def test_short_route_still_gets_a_feature():
    route = Route(
        route_id="tiny", name="Tiny", distance=0.1, duration=1.0,
        target_points=0, terrain=TerrainType.GRASSLAND,
    )
    populated = generate_route(route, seed=4)
    assert len(populated.features) >= 1
    assert all(0.0 <= f.position <= 0.1 for f in populated.features)


def test_clusters_stay_within_spread_of_centre():
    config = GenerationConfig(cluster_fraction=1.0, cluster_size_min=4, cluster_size_max=4)
    # size draw, centre draw at the middle, then four offsets
    rng = ScriptedRandomSource([0.0, 0.5, 0.0, 0.25, 0.75, 0.99])
    positions = PositionGenerator(config, rng).generate(10.0, 4)

    assert len(positions) == 4
    assert all(4.5 <= p <= 5.5 for p in positions)


def test_cluster_leftovers_are_scattered():
    config = GenerationConfig(cluster_fraction=0.5, cluster_size_min=2, cluster_size_max=4)
    positions = PositionGenerator(config, NumpyRandomSource(8)).generate(20.0, 5)
    assert len(positions) == 5


def test_generate_does_not_mutate_catalog_route():
    route = get_route("desert-crossing")
    populated = FeatureGenerator(rng=NumpyRandomSource(1)).generate(route)
    assert route.features == ()
    assert populated.features
    assert populated == route


def test_populate_routes_fills_every_route():
    routes = populate_routes(ROUTE_CATALOG, rng=NumpyRandomSource(6))
    assert [r.route_id for r in routes] == [r.route_id for r in ROUTE_CATALOG]
    assert all(validate_route(r) for r in routes)


def test_validate_route_rejects_empty_route():
    assert not validate_route(get_route("desert-crossing"))


def test_route_difficulty():
    route = get_route("desert-crossing")
    populated = route.with_features(generate_route(route, seed=1).features[:30])
    expected = (30 / 15.0) * 2 + (15.0 / 6.0) * 3 + 1.5
    assert calculate_route_difficulty(populated) == pytest.approx(expected)
