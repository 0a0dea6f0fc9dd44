from pathlib import Path

import pytest
import yaml

from streamhub import constants
from streamhub.config import load_config, parse_config
from streamhub.models import CacheStatusFilter, SeederRange, SizeLimits, SortCriterion

EXAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config.example.yaml"


def write_config(tmp_path, data):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(str(tmp_path / "nope.yaml"))


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    config = load_config(str(path))

    assert config.sources == []
    assert config.bind_port == 8080
    assert config.preferences.resolutions == constants.RESOLUTIONS
    assert config.proxy.enabled is False


def test_sources(tmp_path):
    config = load_config(write_config(tmp_path, {
        "default_timeout": 7,
        "sources": [
            {"name": "Torrentio", "manifest_url": "https://torrentio.example.com/manifest.json"},
            {"id": "tb", "name": "TorBox", "manifest_url": "https://tb.example.com/manifest.json", "preset": "torbox", "timeout": 3, "enabled": False},
        ],
    }))

    first, second = config.sources
    assert first.id == "Torrentio"
    assert first.preset == "generic"
    assert first.timeout == 7
    assert second.id == "tb"
    assert second.timeout == 3
    assert second.enabled is False


def test_preferences():
    config = parse_config({
        "preferences": {
            "sort": {
                "criteria": ["cached", {"criterion": "size", "direction": "asc"}],
                "cached": ["seeders"],
            },
            "filters": {
                "excluded_qualities": ["CAM"],
                "movie_size": {"max": 100},
                "resolution_sizes": {"720p": {"min": 5}},
            },
            "limits": {"global": 20, "resolution": 3},
            "dedup": {"mode": "per_service"},
            "rank_patterns": [{"pattern": "remux", "name": "Remux"}],
        }
    })
    preferences = config.preferences

    assert preferences.sort.criteria == [SortCriterion("cached"), SortCriterion("size", constants.ASC)]
    assert preferences.sort.cached == [SortCriterion("seeders")]
    assert preferences.sort.uncached == []
    assert preferences.filters.excluded_qualities == ["CAM"]
    assert preferences.filters.movie_size == SizeLimits(max=100)
    assert preferences.filters.resolution_sizes == {"720p": SizeLimits(min=5)}
    assert preferences.limits.global_limit == 20
    assert preferences.limits.resolution == 3
    assert preferences.dedup.mode == "per_service"
    assert preferences.rank_patterns[0].name == "Remux"


def test_filter_ranges_and_cache_scopes():
    config = parse_config({
        "preferences": {
            "filters": {
                "required_seeders": {"min": 5},
                "excluded_seeders": {"min": 100, "max": 200},
                "seeder_range_kinds": ["p2p"],
                "exclude_uncached_from": {"mode": "and", "services": ["torbox"], "stream_kinds": ["debrid"]},
            },
            "preferred_keywords": ["remux"],
        }
    })
    preferences = config.preferences

    assert preferences.filters.required_seeders == SeederRange(min=5)
    assert preferences.filters.excluded_seeders == SeederRange(min=100, max=200)
    assert preferences.filters.seeder_range_kinds == ["p2p"]
    assert preferences.filters.exclude_uncached_from == CacheStatusFilter(mode="and", services=["torbox"], stream_kinds=["debrid"])
    assert preferences.filters.exclude_cached_from == CacheStatusFilter()
    assert preferences.preferred_keywords == ["remux"]


def test_default_sort_puts_cached_first():
    assert parse_config({}).preferences.sort.criteria[0] == SortCriterion("cached")


@pytest.mark.parametrize(
    "preferences",
    [
        {"sort": {"criteria": ["popularity"]}},
        {"sort": {"criteria": [{"criterion": "size", "direction": "sideways"}]}},
        {"dedup": {"mode": "sometimes"}},
        {"filters": {"exclude_cached_from": {"mode": "xor"}}},
    ],
)
def test_invalid_preferences(preferences):
    with pytest.raises(ValueError):
        parse_config({"preferences": preferences})


def test_example_config_loads():
    config = load_config(str(EXAMPLE_CONFIG))

    assert [s.id for s in config.sources] == ["torrentio", "torbox", "jackettio"]
    assert config.sources[2].enabled is False
    assert config.proxy.proxied_services == [constants.NO_SERVICE]
    assert config.preferences.limits.global_limit == 50
