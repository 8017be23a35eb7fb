# tests/test_config.py
#
# Tests for mscore/config.py: defaults, validation, MSCORE_* overrides.

import pytest

from mscore.config import (
    DEFAULT_CONFIG,
    MIN_POSES,
    SAMPLE_RATE,
    SamplingConfig,
)
from mscore.errors import InvalidInput


def test_defaults_match_module_constants():
    assert DEFAULT_CONFIG.sample_rate == SAMPLE_RATE == 10.0
    assert DEFAULT_CONFIG.min_poses == MIN_POSES == 10
    assert DEFAULT_CONFIG.min_duration == 2.0
    assert DEFAULT_CONFIG.max_duration == 30.0
    assert DEFAULT_CONFIG.validate() is DEFAULT_CONFIG


def test_config_is_frozen():
    with pytest.raises(Exception):
        DEFAULT_CONFIG.sample_rate = 5.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sample_rate": 0},
        {"sample_rate": -1.0},
        {"max_duration": 0},
        {"min_poses": -1},
        {"seek_timeout": -0.1},
        {"settle_delay": -1},
    ],
)
def test_validate_rejects_bad_values(kwargs):
    with pytest.raises(InvalidInput):
        SamplingConfig(**kwargs).validate()


def test_from_env_overrides_and_casts():
    env = {
        "MSCORE_SAMPLE_RATE": "15",
        "MSCORE_MIN_POSES": "4",
        "MSCORE_SETTLE_DELAY": "",
        "UNRELATED": "x",
    }
    cfg = SamplingConfig.from_env(env)
    assert cfg.sample_rate == 15.0
    assert isinstance(cfg.min_poses, int) and cfg.min_poses == 4
    assert cfg.settle_delay == DEFAULT_CONFIG.settle_delay


def test_from_env_keeps_base_for_unset_fields():
    base = SamplingConfig(max_duration=8.0)
    cfg = SamplingConfig.from_env({"MSCORE_SEEK_TIMEOUT": "0.25"}, base=base)
    assert cfg.max_duration == 8.0
    assert cfg.seek_timeout == 0.25


def test_from_env_bad_value_names_variable():
    with pytest.raises(InvalidInput, match="MSCORE_MIN_POSES"):
        SamplingConfig.from_env({"MSCORE_MIN_POSES": "ten"})


def test_from_env_validates_result():
    with pytest.raises(InvalidInput):
        SamplingConfig.from_env({"MSCORE_SAMPLE_RATE": "0"})


def test_from_env_reads_process_environment(monkeypatch):
    monkeypatch.setenv("MSCORE_MAX_DURATION", "12.5")
    assert SamplingConfig.from_env().max_duration == 12.5
