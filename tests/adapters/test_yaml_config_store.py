"""
Tests for YamlConfigStore.
"""
import pytest
import yaml

from fincast.adapters.config.yaml_store import YamlConfigStore
from fincast.core.domain.config import AlgorithmType, ForecastConfig

CONFIGS_YAML = """
configs:
  - id: 1
    user_id: 10
    algorithm: SMA
    parameters:
      window: 14
  - id: 2
    user_id: 11
    algorithm: ENSEMBLE
    horizon_days: 14
    parameters:
      ensemble_members:
        - algorithm: EWMA
          parameters:
            alpha: 0.5
        - algorithm: LINEAR_REGRESSION
  - id: 3
    user_id: 10
    algorithm: EWMA
    parameters:
      alpha: 4.0
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "forecast_configs.yaml"
    path.write_text(CONFIGS_YAML)
    return path


@pytest.mark.asyncio
async def test_list_configs_skips_invalid_entries(config_file):
    store = YamlConfigStore(config_file)
    configs = await store.list_configs()
    assert [c.id for c in configs] == [1, 2]
    assert configs[0].parameters.resolved_window == 14
    assert configs[1].parameters.ensemble_members[0].algorithm == AlgorithmType.EWMA


@pytest.mark.asyncio
async def test_list_configs_by_user(config_file):
    store = YamlConfigStore(config_file)
    assert [c.id for c in await store.list_configs(user_id=10)] == [1]
    assert await store.get_config(2) is not None
    assert await store.get_config(99) is None


@pytest.mark.asyncio
async def test_missing_file_is_empty(tmp_path):
    store = YamlConfigStore(tmp_path / "nope.yaml")
    assert await store.list_configs() == []


@pytest.mark.asyncio
async def test_save_round_trips_through_file(config_file):
    store = YamlConfigStore(config_file)
    new_config = ForecastConfig(id=7, user_id=10, algorithm="ARIMA", parameters={"p": 2, "d": 1, "q": 0})
    await store.save_config(new_config)

    data = yaml.safe_load(config_file.read_text())
    assert [c["id"] for c in data["configs"]] == [1, 2, 7]

    reloaded = YamlConfigStore(config_file)
    assert await reloaded.get_config(7) == new_config
    assert (await reloaded.get_config(2)).parameters.ensemble_members[1].algorithm == AlgorithmType.LINEAR_REGRESSION


@pytest.mark.asyncio
async def test_delete_config(config_file):
    store = YamlConfigStore(config_file)
    assert await store.delete_config(1) is True
    assert await store.delete_config(1) is False
    assert [c.id for c in await YamlConfigStore(config_file).list_configs()] == [2]
