"""Shared fixtures: isolated config, bundled rules, an initialized engine."""

import asyncio
import copy

import pytest

from nominacalc.sdk import EngineSettings, PayrollEngine, WorkerInput, build_default_registry
from nominacalc.sdk.rules import load_region_rules, load_sector_rules


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point settings.json at a temp dir so a developer's settings never leak in."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("NOMINA_CALC_CONFIG_PATH", str(config_dir))
    return config_dir


@pytest.fixture
def region_data():
    """Raw Valencia rule dict (national defaults merged), safe to mutate."""
    return copy.deepcopy(load_region_rules()["valencia"])


@pytest.fixture
def sector_data():
    """Raw hospitality rule dict with normalized complements, safe to mutate."""
    return copy.deepcopy(load_sector_rules()["hosteleria_valencia"])


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def engine(registry):
    engine = PayrollEngine(registry, EngineSettings())
    asyncio.run(engine.initialize())
    return engine


@pytest.fixture
def make_worker():
    """Factory for WorkerInput with hospitality defaults (cocinero, TABLE_I/LEVEL_III)."""
    def _make(**overrides):
        data = {"category": "cocinero", "wage_table": "TABLE_I", "level": "LEVEL_III"}
        data.update(overrides)
        return WorkerInput(**data)
    return _make
