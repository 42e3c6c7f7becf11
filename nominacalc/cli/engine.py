"""Engine construction shared by CLI commands."""

import asyncio
from pathlib import Path

import click

from nominacalc.sdk import (
    PayrollEngine,
    PayrollError,
    build_default_registry,
    load_engine_settings,
)
from nominacalc.sdk.rules import get_rules_dir


def load_engine(**overrides) -> PayrollEngine:
    """Build and initialize a PayrollEngine from settings.json plus overrides."""
    try:
        settings = load_engine_settings(**overrides)
        rules_dir = get_rules_dir(settings.rules_dir)
        registry = build_default_registry(Path(rules_dir), settings.tax_year)
        engine = PayrollEngine(registry, settings)
        asyncio.run(engine.initialize())
    except PayrollError as e:
        raise click.ClickException(str(e))
    return engine
