"""Settings CLI commands for Nomina Calc.

Manages settings.json - default jurisdiction, failure policy, rules directory.
"""

import json

import click

from nominacalc.sdk import (
    EngineSettings,
    get_settings_path,
    load_engine_settings,
    load_settings,
    set_setting,
    unset_setting,
    InvalidConfigError,
)


@click.group()
def settings():
    """Manage settings (settings.json).

    Available settings:
    - default_region, default_sector: jurisdiction used when none is given
    - strict_mode, strict_codes: escalate audit codes to fatal
    - fatal_severities: severities that reject a calculation
    - jurisdiction_fallback: use defaults for unknown ids
    - rules_dir: directory with national/regions/sectors YAML
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and the effective values."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
    else:
        click.echo("No settings configured (using defaults).")

    click.echo()
    click.echo("Effective values:")
    try:
        effective = load_engine_settings()
    except InvalidConfigError as e:
        raise click.ClickException(str(e))
    for key, value in effective.model_dump(mode="json").items():
        click.echo(f"  {key}: {value}")


@settings.command("set")
@click.argument("key")
@click.argument("value")
def settings_set(key, value):
    """Set KEY to VALUE.

    VALUE is parsed as JSON when possible, so lists and booleans work:

    \b
        nomina-calc settings set default_region madrid
        nomina-calc settings set strict_mode true
        nomina-calc settings set fatal_severities '["CRITICAL", "ERROR"]'
    """
    if key not in EngineSettings.model_fields:
        raise click.ClickException(
            f"Unknown setting '{key}'. Known: {', '.join(sorted(EngineSettings.model_fields))}"
        )
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        parsed = value

    candidate = {**load_settings(), key: parsed}
    try:
        EngineSettings.model_validate(candidate)
    except ValueError as e:
        raise click.ClickException(f"Invalid value for {key}: {e}")

    path = set_setting(key, parsed)
    click.echo(f"Set {key} = {parsed!r} in {path}")


@settings.command("unset")
@click.argument("key")
def settings_unset(key):
    """Remove KEY from settings.json (revert to default)."""
    if unset_setting(key):
        click.echo(f"Removed {key}.")
    else:
        click.echo(f"{key} was not set.")
