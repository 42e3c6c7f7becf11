"""Rule inspection commands: regions and sectors."""

import json
from pathlib import Path

import click

from nominacalc.sdk import (
    PayrollError,
    Severity,
    audit_region_rules,
    build_default_registry,
    load_engine_settings,
)
from nominacalc.sdk.rules import get_rules_dir, load_reference_brackets


def _load_registry():
    try:
        settings = load_engine_settings()
        return build_default_registry(Path(get_rules_dir(settings.rules_dir)), settings.tax_year)
    except PayrollError as e:
        raise click.ClickException(str(e))


def _format_brackets(brackets) -> str:
    parts = []
    for b in brackets:
        bound = "inf" if b.infinite else f"{b.up_to:,.0f}"
        parts.append(f"{bound}@{b.rate:g}%")
        if b.infinite:
            break
    return " ".join(parts)


@click.group()
def regions():
    """Inspect registered regions (tax schedules, social security)."""
    pass


@regions.command("list")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def regions_list(output_format):
    """List regions in registration order."""
    registry = _load_registry()
    entries = registry.list_regions()

    if output_format == "json":
        click.echo(json.dumps({rid: rule.name for rid, rule in entries}, indent=2, ensure_ascii=False))
        return

    for region_id, rule in entries:
        click.echo(f"{region_id:<20} {rule.name}")


@regions.command("show")
@click.argument("region_id")
def regions_show(region_id):
    """Show one region's brackets, minimums and contribution rates."""
    registry = _load_registry()
    rule = registry.get_region(region_id)
    if rule is None:
        raise click.ClickException(f"Unknown region: '{region_id}'")

    ss = rule.social_security
    click.echo(f"{rule.name} ({region_id})")
    click.echo(f"  State brackets:    {_format_brackets(rule.tax_schedule.state)}")
    click.echo(f"  Regional brackets: {_format_brackets(rule.tax_schedule.regional)}")
    click.echo(f"  Personal minimum:  {rule.minimums.personal:,.2f}")
    click.echo(f"  Contribution base: {ss.min_base:,.2f} - {ss.max_base:,.2f}")
    click.echo(f"  Employee rates:    {sum(ss.employee_rates.model_dump().values()):.2f}%")
    click.echo(f"  Employer rates:    {sum(ss.employer_rates.model_dump().values()):.2f}%")


@regions.command("audit")
@click.argument("region_id", required=False)
@click.option("--reference", type=click.Path(exists=True, dir_okay=False),
              help="YAML fixture to diff bracket schedules against")
@click.option("--verbose", "-v", is_flag=True, help="Also show INFO findings")
def regions_audit(region_id, reference, verbose):
    """Audit bracket schedules of one or all regions.

    Exits with an error if any region has ERROR findings.
    """
    registry = _load_registry()
    entries = registry.list_regions()
    if region_id:
        entries = [(rid, rule) for rid, rule in entries if rid == region_id]
        if not entries:
            raise click.ClickException(f"Unknown region: '{region_id}'")

    fixture = {}
    if reference:
        try:
            fixture = load_reference_brackets(Path(reference))
        except PayrollError as e:
            raise click.ClickException(str(e))

    error_count = 0
    for rid, rule in entries:
        findings = audit_region_rules(rid, rule, fixture.get(rid))
        shown = [f for f in findings if verbose or f.severity != Severity.INFO]
        errors = [f for f in findings if f.severity in (Severity.CRITICAL, Severity.ERROR)]
        error_count += len(errors)
        status = "FAIL" if errors else "ok"
        click.echo(f"{rid:<20} {status}")
        for f in shown:
            click.echo(f"    {f}")

    if error_count:
        raise click.ClickException(f"{error_count} region audit error(s)")


@click.group()
def sectors():
    """Inspect registered sectors (wage tables, complements)."""
    pass


@sectors.command("list")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def sectors_list(output_format):
    """List sectors with their strategies and extra payments."""
    registry = _load_registry()
    entries = registry.list_sectors()

    if output_format == "json":
        data = {
            sid: {
                "name": rule.name,
                "calculator": rule.calculator,
                "extra_payments_per_year": rule.extra_payments_per_year,
                "wage_tables": {table: sorted(levels) for table, levels in rule.wage_tables.items()},
            }
            for sid, rule in entries
        }
        click.echo(json.dumps(data, indent=2, ensure_ascii=False))
        return

    for sector_id, rule in entries:
        click.echo(f"{sector_id:<24} {rule.name} ({rule.extra_payments_per_year} extra payments)")
