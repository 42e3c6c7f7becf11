"""Nomina Calc CLI - payroll breakdowns with independent verification."""

import json

import click

from nominacalc import __version__
from nominacalc.sdk import (
    PayrollError,
    CalculationRejectedError,
    configure_logging,
)

from .engine import load_engine
from .rules_commands import regions as regions_group
from .rules_commands import sectors as sectors_group
from .settings_commands import settings as settings_group


@click.group()
@click.version_option(version=__version__, prog_name="nomina-calc")
def cli():
    """Nomina Calc - monthly payroll breakdown and state-take calculator.

    Computes gross pay, social-insurance contributions, income-tax
    withholding and employer cost for a region and sector, then re-verifies
    every figure.

    Configuration is loaded from (in order):

    \b
    1. NOMINA_CALC_CONFIG_PATH environment variable
    2. ~/.config/nomina-calc/settings.json (XDG default)

    Run 'nomina-calc settings show' to see effective settings.
    """
    pass


cli.add_command(regions_group)
cli.add_command(sectors_group)
cli.add_command(settings_group)


def _worker_options(func):
    options = [
        click.option("--category", "-c", required=True, help="Worker category (e.g. cocinero)"),
        click.option("--table", "wage_table", default="TABLE_I", show_default=True, help="Wage table"),
        click.option("--level", "-l", required=True, help="Wage level (e.g. LEVEL_III)"),
        click.option("--shift", "shift_type", type=click.Choice(["continuous", "split"]), default="split",
                     show_default=True),
        click.option("--hotel", is_flag=True, help="Hotel establishment (default: restaurant)"),
        click.option("--interurban", is_flag=True, help="Interurban/metropolitan transport zone"),
        click.option("--training", is_flag=True, help="Apply training bonus"),
        click.option("--transport", is_flag=True, help="Apply transport allowance"),
        click.option("--meal", is_flag=True, help="Apply meal allowance"),
        click.option("--night", is_flag=True, help="Apply night-shift bonus"),
        click.option("--hazard", is_flag=True, help="Apply hazard bonus"),
        click.option("--uniform", is_flag=True, help="Apply uniform allowance"),
        click.option("--item", "items", multiple=True, help="Uniform/PPE item id (repeatable)"),
        click.option("--children", default=0, type=int, show_default=True, help="Dependent children"),
        click.option("--region", "region_id", default=None, help="Region id (default from settings)"),
        click.option("--sector", "sector_id", default=None, help="Sector id (default from settings)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _worker_from_options(kw: dict) -> dict:
    return {
        "category": kw["category"],
        "wage_table": kw["wage_table"],
        "level": kw["level"],
        "shift_type": kw["shift_type"],
        "is_hotel": kw["hotel"],
        "urban_transport": not kw["interurban"],
        "applies_training_bonus": kw["training"],
        "applies_transport": kw["transport"],
        "applies_meal_allowance": kw["meal"],
        "applies_night_shift": kw["night"],
        "applies_hazard_pay": kw["hazard"],
        "applies_uniform": kw["uniform"],
        "uniform_items": list(kw["items"]),
    }


def _print_summary(output: dict) -> None:
    jurisdiction = output["jurisdiccion"]
    income = output["ingresos"]
    deductions = output["deducciones"]
    employer = output["empresa"]
    state = output["expolio"]
    summary = output["resumen"]

    click.echo(f"Jurisdiction: {jurisdiction['region']} / {jurisdiction['sector']}")
    click.echo()
    click.echo(f"  Gross pay:              {income['salario_bruto_total']:>10,.2f}")
    click.echo(f"  Contribution base:      {income['base_cotizacion']:>10,.2f}")
    click.echo(f"  Employee contributions: {deductions['seguridad_social']['total']:>10,.2f}")
    click.echo(f"  Income tax withheld:    {deductions['irpf']['retencion_mensual']:>10,.2f}"
               f"  ({deductions['irpf']['tipo_efectivo']:.2f}% effective)")
    click.echo(f"  Net pay:                {summary['salario_neto']:>10,.2f}")
    click.echo()
    click.echo(f"  Employer contributions: {employer['seguridad_social']['total']:>10,.2f}")
    click.echo(f"  Employer cost:          {employer['coste_total']:>10,.2f}")
    click.echo(f"  State take:             {state['total']:>10,.2f}  ({state['porcentaje']:.2f}% of cost)")

    findings = output["validacion"]["hallazgos"]
    if findings:
        click.echo()
        click.echo("Findings:")
        for f in findings:
            click.echo(f"  [{f['severity']}] {f['code']}: {f['message']}")


@cli.command("compute")
@_worker_options
@click.option("--overtime-hours", default=0, type=int, help="Monthly overtime hours (sector checks)")
@click.option("--night-hours", default=0, type=int, help="Monthly night hours (sector checks)")
@click.option("--holidays", default=0, type=int, help="Holidays worked this month (sector checks)")
@click.option("--strict", is_flag=True, help="Treat audit divergences as fatal")
@click.option("--format", "output_format", type=click.Choice(["text", "json"]), default="text")
def compute(output_format, strict, overtime_hours, night_hours, holidays, children, region_id, sector_id, **kw):
    """Compute and verify one monthly payslip.

    Examples:

    \b
        nomina-calc compute -c cocinero -l LEVEL_III
        nomina-calc compute -c camarero -l LEVEL_II --transport --meal --region madrid
        nomina-calc compute -c limpiador -l LEVEL_III --sector limpieza_nacional \\
            --item bata_trabajo --item guantes_latex --format json
    """
    engine = load_engine(strict_mode=True if strict else None)
    options = {"overtime_hours": overtime_hours, "night_hours": night_hours, "holidays_worked": holidays}
    try:
        result = engine.compute_full_payroll(
            _worker_from_options(kw), {"num_children": children}, options,
            region_id=region_id, sector_id=sector_id,
        )
    except CalculationRejectedError as e:
        details = "; ".join(f"{f.code}: {f.message}" for f in e.fatal)
        raise click.ClickException(f"Calculation rejected: {details}")
    except PayrollError as e:
        raise click.ClickException(str(e))

    output = result.to_output()
    if output_format == "json":
        click.echo(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        _print_summary(output)


@cli.command("estimate")
@_worker_options
def estimate(children, region_id, sector_id, **kw):
    """Quick headline estimate (never fails on rejected calculations)."""
    engine = load_engine()
    result = engine.quick_estimate(_worker_from_options(kw), children, region_id=region_id, sector_id=sector_id)
    click.echo(json.dumps(result, indent=2))


@cli.command("compare")
@click.argument("first", type=click.File("r"))
@click.argument("second", type=click.File("r"))
def compare(first, second):
    """Compare two scenarios given as JSON files.

    Each file holds {"name", "worker", "family", "region_id", "sector_id"}.
    """
    engine = load_engine()
    try:
        comparison = engine.compare_scenarios(json.load(first), json.load(second))
    except PayrollError as e:
        raise click.ClickException(str(e))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid scenario JSON: {e}")
    click.echo(json.dumps(comparison, indent=2, ensure_ascii=False))


def main():
    """Entry point for the CLI."""
    configure_logging()
    cli()


if __name__ == "__main__":
    main()
