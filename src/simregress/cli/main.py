"""CLI entry point for simregress."""
from __future__ import annotations

import logging
import sys
from typing import List, Optional

import click

from simregress import __version__, bootstrap
from simregress.baselines import BaselineStore
from simregress.core.models import ToleranceProfile
from simregress.reporting import JsonReporter, Reporter, TerminalReporter
from simregress.suite import CaptureOptions, VerifyOptions, load_suite
from simregress.suite.runner import capture_baselines, list_cases, verify_baselines

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
DEFAULT_JSON_REPORT = "simregress-report.json"


class CliState:
    """Holds global CLI state."""

    def __init__(self, verbose: bool) -> None:
        self.verbose = verbose


def _print_version(_: click.Context, __: click.Parameter, value: bool) -> None:
    if not value or click.get_current_context().resilient_parsing:
        return
    click.echo(f"simregress {__version__}")
    raise click.exceptions.Exit()


def _parse_tolerance(_: click.Context, __: click.Parameter, value: Optional[str]):
    if value is None:
        return None
    try:
        return ToleranceProfile.parse(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default="simregress.yaml",
    show_default=True,
    help="YAML suite file.",
)
report_option = click.option(
    "--report",
    "report_format",
    type=click.Choice(["terminal", "json"]),
    default="terminal",
    show_default=True,
    help="Report format (terminal by default).",
)
report_path_option = click.option("--report-path", type=str, help="When --report json, write to this path.")
no_color_option = click.option("--no-color", is_flag=True, help="Disable ANSI colors in terminal output.")


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show the simregress version and exit.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Regression verification of simulation results against stored baselines."""

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    bootstrap()
    ctx.obj = CliState(verbose=verbose)


@cli.command()
@config_option
@click.option("--filter", "subdirectory", type=str, help="Only capture cases below this subdirectory.")
@click.option("--overwrite", is_flag=True, help="Replace existing baselines.")
@click.option("--verify", "verify_rerun", is_flag=True, help="Re-run each case and check it is reproducible.")
@report_option
@report_path_option
@no_color_option
@click.pass_obj
def capture(
    state: CliState,
    config_path: str,
    subdirectory: Optional[str],
    overwrite: bool,
    verify_rerun: bool,
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Run every case and store its results as the golden baseline."""

    options = CaptureOptions(subdirectory=subdirectory, overwrite=overwrite, verify=verify_rerun)
    try:
        config = load_suite(config_path)
        summary = capture_baselines(
            config, options, reporters=_build_reporters(report_format, report_path, no_color)
        )
    except Exception as exc:  # pragma: no cover - CLI error translation
        raise click.ClickException(str(exc)) from exc
    raise click.exceptions.Exit(summary.exit_code)


@cli.command()
@config_option
@click.option(
    "--tolerance",
    callback=_parse_tolerance,
    help="strict, normal, relaxed or an absolute threshold (overrides the suite file).",
)
@click.option("--case", "case_id", type=str, help="Verify only this case id.")
@click.option("--quick", is_flag=True, help="Also report whether the checksums match.")
@report_option
@report_path_option
@no_color_option
@click.pass_obj
def verify(
    state: CliState,
    config_path: str,
    tolerance,
    case_id: Optional[str],
    quick: bool,
    report_format: str,
    report_path: Optional[str],
    no_color: bool,
) -> None:
    """Re-run cases with baselines and compare against them."""

    options = VerifyOptions(tolerance=tolerance, case=case_id, quick=quick)
    try:
        config = load_suite(config_path)
        summary = verify_baselines(
            config, options, reporters=_build_reporters(report_format, report_path, no_color)
        )
    except Exception as exc:  # pragma: no cover - CLI error translation
        raise click.ClickException(str(exc)) from exc
    raise click.exceptions.Exit(summary.exit_code)


@cli.command("list")
@config_option
@click.pass_obj
def list_command(state: CliState, config_path: str) -> None:
    """List discovered cases and whether each has a baseline."""

    try:
        config = load_suite(config_path)
        entries = list_cases(config)
    except Exception as exc:  # pragma: no cover - CLI error translation
        raise click.ClickException(str(exc)) from exc
    for case, has_baseline in entries:
        marker = "✓" if has_baseline else " "
        click.echo(f"[{marker}] {case.case_id}")
    click.echo(f"{len(entries)} case(s), {sum(1 for _, has in entries if has)} with baseline")


@cli.command()
@config_option
@click.argument("case_id")
@click.pass_obj
def inspect(state: CliState, config_path: str, case_id: str) -> None:
    """Show a stored baseline and check its integrity."""

    try:
        config = load_suite(config_path)
        store = BaselineStore(config.baseline_root, config.extension)
        metadata = store.read_metadata(case_id)
        result = store.load(case_id)
        issues = store.check(case_id)
    except Exception as exc:  # pragma: no cover - CLI error translation
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Case:            {metadata.case_id}")
    click.echo(f"Location:        {store.case_dir(case_id)}")
    click.echo(f"Simulation time: {metadata.end_time!r}")
    click.echo(f"Timestep:        {metadata.timestep!r}")
    click.echo(f"Stored checksum: {metadata.fingerprint or 'null'}")
    click.echo(f"Recomputed:      {result.fingerprint}")
    click.echo(f"Signals ({len(result)}):")
    for series in result:
        click.echo(f"  {series.name}: {len(series)} point(s)")
    if issues:
        click.echo("Issues:")
        for issue in issues:
            click.echo(f"  - {issue}")
        raise click.exceptions.Exit(1)
    click.echo("No integrity issues found.")


def _build_reporters(report_format: str, report_path: Optional[str], no_color: bool) -> List[Reporter]:
    if report_format == "json":
        return [JsonReporter(report_path or DEFAULT_JSON_REPORT)]
    return [TerminalReporter(use_color=not no_color)]


def main(argv: Optional[list[str]] = None) -> int:
    """Program entry point for console_scripts shim."""

    argv = argv if argv is not None else sys.argv[1:]
    try:
        cli.main(args=argv, prog_name="simregress", standalone_mode=True)
    except click.ClickException as err:  # pragma: no cover - click handles display
        err.show()
        return err.exit_code
    except SystemExit as exc:  # click may raise exit code
        return int(exc.code or 0)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
