"""
AoH Calculator — CLI Entry Point
=================================
Command-line interface built with Click.  Installed as the ``aoh-calc``
command via ``pyproject.toml``.

Usage:
    aoh-calc 22694927 resident jung results/ --config-path config.json

Run ``aoh-calc --help`` for a full list of options.
"""

from __future__ import annotations

from pathlib import Path

import click

from shared.python.exceptions import AoHToolkitError

from aoh_calculator.config import Seasonality
from aoh_calculator.pipeline import AoHCalculator


@click.command(
    name="aoh-calc",
    help=(
        "Calculate the Area of Habitat for one species and season.\n\n"
        "TAXID is the IUCN taxon id, SEASON one of breeding, nonbreeding or "
        "resident, and EXPERIMENT names an experiment in the config file.  "
        "The AoH map is written to OUTPUT_DIRECTORY as TAXID-SEASON.tif."
    ),
)
@click.argument("taxid", type=click.IntRange(min=0))
@click.argument("season", type=click.Choice([s.value for s in Seasonality]))
@click.argument("experiment")
@click.argument(
    "output_directory",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--config-path", "-c",
    default=Path("config.json"),
    show_default=True,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Path to the JSON experiment configuration file.",
)
@click.option(
    "--results-path", "-r",
    default=None,
    type=click.Path(file_okay=True, dir_okay=False, path_type=Path),
    help="Optional JSON file to write a summary of the result to.",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Enable debug-level logging output.",
)
def main(
    taxid: int,
    season: str,
    experiment: str,
    output_directory: Path,
    config_path: Path,
    results_path: Path | None,
    verbose: bool,
) -> None:
    """Run one AoH calculation and print the total area.

    Args:
        taxid: IUCN taxon id.
        season: Season name.
        experiment: Experiment name in the config file.
        output_directory: Directory for the output GeoTIFF.
        config_path: JSON configuration file.
        results_path: Optional JSON summary path.
        verbose: When set, debug messages are printed.
    """
    try:
        calculator = AoHCalculator(
            taxid=taxid,
            season=Seasonality(season),
            experiment=experiment,
            output_dir=output_directory,
            config_path=config_path,
            results_path=results_path,
            verbose=verbose,
        )
        calculator.run()
    except AoHToolkitError as exc:
        click.secho(f"Error: {exc.message}", fg="red", err=True)
        raise SystemExit(1) from exc
    except Exception as exc:
        click.secho(f"Unexpected error: {exc}", fg="red", err=True)
        raise SystemExit(2) from exc

    click.echo(f"Area of habitat: {calculator.result.area}")


if __name__ == "__main__":
    main()  # type: ignore[call-arg]
