"""CLI entry point for graph-formatter."""

import logging
import sys
from enum import Enum
from typing import Any

import click

from graph_formatter.api import format_json
from graph_formatter.layout.sugiyama import LayoutError
from graph_formatter.types import CombineMethod, Direction, PositioningStrategy, RankingStrategy


def _choices(enum_type: type[Enum]) -> click.Choice:
    return click.Choice([member.value for member in enum_type], case_sensitive=False)


@click.command()
@click.argument("input", required=False, type=click.Path(exists=True))
@click.option("--output", "-o", "output", type=str, default=None, help="Write output to this file instead of stdout")
@click.option("--ranking", "-r", "ranking", type=_choices(RankingStrategy), default=None, help="Rank assignment strategy")
@click.option(
    "--positioning", "-p", "positioning", type=_choices(PositioningStrategy), default=None, help="Positioning strategy"
)
@click.option("--combine", "combine", type=_choices(CombineMethod), default=None, help="Four-direction combine method")
@click.option("--direction", "-d", "direction", type=_choices(Direction), default=None, help="Rank direction (lr, td)")
@click.option("--node-spacing", "node_spacing", type=float, default=None, help="Gap between nodes of one rank")
@click.option("--edge-spacing", "edge_spacing", type=float, default=None, help="Gap between ranks")
@click.option("--iterations", "-i", "iterations", type=int, default=None, help="Crossing minimisation sweeps")
@click.option("--verbose", "-v", "verbose", is_flag=True, help="Log per-phase statistics to stderr")
def main(
    input: str | None,
    output: str | None,
    ranking: str | None,
    positioning: str | None,
    combine: str | None,
    direction: str | None,
    node_spacing: float | None,
    edge_spacing: float | None,
    iterations: int | None,
    verbose: bool,
) -> None:
    """Lay out a JSON node-and-pin graph and print node coordinates as JSON."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if input:
        try:
            with open(input) as f:
                text = f.read()
        except OSError as e:
            click.echo(f"error: cannot read '{input}': {e}", err=True)
            sys.exit(1)
    else:
        text = sys.stdin.read()

    overrides: dict[str, Any] = {
        "ranking_strategy": ranking,
        "positioning_strategy": positioning,
        "combine_method": combine,
        "direction": direction,
        "node_spacing": node_spacing,
        "edge_spacing": edge_spacing,
        "max_ordering_iterations": iterations,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    try:
        rendered = format_json(text, overrides=overrides)
    except (ValueError, LayoutError) as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(1)

    if output:
        try:
            with open(output, "w") as f:
                f.write(rendered)
        except OSError as e:
            click.echo(f"error: cannot write '{output}': {e}", err=True)
            sys.exit(1)
    else:
        click.echo(rendered, nl=False)


if __name__ == "__main__":
    main()
