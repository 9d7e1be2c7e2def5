"""CLI entry point for clusterlayout."""

import dataclasses
import json
import logging
import sys

import click

from clusterlayout.config import LayoutConfig
from clusterlayout.ir.cluster_graph import ClusterGraph
from clusterlayout.layout.engine import full_layout
from clusterlayout.layout.types import LayoutResult
from clusterlayout.parsers import parse


def format_text(result: LayoutResult) -> str:
    lines = []
    width = len(str(max(result.layer_count - 1, 0)))
    for i, content in enumerate(result.layers):
        lines.append(f"{i:>{width}}: {' '.join(content)}")
    lines.append(f"crossings: {result.crossings}")
    return "\n".join(lines) + "\n"


def format_json(result: LayoutResult) -> str:
    return json.dumps(dataclasses.asdict(result), indent=2) + "\n"


@click.command()
@click.argument("input", required=False, type=click.Path(exists=True))
@click.option("--runs", "-r", "runs", type=int, default=15, help="Restart rounds of the crossing reduction")
@click.option("--fails", "-f", "fails", type=int, default=4, help="Non-improving sweeps tolerated per round")
@click.option("--seed", "-s", "seed", type=int, default=0, help="Seed for the random restarts")
@click.option("--virtual-clusters", "virtual_clusters", is_flag=True, help="Group adjacent siblings into virtual clusters")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Print layer contents as text or the full result as JSON",
)
@click.option("--output", "-o", "output", type=str, default=None, help="Write output to this file instead of stdout")
@click.option("--verbose", "-v", "verbose", is_flag=True, help="Log progress of every phase to stderr")
def main(
    input: str | None,
    runs: int,
    fails: int,
    seed: int,
    virtual_clusters: bool,
    output_format: str,
    output: str | None,
    verbose: bool,
) -> None:
    """Layer a Mermaid flowchart whose subgraphs are clusters."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if input:
        try:
            with open(input) as f:
                text = f.read()
        except OSError as e:
            click.echo(f"error: cannot read '{input}': {e}", err=True)
            sys.exit(1)
    else:
        text = sys.stdin.read()

    try:
        ast_graph = parse(text)
    except ValueError as e:
        click.echo(f"parse error:\n{e}", err=True)
        sys.exit(1)

    config = LayoutConfig(fails=fails, runs=runs, seed=seed, virtual_clusters=virtual_clusters)
    try:
        result = full_layout(ClusterGraph.from_ast(ast_graph), config)
    except ValueError as e:
        click.echo(f"error: {e}", err=True)
        sys.exit(1)

    rendered = format_json(result) if output_format == "json" else format_text(result)

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
