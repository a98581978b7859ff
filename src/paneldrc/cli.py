"""paneldrc CLI entry point."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
import yaml

from paneldrc import __version__

_PROJECT_OPTION = click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)


@click.group()
@click.version_option(version=__version__, prog_name="paneldrc")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output (errors only).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool, quiet: bool) -> None:
    """paneldrc - design rule checks for electrical panels."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    if verbose:
        _log_to_stderr(ctx)


def _log_to_stderr(ctx: click.Context) -> None:
    """Echo paneldrc debug logging to stderr until the command finishes."""
    package_logger = logging.getLogger("paneldrc")
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    previous_level = package_logger.level
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)

    def restore() -> None:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)

    ctx.call_on_close(restore)


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(2)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@main.command()
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["rich", "json", "porcelain"]),
    default=None,
    help="Output format (default: rich if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if error-severity violations are found.",
)
@click.option(
    "--strict-rules",
    is_flag=True,
    default=False,
    help="Refuse malformed rules instead of reporting them.",
)
@_PROJECT_OPTION
@click.pass_context
def check(
    ctx: click.Context,
    *,
    fmt: str | None,
    strict: bool,
    strict_rules: bool,
    project: Path | None,
) -> None:
    """Run the rule book against the project's design.

    Exit codes: 0 = clean or violations without --strict,
    1 = errors with --strict, 2 = configuration error.
    """
    from paneldrc.drc import DrcError, run_check
    from paneldrc.drc import format_json as _format_json
    from paneldrc.drc import format_porcelain as _format_porcelain
    from paneldrc.drc import format_rich as _format_rich

    project_root = project or Path.cwd()

    if fmt is None:
        fmt = "rich" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_check(project_root, strict_rules=strict_rules or None)
    except DrcError as exc:
        _fail(str(exc))

    formatters = {
        "rich": _format_rich,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))
    if output and not (quiet and fmt == "rich" and not result.violations):
        click.echo(output)

    if strict and result.error_count:
        sys.exit(1)


# ---------------------------------------------------------------------------
# graph
# ---------------------------------------------------------------------------


@main.group()
def graph() -> None:
    """Convert between the rule book and the editor's node graph."""


@graph.command("export")
@click.option(
    "--rules",
    "rules_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Rule book to export (default: configured rules file).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write JSON here instead of stdout.",
)
@_PROJECT_OPTION
def graph_export(*, rules_file: Path | None, output: Path | None, project: Path | None) -> None:
    """Write the rule book as node graph JSON."""
    from paneldrc.catalog.loader import load_design, load_panels
    from paneldrc.config import load_config
    from paneldrc.rules.graph import graph_to_dict, rules_to_node_graph
    from paneldrc.rules.loader import load_rules

    project_root = project or Path.cwd()
    config = load_config(project_root)
    rules_path = rules_file or project_root / config.rules
    if not rules_path.is_file():
        _fail(f"Rules file not found: {rules_path}")

    try:
        rules = load_rules(rules_path)
        panels = []
        design_path = project_root / config.design
        library_path = project_root / config.panels
        if design_path.is_file():
            panels.extend(load_design(design_path).panels)
        if library_path.is_file():
            panels.extend(load_panels(library_path))
    except (OSError, yaml.YAMLError, ValueError) as exc:
        _fail(str(exc))

    text = json.dumps(graph_to_dict(rules_to_node_graph(rules, panels)), indent=2)
    if output is None:
        click.echo(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        click.echo(f"Wrote {output}")


@graph.command("import")
@click.argument("graph_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the rule book here instead of stdout.",
)
def graph_import(*, graph_file: Path, output: Path | None) -> None:
    """Rebuild a rule book (YAML) from node graph JSON.

    Every constraint node becomes its own rule.
    """
    from paneldrc.rules.graph import graph_from_dict, node_graph_to_rules
    from paneldrc.rules.serialization import rule_to_dict

    try:
        data = json.loads(graph_file.read_text(encoding="utf-8"))
        node_graph = graph_from_dict(data)
    except (OSError, ValueError) as exc:
        _fail(f"Invalid node graph {graph_file.name}: {exc}")

    rules = node_graph_to_rules(node_graph.nodes, node_graph.edges)
    document = {"version": 1, "rules": [rule_to_dict(r) for r in rules]}
    text = yaml.safe_dump(document, sort_keys=False, allow_unicode=True)
    if output is None:
        click.echo(text, nl=False)
    else:
        output.write_text(text, encoding="utf-8")
        click.echo(f"Wrote {len(rules)} rules to {output}")


# ---------------------------------------------------------------------------
# catalog
# ---------------------------------------------------------------------------


@main.group()
def catalog() -> None:
    """Query the component and combinator libraries."""


def _load_catalog(project: Path | None) -> tuple[list, list]:
    from paneldrc.catalog.loader import load_combinators, load_components
    from paneldrc.config import load_config

    project_root = project or Path.cwd()
    config = load_config(project_root)
    components_path = project_root / config.components
    combinators_path = project_root / config.combinators
    try:
        components = load_components(components_path) if components_path.is_file() else []
        combinators = load_combinators(combinators_path) if combinators_path.is_file() else []
    except (OSError, yaml.YAMLError, ValueError) as exc:
        _fail(str(exc))
    return components, combinators


@catalog.command("filter")
@click.option("--width", type=float, required=True, help="Panel width in mm.")
@click.option("--type", "types", multiple=True, help="Component type (repeatable).")
@click.option("--combinators", "use_combinators", is_flag=True, help="Filter combinators instead.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@_PROJECT_OPTION
def catalog_filter(
    *,
    width: float,
    types: tuple[str, ...],
    use_combinators: bool,
    as_json: bool,
    project: Path | None,
) -> None:
    """List catalog entries sized for a panel of the given width."""
    from paneldrc.catalog.helpers import (
        filter_by_size_and_type,
        filter_combinators_by_size,
        panel_size_from_width,
    )

    components, combinators = _load_catalog(project)
    size = panel_size_from_width(width)
    if use_combinators:
        matches = filter_combinators_by_size(combinators, width, types or None)
        rows = [(c.id, c.name, "combinator", c.width, c.height) for c in matches]
    else:
        found = filter_by_size_and_type(components, width, types or None)
        rows = [(c.id, c.name, c.type, c.width, c.height) for c in found]

    if as_json:
        data = [
            {"id": r[0], "name": r[1], "type": r[2], "width": r[3], "height": r[4]} for r in rows
        ]
        click.echo(json.dumps({"panelSize": size, "matches": data}, indent=2))
        return

    if not rows:
        click.echo(f"No catalog entries for panel size {size}.")
        return

    from rich.console import Console
    from rich.table import Table

    table = Table(title=f"Panel size {size}", box=None, padding=(0, 1))
    table.add_column("id", style="cyan")
    table.add_column("name")
    table.add_column("type")
    table.add_column("width", justify="right")
    table.add_column("height", justify="right")
    for row_id, name, kind, w, h in rows:
        table.add_row(row_id, name, kind, f"{w:g}", f"{h:g}")
    Console().print(table)


_VALUE_KINDS = ("a", "v", "p", "brand", "series", "current", "pole")


@catalog.command("values")
@click.argument("kind", type=click.Choice(_VALUE_KINDS))
@_PROJECT_OPTION
def catalog_values(*, kind: str, project: Path | None) -> None:
    """Print the distinct values of a spec, one per line, in dropdown order."""
    from paneldrc.catalog import helpers

    components, combinators = _load_catalog(project)
    extractors = {
        "a": lambda: helpers.extract_a_values(components),
        "v": lambda: helpers.extract_v_values(components),
        "p": lambda: helpers.extract_p_values(components),
        "brand": lambda: helpers.extract_brand_values(combinators),
        "series": lambda: helpers.extract_series_values(combinators),
        "current": lambda: helpers.extract_current_a_values(combinators),
        "pole": lambda: helpers.extract_pole_values(combinators),
    }
    for value in extractors[kind]():
        click.echo(value)


# ---------------------------------------------------------------------------
# combinator
# ---------------------------------------------------------------------------


@main.group()
def combinator() -> None:
    """Inspect combinators."""


@combinator.command("dims")
@click.argument("combinator_id")
@_PROJECT_OPTION
def combinator_dims(*, combinator_id: str, project: Path | None) -> None:
    """Recompute a combinator's size from its member components and gaps."""
    from paneldrc.catalog.helpers import combinator_dimensions_from_catalog

    components, combinators = _load_catalog(project)
    target = next((c for c in combinators if c.id == combinator_id), None)
    if target is None:
        _fail(f"Unknown combinator '{combinator_id}'")

    dims = combinator_dimensions_from_catalog(target, components, combinators)
    click.echo(f"{target.name}: {dims.width:g} x {dims.height:g} mm")
    if (dims.width, dims.height) != (target.width, target.height):
        click.echo(f"  stored: {target.width:g} x {target.height:g} mm (out of date)")
    if not target.gaps_valid:
        click.echo(
            f"  gaps: expected {len(target.component_ids) + 1}, found {len(target.gaps or ())}"
        )
