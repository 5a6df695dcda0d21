# Copyright 2026 Pennyworth Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""flatree CLI - build and inspect forests from flat record files."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable

import click
from rich.console import Console
from rich.markup import escape

from flatree import __version__
from flatree.config import (
    VALID_ORPHAN_POLICIES,
    VALID_OUTPUT_FORMATS,
    ConfigLoadError,
    ConfigValidationError,
    FlatreeConfig,
    generate_config_template,
    get_config,
    get_flatree_home,
    get_global_config_path,
    get_project_config_path,
    load_config_file,
)
from flatree.records import FieldMapping, load_records
from flatree.render import OutputFormat, render_forest
from flatree.tree.builder import BuildResult, TreeBuilder, max_level
from flatree.tree.comparators import check_sort_fields, comparator_from_fields
from flatree.tree.errors import FlatreeError
from flatree.tree.node import Record

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.WARNING)
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("flatree").setLevel(level)


def _parse_root_value(raw: str | None) -> Any:
    """Interpret --root-value as JSON when possible ('0', 'null', '""')."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _resolve_config(ctx: click.Context) -> FlatreeConfig:
    config = ctx.obj.get("config")
    if config is None:
        config = get_config(ctx.obj.get("flatree_home"))
        config.validate()
        ctx.obj["config"] = config
    return config


def build_options(func: Callable) -> Callable:
    """Options shared by every command that builds a forest."""
    decorators = [
        click.argument("records_file", type=click.Path(path_type=Path)),
        click.option("--sort-by", help="Comma separated sort fields, '-' prefix for descending (e.g. order,-name)"),
        click.option(
            "--orphans", "orphan_policy",
            type=click.Choice(VALID_ORPHAN_POLICIES, case_sensitive=False),
            help="What to do with records whose parent is missing",
        ),
        click.option("--strict", is_flag=True, help="Exit non-zero on orphans or duplicate keys"),
        click.option("--key-field", help="Source field holding the record key"),
        click.option("--parent-field", help="Source field holding the parent key"),
        click.option("--name-field", help="Source field holding the display name"),
        click.option("--order-field", help="Source field holding the explicit order"),
        click.option("--root-value", help="Parent value marking a root, parsed as JSON when possible"),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _build(
    ctx: click.Context,
    records_file: Path,
    sort_by: str | None,
    orphan_policy: str | None,
    strict: bool,
    key_field: str | None,
    parent_field: str | None,
    name_field: str | None,
    order_field: str | None,
    root_value: str | None,
) -> BuildResult[Record]:
    """Load records, build the forest and report problems on stderr."""
    config = _resolve_config(ctx)
    quiet = ctx.obj.get("quiet") or config.defaults.quiet

    base = config.fields.to_mapping()
    mapping = FieldMapping(
        key=key_field or base.key,
        parent=parent_field or base.parent,
        name=name_field or base.name,
        order=order_field or base.order,
        id=base.id,
        root_value=_parse_root_value(root_value) if root_value is not None else base.root_value,
    )

    fields = sort_by.split(",") if sort_by is not None else config.defaults.sort_by
    policy = (orphan_policy or config.defaults.orphan_policy).lower()

    def report_orphan(context: Any, node_key: Any, parent_key: Any, err: Exception) -> None:
        logger.info("Orphan in %s: %s", context, err)
        if not quiet:
            err_console.print(f"[yellow]Warning:[/yellow] {escape(str(context))}: {escape(str(err))}")

    comparator = comparator_from_fields(fields)
    builder: TreeBuilder[Record] = TreeBuilder(
        comparator=comparator,
        orphan_policy=policy,
        error_handler=report_orphan,
        context=str(records_file),
    )

    records = load_records(records_file, mapping)
    if comparator is not None:
        check_sort_fields(comparator, records)
    result = builder.build_result(records)

    if result.duplicates and not quiet:
        keys = ", ".join(str(k) for k in result.duplicates)
        err_console.print(f"[yellow]Warning:[/yellow] duplicate keys (last one wins): {escape(keys)}")

    if strict and not result.ok:
        err_console.print(
            f"[red]Error:[/red] {len(result.orphans)} orphan(s), "
            f"{len(result.duplicates)} duplicate key(s) in {escape(str(records_file))}"
        )
        raise SystemExit(1)

    return result


def _run(func: Callable[[], None]) -> None:
    """Turn flatree errors into a red message and exit code 1."""
    try:
        func()
    except FlatreeError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    help="Logging level (default: WARNING)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress warnings about orphans and duplicates")
@click.option("--home", envvar="FLATREE_HOME", help="Override the directory holding config.json")
@click.pass_context
def main(ctx: click.Context, log_level: str, quiet: bool, home: str | None) -> None:
    """flatree - build forests from flat parent-keyed records."""
    _configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["flatree_home"] = Path(home) if home else get_flatree_home()


@main.command()
def version() -> None:
    """Show version."""
    console.print(f"flatree {__version__}")


@main.command()
@build_options
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(VALID_OUTPUT_FORMATS, case_sensitive=False),
    help="Output format",
)
@click.option("--depth", "-d", type=click.IntRange(min=0), help="Maximum depth to render")
@click.pass_context
def build(ctx: click.Context, output_format: str | None, depth: int | None, **build_kwargs) -> None:
    """Build a forest from RECORDS_FILE and render it."""

    def _do() -> None:
        result = _build(ctx, **build_kwargs)
        config = _resolve_config(ctx)
        fmt = OutputFormat((output_format or config.defaults.output_format).lower())
        output = render_forest(
            result.roots,
            format=fmt,
            depth=depth if depth is not None else config.render.depth,
            width=config.render.width,
            indent=config.render.indent,
        )
        click.echo(output.rstrip("\n"))

    _run(_do)


@main.command()
@build_options
@click.pass_context
def levels(ctx: click.Context, **build_kwargs) -> None:
    """Show the records of RECORDS_FILE grouped by level."""

    def _do() -> None:
        result = _build(ctx, **build_kwargs)
        config = _resolve_config(ctx)
        output = render_forest(result.roots, format=OutputFormat.LEVELS, width=config.render.width)
        click.echo(output.rstrip("\n"))

    _run(_do)


@main.command()
@build_options
@click.pass_context
def depth(ctx: click.Context, **build_kwargs) -> None:
    """Print the deepest level of the forest (-1 when empty)."""

    def _do() -> None:
        result = _build(ctx, **build_kwargs)
        click.echo(str(max_level(result.roots)))

    _run(_do)


@main.group()
def config() -> None:
    """Configuration management."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show effective configuration (merged from all sources).

    Output is JSON format for easy parsing.
    """
    _run(lambda: print(json.dumps(get_config(ctx.obj["flatree_home"]).to_dict(), indent=2)))


@config.command("init")
@click.option("--global", "is_global", is_flag=True, help="Create global config at ~/.flatree_config.json")
@click.option("--force", "-f", is_flag=True, help="Overwrite existing config file")
@click.pass_context
def config_init(ctx: click.Context, is_global: bool, force: bool) -> None:
    """Initialize a configuration file with template.

    By default, creates project config in .flatree/config.json.
    Use --global to create ~/.flatree_config.json instead.
    """
    if is_global:
        config_path = get_global_config_path()
    else:
        config_path = get_project_config_path(ctx.obj["flatree_home"])

    if config_path.exists() and not force:
        console.print(f"[red]Error:[/red] Config file already exists: {config_path}")
        console.print("Use --force to overwrite")
        raise SystemExit(1)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(generate_config_template(), indent=2))

    console.print(f"[green]Created config file:[/green] {config_path}")


@config.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate configuration files.

    Checks both global and project config files for valid JSON, known
    field names and valid values. Exits non-zero if errors are found.
    """
    errors = []
    validated = []

    candidates = [
        ("Global config", get_global_config_path()),
        ("Project config", get_project_config_path(ctx.obj["flatree_home"])),
    ]
    for label, path in candidates:
        if not path.exists():
            continue
        try:
            load_config_file(path, strict=True).validate()
            validated.append(f"{label}: {path}")
        except (ConfigLoadError, ConfigValidationError) as e:
            errors.append(f"{label} ({path}): {e}")

    for v in validated:
        console.print(f"[green]Valid:[/green] {v}")

    if errors:
        for e in errors:
            console.print(f"[red]Error:[/red] {escape(e)}")
        raise SystemExit(1)

    if not validated:
        console.print("[dim]No config files found to validate[/dim]")
    else:
        console.print("\n[green]All config files are valid![/green]")


if __name__ == "__main__":
    main()
