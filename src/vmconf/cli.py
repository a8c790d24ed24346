"""Command line interface for checking provisioner declaration files."""

from __future__ import annotations

import json
import logging
import pathlib
from typing import List, Optional

import typer

from vmconf.collection import ProvisionerCollection
from vmconf.loader import load_layers
from vmconf.registry import get_registry
from vmconf.settings import get_settings

app = typer.Typer(no_args_is_help=True, help="Inspect and validate VM provisioner declarations")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    level = logging.DEBUG if verbose else get_settings().log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load(files: List[pathlib.Path]) -> ProvisionerCollection:
    try:
        collection = load_layers(files, get_registry())
        collection.finalize()
    except (ValueError, TypeError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1)
    return collection


@app.command("kinds")
def list_kinds() -> None:
    """List registered provisioner types."""

    registry = get_registry()
    kinds = registry.list_kinds()
    if not kinds:
        typer.echo("No provisioner types registered.")
        return

    typer.echo(f"{'TYPE':<14} CONFIG")
    for kind in kinds:
        factory = registry.schema_factory_for(kind)
        typer.echo(f"{kind:<14} {getattr(factory, '__name__', repr(factory))}")


@app.command("check")
def check(
    files: List[pathlib.Path] = typer.Argument(
        ..., help="Declaration files, later files override earlier ones"
    ),
    strict: Optional[bool] = typer.Option(
        None, "--strict/--no-strict", help="Fail on unknown provisioner types"
    ),
    root: Optional[pathlib.Path] = typer.Option(
        None, "--root", help="Directory relative host paths resolve against"
    ),
) -> None:
    """Merge, finalize and validate provisioner declarations."""

    collection = _load(files)
    fail_on_unknown = get_settings().STRICT if strict is None else strict

    if not fail_on_unknown:
        for declaration in collection:
            if declaration.invalid:
                typer.echo(
                    f"Warning: {declaration.id}: provisioner '{declaration.kind}' not found; skipped",
                    err=True,
                )

    report = collection.validate(
        root or files[0].resolve().parent, include_unknown=fail_on_unknown
    )
    if report:
        for declaration_id, errors in report.items():
            typer.echo(f"{declaration_id}:")
            for error in errors:
                typer.echo(f"  - {error}")
        raise typer.Exit(1)

    typer.echo(f"OK: {len(collection)} provisioner(s) valid.")


@app.command("show")
def show(
    files: List[pathlib.Path] = typer.Argument(
        ..., help="Declaration files, later files override earlier ones"
    ),
) -> None:
    """Print the merged, finalized declarations as JSON."""

    collection = _load(files)
    typer.echo(json.dumps([item.as_dict() for item in collection], indent=2))


if __name__ == "__main__":
    app()
