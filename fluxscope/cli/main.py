"""fluxscope command-line interface.

Every command prints JSON to stdout; errors go to stderr with exit code 1.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import click

from fluxscope import __version__
from fluxscope.app import FluxScopeApp
from fluxscope.config import load_config
from fluxscope.errors import FluxScopeError
from fluxscope.models.kinds import BUILTIN_KINDS, FLUX_KINDS, kind_from_alias, kind_role, supports_graph

_BUILTIN_BY_LOWER = {kind.lower(): kind for kind in BUILTIN_KINDS}


def _normalize_kind(value: str) -> str:
    flux_kind = kind_from_alias(value)
    if flux_kind is not None:
        return flux_kind.value
    builtin = _BUILTIN_BY_LOWER.get(value.strip().lower())
    if builtin is not None:
        return builtin
    raise click.BadParameter(f"unknown resource type {value!r}", param_hint="KIND")


def _run(ctx: click.Context, operation: Callable[[FluxScopeApp], Awaitable[Any]]) -> None:
    """Start the app, run *operation*, print its result as JSON."""

    async def _main() -> Any:
        async with FluxScopeApp(ctx.obj["config"]) as app:
            return await operation(app)

    try:
        result = asyncio.run(_main())
    except FluxScopeError as exc:
        click.echo(f"error: {exc}", err=True)
        ctx.exit(1)
    click.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


_namespace_option = click.option(
    "--namespace", "-n", default=None, help="Namespace (defaults to FLUXSCOPE_NAMESPACE or flux-system)"
)


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(__version__, prog_name="fluxscope")
@click.option("--context", default=None, help="kubeconfig context to use")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Override FLUXSCOPE_LOG_LEVEL",
)
@click.pass_context
def cli(ctx: click.Context, context: str | None, log_level: str | None) -> None:
    """Trace Flux resources to their sources and map what they applied."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    if context:
        config.kube.context = context
    if log_level:
        config.log.level = log_level
    ctx.obj = {"config": config}


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("kind")
@click.argument("name")
@_namespace_option
@click.pass_context
def trace(ctx: click.Context, kind: str, name: str, namespace: str | None) -> None:
    """Walk KIND/NAME up to the Flux source it came from."""
    resolved = _normalize_kind(kind)
    _run(ctx, lambda app: app.trace(resolved, name, namespace))


@cli.command()
@click.argument("kind")
@click.argument("name")
@_namespace_option
@click.pass_context
def graph(ctx: click.Context, kind: str, name: str, namespace: str | None) -> None:
    """Build the upstream/downstream graph around a Flux resource."""
    resolved = _normalize_kind(kind)
    if not supports_graph(resolved):
        raise click.BadParameter(f"{resolved} does not support the graph view", param_hint="KIND")
    _run(ctx, lambda app: app.graph(resolved, name, namespace))


@cli.command()
@click.argument("kind")
@click.argument("name")
@_namespace_option
@click.pass_context
def inventory(ctx: click.Context, kind: str, name: str, namespace: str | None) -> None:
    """List what a Flux resource applied, grouped by bucket."""
    resolved = _normalize_kind(kind)
    _run(ctx, lambda app: app.inventory(resolved, name, namespace))


@cli.command()
def kinds() -> None:
    """List the Flux kinds fluxscope understands."""
    rows = [
        {
            "kind": kind.value,
            "apiVersion": spec.api_version,
            "plural": spec.plural,
            "role": kind_role(kind.value).value,
            "graph": supports_graph(kind.value),
        }
        for kind, spec in FLUX_KINDS.items()
    ]
    click.echo(json.dumps(rows, indent=2))
