"""CLI for the ledger RPC client.

Commands:
- height: Latest block height
- program: Program source
- program-exists: Whether a program is deployed
- mapping: One mapping value
- mappings: Several mapping values, looked up concurrently
- tx: Raw transaction JSON
- tx-status: Classified transaction status
- block: Raw block JSON
- wait-tx: Poll a transaction until it is confirmed or fails
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Protocol

import httpx
import typer
from rich import print as rprint
from rich.markup import escape

from . import __version__
from .application.polling import wait_for_transaction
from .config import LedgerConfig
from .config_file import load_ledger_config_file
from .domain.lookup import Lookup
from .exceptions import LedgerRpcError
from .protocols import LedgerReader


class DependenciesBuilder(Protocol):
    """Protocol for constructing CLI dependencies."""

    def __call__(self, *, config: LedgerConfig) -> CliDependencies:
        """Build dependencies for CLI commands."""
        ...


@dataclass(frozen=True)
class CliDependencies:
    """Concrete dependencies required by the CLI."""

    reader: LedgerReader


@dataclass(frozen=True)
class CliContext:
    """Runtime CLI context for a single command invocation."""

    config: LedgerConfig
    deps_builder: DependenciesBuilder

    def build_dependencies(self) -> CliDependencies:
        """Return dependencies using the configured builder."""
        return self.deps_builder(config=self.config)


class CliContextNotInitialisedError(typer.BadParameter):
    """Raised when CLI context is missing."""

    def __init__(self) -> None:
        super().__init__("CLI context is not initialised. Use the ledger-rpc entry point.")


class MissingProgramIdError(typer.BadParameter):
    """Raised when no program id is given and none is configured."""

    def __init__(self) -> None:
        super().__init__("Pass a program id or set LEDGER_PROGRAM_ID.")


def _get_context(ctx: typer.Context) -> CliContext:
    if not isinstance(ctx.obj, CliContext):
        raise CliContextNotInitialisedError()
    return ctx.obj


def _program_id(state: CliContext, program_id: str | None) -> str:
    resolved = program_id or state.config.program_id
    if not resolved:
        raise MissingProgramIdError()
    return resolved


def _run[ResultT](
    state: CliContext, operation: Callable[[LedgerReader], Awaitable[ResultT]]
) -> ResultT:
    """Run one async operation against a freshly built reader, closing it afterwards."""

    async def runner() -> ResultT:
        reader = state.build_dependencies().reader
        try:
            return await operation(reader)
        finally:
            await reader.aclose()

    try:
        return asyncio.run(runner())
    except (LedgerRpcError, httpx.HTTPError) as exc:
        rprint(f"[red]✗ {escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc


def _version_callback(value: bool) -> None:
    if value:
        rprint(__version__)
        raise typer.Exit()


def _print_lookup(label: str, lookup: Lookup[str] | Lookup[dict[str, object]]) -> None:
    if lookup.is_found:
        value = lookup.value
        text = json.dumps(value, indent=2) if isinstance(value, dict) else str(value)
        rprint(f"[green]{escape(label)}:[/green] {escape(text)}")
    elif lookup.is_absent:
        rprint(f"[yellow]{escape(label)}: not found[/yellow]")
    else:
        rprint(f"[red]{escape(label)}: not available[/red] ({escape(str(lookup.error))})")


def create_app(deps_builder: DependenciesBuilder) -> typer.Typer:
    """Create a Typer app wired with the provided dependencies builder."""
    app = typer.Typer(
        add_completion=False,
        help="Read-only client for a ledger node's HTTP API.",
    )

    @app.callback()
    def main(
        ctx: typer.Context,
        config_path: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="TOML config file ([ledger] table) overriding environment values",
            ),
        ] = None,
        profile: Annotated[
            str | None,
            typer.Option(
                "--profile",
                help="Network profile (mainnet, testnet, localnet)",
            ),
        ] = None,
        base_url: Annotated[
            str | None,
            typer.Option("--base-url", help="Node base URL"),
        ] = None,
        network: Annotated[
            str | None,
            typer.Option("--network", help="Network id used in request paths"),
        ] = None,
        verbose: Annotated[
            bool,
            typer.Option("--verbose", "-v", help="Log retries and lookup failures"),
        ] = False,
        version: Annotated[
            bool,
            typer.Option(
                "--version",
                callback=_version_callback,
                is_eager=True,
                help="Show the version and exit",
            ),
        ] = False,
    ) -> None:
        """Initialise CLI context."""
        _ = version
        config = LedgerConfig.from_env()
        if profile is not None:
            config = config.with_profile(profile)
        if config_path is not None:
            config = config.with_file_overrides(load_ledger_config_file(config_path))
        config = config.with_overrides(
            base_url=base_url,
            network=network,
            verbose=True if verbose else None,
        )
        ctx.obj = CliContext(config=config, deps_builder=deps_builder)

    @app.command()
    def height(ctx: typer.Context) -> None:
        """Print the latest block height."""
        state = _get_context(ctx)
        value = _run(state, lambda reader: reader.get_height())
        rprint(f"[green]Height:[/green] {value}")

    @app.command()
    def program(
        ctx: typer.Context,
        program_id: Annotated[str | None, typer.Argument(help="Program id")] = None,
    ) -> None:
        """Print a program's source."""
        state = _get_context(ctx)
        resolved = _program_id(state, program_id)
        source = _run(state, lambda reader: reader.get_program(resolved))
        rprint(escape(source))

    @app.command(name="program-exists")
    def program_exists(
        ctx: typer.Context,
        program_id: Annotated[str | None, typer.Argument(help="Program id")] = None,
    ) -> None:
        """Report whether a program is deployed (exit code 1 if not)."""
        state = _get_context(ctx)
        resolved = _program_id(state, program_id)
        exists = _run(state, lambda reader: reader.program_exists(resolved))
        if exists:
            rprint(f"[green]✓ {resolved} is deployed[/green]")
            rprint(f"  {state.config.explorer_program_url(resolved)}")
            return
        rprint(f"[yellow]{resolved} is not deployed[/yellow]")
        raise typer.Exit(code=1)

    @app.command()
    def mapping(
        ctx: typer.Context,
        mapping_name: Annotated[str, typer.Argument(help="Mapping name")],
        key: Annotated[str, typer.Argument(help="Mapping key")],
        program_id: Annotated[
            str | None,
            typer.Option("--program", "-p", help="Program id (default: LEDGER_PROGRAM_ID)"),
        ] = None,
    ) -> None:
        """Print one mapping value."""
        state = _get_context(ctx)
        resolved = _program_id(state, program_id)
        value = _run(
            state, lambda reader: reader.get_mapping_value(resolved, mapping_name, key)
        )
        if value is None:
            rprint(f"[yellow]{escape(key)}: not found[/yellow]")
            return
        rprint(f"[green]{escape(key)}:[/green] {escape(value)}")

    @app.command()
    def mappings(
        ctx: typer.Context,
        mapping_name: Annotated[str, typer.Argument(help="Mapping name")],
        keys: Annotated[list[str], typer.Argument(help="Mapping keys")],
        program_id: Annotated[
            str | None,
            typer.Option("--program", "-p", help="Program id (default: LEDGER_PROGRAM_ID)"),
        ] = None,
    ) -> None:
        """Print several mapping values; a failing key does not stop the others."""
        state = _get_context(ctx)
        resolved = _program_id(state, program_id)
        results = _run(
            state, lambda reader: reader.lookup_mapping_values(resolved, mapping_name, keys)
        )
        for key, lookup in results.items():
            _print_lookup(key, lookup)

    @app.command()
    def tx(
        ctx: typer.Context,
        tx_id: Annotated[str, typer.Argument(help="Transaction id")],
    ) -> None:
        """Print a transaction as JSON."""
        state = _get_context(ctx)
        lookup = _run(state, lambda reader: reader.lookup_transaction(tx_id))
        _print_lookup(tx_id, lookup)
        if not lookup.is_found:
            raise typer.Exit(code=1)

    @app.command(name="tx-status")
    def tx_status(
        ctx: typer.Context,
        tx_id: Annotated[str, typer.Argument(help="Transaction id")],
    ) -> None:
        """Print a transaction's chain status."""
        state = _get_context(ctx)
        status = _run(state, lambda reader: reader.get_transaction_status(tx_id))
        rprint(f"[green]Status:[/green] {status}")
        rprint(f"  {state.config.explorer_transaction_url(tx_id)}")

    @app.command()
    def block(
        ctx: typer.Context,
        block_height: Annotated[int, typer.Argument(help="Block height", min=0)],
    ) -> None:
        """Print a block as JSON."""
        state = _get_context(ctx)
        lookup = _run(state, lambda reader: reader.lookup_block(block_height))
        _print_lookup(f"Block {block_height}", lookup)
        if not lookup.is_found:
            raise typer.Exit(code=1)

    @app.command(name="wait-tx")
    def wait_tx(
        ctx: typer.Context,
        tx_id: Annotated[str, typer.Argument(help="Transaction id")],
        max_attempts: Annotated[
            int,
            typer.Option("--max-attempts", help="Polls before giving up", min=1),
        ] = 60,
        interval: Annotated[
            float,
            typer.Option("--interval", help="Initial seconds between polls", min=0.0),
        ] = 2.0,
    ) -> None:
        """Wait for a transaction to be confirmed or fail."""
        state = _get_context(ctx)
        outcome = _run(
            state,
            lambda reader: wait_for_transaction(
                reader,
                tx_id,
                max_attempts=max_attempts,
                initial_interval_seconds=interval,
            ),
        )
        if outcome == "confirmed":
            rprint(f"[green]✓ Confirmed:[/green] {tx_id}")
            rprint(f"  {state.config.explorer_transaction_url(tx_id)}")
            return
        rprint(f"[red]✗ {outcome.capitalize()}:[/red] {tx_id}")
        raise typer.Exit(code=1)

    return app
