"""hostserve CLI - Command line interface."""

from __future__ import annotations

import json
import logging
import sys

import click
import pydantic
import structlog
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hostserve.core.config import (
    ServeSettings,
    flatten_config,
    get_settings,
    load_config_from_file,
)
from hostserve.core.exceptions import HostServeError, format_error_for_user
from hostserve.serve import (
    FileConfigStore,
    HandlerKind,
    HostnameIdentity,
    LocalAPIConfigStore,
    LocalAPIIdentity,
    ReconcileResult,
    ServeReconciler,
    StaticIdentity,
)

console = Console()


def _configure_logging(level: str) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def _fail(error: BaseException) -> None:
    code = error.code if isinstance(error, HostServeError) else "unexpected"
    console.print(
        Panel(
            f"[red]{escape(format_error_for_user(error))}[/red]",
            title=f"Error: {code}",
            border_style="red",
        )
    )
    sys.exit(1)


@click.group()
@click.option(
    "--config", "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML or TOML config file",
)
@click.option(
    "--store",
    type=click.Choice(["file", "localapi"]),
    default=None,
    help="Serve config backend (default: file)",
)
@click.option("--state-file", default=None, help="Serve config file for the file store")
@click.option("--dns-name", default=None, help="This node's DNS name")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: warning, use --verbose for debug)",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_file: str | None,
    store: str | None,
    state_file: str | None,
    dns_name: str | None,
    verbose: bool,
    log_level: str | None,
):
    """hostserve - Reconcile the host-local serve configuration.

    Examples:

        hostserve serve / proxy 3000

        hostserve serve /docs path ./site

        hostserve serve tcp --terminate-tls 5432

        hostserve serve ingress on
    """
    overrides: dict = {}
    if config_file:
        try:
            overrides.update(flatten_config(load_config_from_file(config_file)))
        except (OSError, ValueError) as e:
            console.print(f"[red]Failed to load config:[/red] {escape(str(e))}")
            sys.exit(1)

    cli_values = {
        "store": store,
        "state_file": state_file,
        "dns_name": dns_name,
        "log_level": log_level.lower() if log_level else None,
    }
    overrides.update({k: v for k, v in cli_values.items() if v is not None})

    try:
        settings = ServeSettings(**overrides) if overrides else get_settings()
    except pydantic.ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red] {escape(str(e))}")
        sys.exit(1)

    _configure_logging("debug" if verbose else settings.log_level)

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


def _build_reconciler(ctx: click.Context) -> ServeReconciler:
    from hostserve.client.localapi import LocalAPIClient

    settings: ServeSettings = ctx.obj["settings"]

    if settings.store == "localapi":
        client = LocalAPIClient(settings.localapi_url, timeout=settings.localapi_timeout)
        ctx.call_on_close(client.close)
        identity = (
            StaticIdentity(settings.dns_name) if settings.dns_name else LocalAPIIdentity(client)
        )
        return ServeReconciler(store=LocalAPIConfigStore(client), identity=identity)

    identity = StaticIdentity(settings.dns_name) if settings.dns_name else HostnameIdentity()
    return ServeReconciler(store=FileConfigStore(settings.state_file), identity=identity)


def _report(result: ReconcileResult) -> None:
    if result.changed:
        console.print("[green]Serve config updated[/green]")
    else:
        console.print("[dim]Serve config unchanged[/dim]")


class ServeGroup(click.Group):
    """Group that treats ``serve <mount-point> ...`` as ``serve mount ...``."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if args and not args[0].startswith("-") and args[0] not in self.commands:
            args = ["mount", *args]
        return super().parse_args(ctx, args)


@main.group(cls=ServeGroup)
def serve():
    """Serve content and local servers on this node.

    Examples:

      Proxy requests to a local web server on port 3000:

        hostserve serve / proxy 3000

      Serve files (or directories) from a local path:

        hostserve serve /some-file path /path/to/some-file

      Serve static text, mounted at "/":

        hostserve serve / text "Hello, world!"
    """
    pass


@serve.command("mount")
@click.argument("mount_point")
@click.argument("kind", type=click.Choice([k.value for k in HandlerKind]))
@click.argument("argument")
@click.pass_context
def serve_mount(ctx: click.Context, mount_point: str, kind: str, argument: str):
    """Mount a path, proxy or text handler at MOUNT_POINT."""
    reconciler = _build_reconciler(ctx)
    try:
        result = reconciler.apply_web(mount_point, HandlerKind(kind), argument)
    except HostServeError as e:
        _fail(e)
    _report(result)


@serve.command("show-config")
@click.pass_context
def serve_show_config(ctx: click.Context):
    """Show the current serve config as JSON."""
    reconciler = _build_reconciler(ctx)
    try:
        config = reconciler.show()
    except HostServeError as e:
        _fail(e)
    click.echo(config.to_json(indent=2) if config is not None else "null")


@serve.command("tcp")
@click.argument("port")
@click.option(
    "--terminate-tls/--no-terminate-tls",
    default=False,
    help="Terminate TLS before forwarding the TCP connection",
)
@click.pass_context
def serve_tcp(ctx: click.Context, port: str, terminate_tls: bool):
    """Forward TCP connections on port 443 to local PORT.

    Examples:

      Proxy TLS encrypted TCP packets to a local TCP server on port 5432:

        hostserve serve tcp 5432

      Proxy raw, TLS-terminated TCP packets to a local TCP server on port 5432:

        hostserve serve tcp --terminate-tls 5432
    """
    reconciler = _build_reconciler(ctx)
    try:
        result = reconciler.apply_tcp(port, terminate_tls=terminate_tls)
    except HostServeError as e:
        _fail(e)
    _report(result)


@serve.command("ingress")
@click.argument("state", type=click.Choice(["on", "off"]))
@click.pass_context
def serve_ingress(ctx: click.Context, state: str):
    """Enable or disable public ingress to this node."""
    reconciler = _build_reconciler(ctx)
    try:
        result = reconciler.apply_ingress(state == "on")
    except HostServeError as e:
        _fail(e)
    _report(result)


@serve.command("set-raw", hidden=True)
@click.pass_context
def serve_set_raw(ctx: click.Context):
    """Replace the serve config with a JSON document read from stdin."""
    reconciler = _build_reconciler(ctx)
    data = click.get_binary_stream("stdin").read()
    try:
        result = reconciler.apply_raw(data)
    except HostServeError as e:
        _fail(e)
    _report(result)


@main.command()
def version():
    """Show version information."""
    from hostserve import __version__

    console.print(f"[bold]Version:[/bold] {__version__}")
    console.print(f"[bold]Python:[/bold] {sys.version}")


@main.group()
def config():
    """View configuration settings.

    All settings can be configured via environment variables with the
    HOSTSERVE_ prefix.
    """
    pass


@config.command("show")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def config_show(ctx: click.Context, json_output: bool):
    """Show current configuration settings."""
    settings: ServeSettings = ctx.obj["settings"]
    display = settings.to_display_dict()

    if json_output:
        click.echo(json.dumps(display, indent=2))
        return

    table = Table(title="Serve Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Env Variable", style="dim")

    for key, value in display.items():
        value_str = escape(str(value)) if value is not None else "[dim]None[/dim]"
        table.add_row(key, value_str, f"HOSTSERVE_{key.upper()}")

    console.print(table)


if __name__ == "__main__":
    main()
