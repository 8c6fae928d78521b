"""
Main CLI application for tgsync.

Provides the application wiring (configuration, logging, telemetry) used
to build a SessionRefreshOrchestrator, and commands for inspecting the
configuration.
"""

import json
import logging
import sys
from typing import Optional

import click
import yaml

from tgsync import __version__
from tgsync.lib.config import ConfigurationError, ConfigurationManager, TGSyncConfig
from tgsync.lib.logging_config import setup_logging
from tgsync.lib.metrics import RefreshMetrics
from tgsync.lib.observability import TelemetryManager
from tgsync.services.async_transport import AsyncioTransport, Exchange
from tgsync.services.interfaces.transport import IConnectionState, ITransport
from tgsync.services.session_refresh import SessionRefreshOrchestrator


logger = logging.getLogger("tgsync.cli")


class TGSyncApplication:
    """Wires configuration, logging and telemetry around the orchestrator."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self.config_manager: Optional[ConfigurationManager] = None
        self.config: Optional[TGSyncConfig] = None
        self.telemetry: Optional[TelemetryManager] = None

    def initialize(self, configure_logging: bool = True) -> TGSyncConfig:
        """Load configuration and set up logging and telemetry."""
        self.config_manager = ConfigurationManager(self.config_path)
        self.config = self.config_manager.load_config()

        if configure_logging:
            setup_logging(self.config.logging.dict())

        if self.config.observability.enabled:
            self.telemetry = TelemetryManager(self.config.observability.dict())
            self.telemetry.initialize()

        logger.info("tgsync application initialized", extra={
            "config_file": self.config.config_file_path,
            "observability": self.config.observability.enabled
        })
        return self.config

    def create_transport(self, exchange: Exchange) -> AsyncioTransport:
        """Bind ``exchange`` to an AsyncioTransport using the configured timeout."""
        if self.config is None:
            raise ConfigurationError("Application not initialized. Call initialize() first.")
        return AsyncioTransport(exchange, request_timeout=self.config.transport.request_timeout)

    def create_orchestrator(
        self,
        transport: ITransport,
        connection: Optional[IConnectionState] = None
    ) -> SessionRefreshOrchestrator:
        """Build an orchestrator for ``transport`` using the loaded configuration."""
        if self.config is None:
            raise ConfigurationError("Application not initialized. Call initialize() first.")

        metrics = None
        tracer = None
        if self.telemetry is not None:
            metrics = RefreshMetrics(self.telemetry.get_meter())
            tracer = self.telemetry.get_tracer()

        return SessionRefreshOrchestrator(
            transport,
            connection=connection,
            config=self.config.refresh,
            metrics=metrics,
            tracer=tracer
        )

    def shutdown(self) -> None:
        """Flush telemetry."""
        if self.telemetry is not None:
            self.telemetry.shutdown()
            self.telemetry = None
        logger.info("tgsync application shut down")


def _load(ctx) -> ConfigurationManager:
    manager = ConfigurationManager(ctx.obj.get('config_path'))
    try:
        manager.load_config()
    except ConfigurationError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if ctx.obj.get('debug'):
        manager.get_config().debug = True
    return manager


@click.group()
@click.option('--config', '-c', help='Configuration file path')
@click.option('--debug', is_flag=True, help='Enable debug logging and debug mode')
@click.version_option(__version__, prog_name="tgsync")
@click.pass_context
def cli(ctx, config, debug):
    """tgsync - session refresh orchestration for telegram-cli."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['debug'] = debug

    if debug:
        logging.basicConfig(level=logging.DEBUG)


@cli.command()
@click.pass_context
def validate(ctx):
    """Validate configuration file."""
    manager = _load(ctx)
    config = manager.get_config()

    click.echo(f"Configuration: {config.config_file_path or 'defaults'}")
    warnings = manager.validate_config()
    if warnings:
        click.echo("Warnings:")
        for warning in warnings:
            click.echo(f"  - {warning}")
    click.echo("Configuration is valid")


@cli.command('show-config')
@click.option('--output-format', '-f', type=click.Choice(['yaml', 'json']), default='yaml', help='Output format')
@click.pass_context
def show_config(ctx, output_format):
    """Print the effective configuration."""
    config = _load(ctx).get_config()
    data = config.dict(exclude={'config_file_path'})

    if output_format == 'json':
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


@cli.command('export-config')
@click.option('--output', '-o', type=click.Path(dir_okay=False), required=True, help='Output file path')
@click.pass_context
def export_config(ctx, output):
    """Write the effective configuration to a YAML file."""
    config = _load(ctx).get_config()
    data = config.dict(exclude={'config_file_path'})

    with open(output, 'w') as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)

    click.echo(f"Configuration exported to {output}")


def main() -> None:
    cli(obj={})


if __name__ == '__main__':
    main()
