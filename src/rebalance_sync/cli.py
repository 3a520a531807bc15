"""Command line entry point for rebalance-sync"""
import asyncio
import logging
import sys
from datetime import datetime

import click
from rich.console import Console

from brokerage_base import BrokerError
from strategy_engine import StrategyEngineClient, StrategyEngineError
from sync_config import AppConfig, SyncTarget, load_config, load_sync_target
from tradestation_connector import TradeStationClient
from .confirmation import AutoConfirm, TerminalConfirmation
from .controller import ExecutionController
from .exceptions import SyncError
from .logger import configure_root_logger
from .report import print_orders, print_outcome

logger = logging.getLogger(__name__)

FATAL_ERRORS = (SyncError, BrokerError, StrategyEngineError)


def _trade_date_reached(target: SyncTarget) -> bool:
    if target.trade_date_reached(datetime.now()):
        return True
    click.echo("no trades necessary - next trade date has not arrived")
    return False


async def _run_sync(config: AppConfig, target: SyncTarget, confirm_yes: bool):
    confirmation = AutoConfirm() if confirm_yes else TerminalConfirmation()
    async with TradeStationClient(config.broker) as broker, StrategyEngineClient(config.strategy_engine) as engine:
        controller = ExecutionController(broker, engine, config, confirmation)
        return await controller.sync(target)


async def _run_preview(config: AppConfig, target: SyncTarget):
    async with TradeStationClient(config.broker) as broker, StrategyEngineClient(config.strategy_engine) as engine:
        controller = ExecutionController(broker, engine, config, AutoConfirm(echo=False))
        return await controller.preview(target)


def _setup(ctx: click.Context, target_path: str):
    try:
        config = load_config(ctx.obj.get('config_path'))
    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    configure_root_logger(config.logging)

    try:
        target = load_sync_target(target_path)
    except (OSError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    return config, target


@click.group()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False), default=None,
              help='YAML configuration file')
@click.pass_context
def cli(ctx, config_path):
    """Keep a TradeStation account in line with a strategy portfolio"""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


@cli.command()
@click.argument('target_path', type=click.Path(exists=True, dir_okay=False))
@click.option('-y', '--confirm-yes', is_flag=True, help='Submit orders without asking for confirmation')
@click.pass_context
def sync(ctx, target_path, confirm_yes):
    """Trade the account until it matches the portfolio"""
    config, target = _setup(ctx, target_path)
    if not _trade_date_reached(target):
        return

    try:
        outcome = asyncio.run(_run_sync(config, target, confirm_yes))
    except FATAL_ERRORS as e:
        logger.error(f"Sync failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    print_outcome(Console(), outcome)


@cli.command()
@click.argument('target_path', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def preview(ctx, target_path):
    """Show the orders a sync would place without submitting them"""
    config, target = _setup(ctx, target_path)
    if not _trade_date_reached(target):
        return

    try:
        orders, ledger = asyncio.run(_run_preview(config, target))
    except FATAL_ERRORS as e:
        logger.error(f"Preview failed: {e}")
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not orders:
        click.echo("No trades required - portfolio is already balanced")
        return
    print_orders(Console(), orders, ledger)


if __name__ == "__main__":
    cli()
