# Simple CLI for the position viewer
import asyncio
import click
from app.main import main as run_app


def _viewer():
    from app.containers import AppContainer
    from core.logging import configure_logging

    container = AppContainer()
    configure_logging(container.settings())
    return container.viewer_service()


def _echo_view(view):
    click.echo(f"Cash:         {view.cash}")
    click.echo(f"Realized:     {view.realized}")
    click.echo(f"Unrealized:   {view.unrealized}")
    click.echo(f"Total P/L:    {view.total_pnl}")
    click.echo(f"Market value: {view.market_value}")
    for holding in view.holdings:
        click.echo(
            f"  {holding.instrument:<6} qty={holding.quantity} avg={holding.average_cost} "
            f"price={holding.current_price} value={holding.market_value} pnl={holding.unrealized}"
        )


def _echo_message(viewer, topic):
    message = viewer.message(topic)
    if message is not None:
        click.echo(f"[{message.level.value}] {message.text}")
    return message


@click.group()
def cli():
    """Position viewer CLI"""
    pass


@cli.command()
def run():
    """Run the live position viewer"""
    click.echo("Starting position viewer...")
    asyncio.run(run_app())


@cli.command()
def profile():
    """Show supported instruments and the current portfolio"""
    async def _run():
        viewer = _viewer()
        try:
            await viewer.start()
            if _echo_message(viewer, "profile") is None:
                click.echo(f"Instruments: {', '.join(viewer.supported_instruments)}")
                _echo_view(viewer.view)
        finally:
            await viewer.stop()

    asyncio.run(_run())


@cli.command()
def trades():
    """Show the account's trade history"""
    async def _run():
        viewer = _viewer()
        try:
            await viewer.api_client.start()
            history = await viewer.reload_ledger()
            if _echo_message(viewer, "ledger") is None:
                for record in history:
                    stamp = record.timestamp.isoformat() if record.timestamp else "-"
                    click.echo(
                        f"{stamp:<32} {record.type.value:<4} "
                        f"{record.instrument:<6} {record.quantity:>6} @ {record.price}"
                    )
                click.echo(f"{len(history)} trades")
        finally:
            await viewer.stop()

    asyncio.run(_run())


@cli.command()
@click.argument("side", type=click.Choice(["buy", "sell"], case_sensitive=False))
@click.argument("instrument")
@click.argument("quantity")
def trade(side, instrument, quantity):
    """Submit a BUY or SELL order for QUANTITY units of INSTRUMENT"""
    async def _run():
        viewer = _viewer()
        try:
            await viewer.start()
            result = await viewer.submit_trade(side, quantity, instrument=instrument.upper())
            _echo_message(viewer, "trade")
            if result is not None:
                _echo_view(viewer.view)
        finally:
            await viewer.stop()

    asyncio.run(_run())


@cli.command()
@click.argument("amount")
def deposit(amount):
    """Deposit AMOUNT of cash into the account"""
    async def _run():
        viewer = _viewer()
        try:
            await viewer.start()
            result = await viewer.submit_deposit(amount)
            _echo_message(viewer, "deposit")
            if result is not None:
                _echo_view(viewer.view)
        finally:
            await viewer.stop()

    asyncio.run(_run())


if __name__ == "__main__":
    cli()
