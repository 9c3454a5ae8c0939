"""
AucEngine CLI - Command Line Interface for the Dutch auction engine

Main entry point for all CLI commands. State lives in --data-dir (SQLite
database plus one JSON file per named account).
"""

import json
import sys
import click
from pathlib import Path

from aucengine.core.config import load_config
from aucengine.utils.logger import setup_logging


def resolve_address(ctx, name_or_address: str) -> bytes:
    """Turn an account name or 0x address into address bytes."""
    from aucengine.crypto import hex_to_bytes, is_valid_address

    if is_valid_address(name_or_address):
        return hex_to_bytes(name_or_address)

    account_path = ctx.obj["config"].data_dir / "accounts" / f"{name_or_address}.json"
    if not account_path.exists():
        raise click.ClickException(
            f"Account '{name_or_address}' not found. Create with: aucengine account create --name {name_or_address}"
        )
    data = json.loads(account_path.read_text())
    return hex_to_bytes(data["address"])


def get_engine(ctx):
    """Open the persistent engine once per invocation."""
    from aucengine.core.bootstrap import open_engine

    if "engine" not in ctx.obj:
        ctx.obj["engine"] = open_engine(ctx.obj["config"])
    return ctx.obj["engine"]


def fail(message: str):
    click.echo(f"❌ {message}")
    sys.exit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-dir", default=None, help="Data directory (default: $AUCENGINE_DATA_DIR or ~/.aucengine)")
@click.version_option(version="0.1.0")
@click.pass_context
def cli(ctx, debug, data_dir):
    """AucEngine - Dutch auction settlement engine"""
    import logging
    import os

    config = load_config()
    if data_dir:
        config.data_dir = Path(data_dir).expanduser()
    elif not os.environ.get("AUCENGINE_DATA_DIR"):
        config.data_dir = Path("~/.aucengine").expanduser()
    if debug:
        config.log_level = logging.DEBUG

    setup_logging(level=config.log_level, log_dir=str(config.log_dir), log_to_file=config.log_to_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    config.data_dir.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Account Commands
# =============================================================================

@cli.group()
def account():
    """Account management commands"""
    pass


@account.command("create")
@click.option("--name", default="default", help="Account name")
@click.pass_context
def account_create(ctx, name):
    """Create a new named account"""
    from aucengine.crypto import generate_keypair, bytes_to_hex

    account_path = ctx.obj["config"].data_dir / "accounts" / f"{name}.json"
    if account_path.exists():
        fail(f"Account '{name}' already exists")

    kp = generate_keypair()
    account_path.parent.mkdir(parents=True, exist_ok=True)
    account_path.write_text(json.dumps({
        "name": name,
        "address": kp.address_hex,
        "public_key": bytes_to_hex(kp.public_key),
    }, indent=2))

    click.echo(f"✓ Account created: {name}")
    click.echo(f"  Address: {kp.address_hex}")


@account.command("list")
@click.pass_context
def account_list(ctx):
    """List all accounts"""
    account_dir = ctx.obj["config"].data_dir / "accounts"
    files = sorted(account_dir.glob("*.json")) if account_dir.exists() else []
    if not files:
        click.echo("No accounts found.")
        return

    for account_file in files:
        data = json.loads(account_file.read_text())
        click.echo(f"  {data['name']}: {data['address']}")


@account.command("fund")
@click.argument("name")
@click.argument("amount", type=int)
@click.pass_context
def account_fund(ctx, name, amount):
    """Credit AMOUNT to an account"""
    from aucengine.core.ledger import LedgerError

    address = resolve_address(ctx, name)
    engine = get_engine(ctx)
    try:
        engine.ledger.mint(address, amount)
    except LedgerError as e:
        fail(str(e))
    click.echo(f"✓ {name} balance: {engine.ledger.get_balance(address)}")


@account.command("balance")
@click.argument("name")
@click.pass_context
def account_balance(ctx, name):
    """Show an account balance"""
    address = resolve_address(ctx, name)
    click.echo(f"{name}: {get_engine(ctx).ledger.get_balance(address)}")


# =============================================================================
# Auction Commands
# =============================================================================

@cli.group()
def auction():
    """Auction commands"""
    pass


@auction.command("create")
@click.option("--seller", required=True, help="Seller account name or address")
@click.option("--starting-price", required=True, type=int, help="Price at creation")
@click.option("--discount-rate", required=True, type=int, help="Price decrease per second")
@click.option("--item", required=True, help="Item label")
@click.option("--duration", required=True, type=int, help="Buying window in seconds")
@click.pass_context
def auction_create(ctx, seller, starting_price, discount_rate, item, duration):
    """List a new auction"""
    from aucengine.core.auction import AuctionError

    engine = get_engine(ctx)
    try:
        auction_id = engine.create_auction(
            resolve_address(ctx, seller), starting_price, discount_rate, item, duration
        )
    except AuctionError as e:
        fail(e.message)

    created = engine.get_auction(auction_id)
    click.echo(f"✓ Auction {auction_id} created: {item}")
    click.echo(f"  Ends at: {created.end_at}")


@auction.command("price")
@click.argument("auction_id", type=int)
@click.pass_context
def auction_price(ctx, auction_id):
    """Show the current price of an auction"""
    from aucengine.core.auction import AuctionError

    engine = get_engine(ctx)
    try:
        price = engine.get_price_for(auction_id)
    except AuctionError as e:
        fail(e.message)
    click.echo(str(price))


@auction.command("buy")
@click.argument("auction_id", type=int)
@click.option("--buyer", required=True, help="Buyer account name or address")
@click.option("--value", required=True, type=int, help="Payment attached to the purchase")
@click.pass_context
def auction_buy(ctx, auction_id, buyer, value):
    """Buy an auction at its current price"""
    from aucengine.core.auction import AuctionError

    engine = get_engine(ctx)
    try:
        final_price, refund = engine.buy(auction_id, resolve_address(ctx, buyer), value)
    except AuctionError as e:
        fail(e.message)

    click.echo(f"✅ Auction {auction_id} bought")
    click.echo(f"   Final price: {final_price}")
    click.echo(f"   Refund: {refund}")


@auction.command("show")
@click.argument("auction_id", type=int)
@click.pass_context
def auction_show(ctx, auction_id):
    """Show every stored field of an auction"""
    from aucengine.core.auction import AuctionError

    try:
        record = get_engine(ctx).get_auction(auction_id)
    except AuctionError as e:
        fail(e.message)
    click.echo(json.dumps(record.to_dict(), indent=2))


@auction.command("list")
@click.option("--active", is_flag=True, help="Only unsold auctions")
@click.pass_context
def auction_list(ctx, active):
    """List auctions"""
    auctions = get_engine(ctx).list_auctions(active_only=active)
    if not auctions:
        click.echo("No auctions found.")
        return

    for a in auctions:
        state = f"sold for {a.final_price}" if a.stopped else f"ends {a.end_at}"
        click.echo(f"  {a.auction_id}. {a.item} (start {a.starting_price}, -{a.discount_rate}/s, {state})")


# =============================================================================
# Events / Stats
# =============================================================================


@cli.command("events")
@click.option("--auction", "auction_id", default=None, type=int, help="Filter by auction id")
@click.pass_context
def events(ctx, auction_id):
    """Show emitted lifecycle events"""
    for event in get_engine(ctx).events.stored_events(auction_id):
        click.echo(f"  {event.name} {event.model_dump_json()}")


@cli.command("stats")
@click.pass_context
def stats(ctx):
    """Show engine statistics"""
    from aucengine.crypto import bytes_to_hex

    engine = get_engine(ctx)
    click.echo("AucEngine Statistics")
    click.echo("-" * 40)
    click.echo(f"  Owner: {bytes_to_hex(engine.owner)}")
    for key, value in engine.stats().items():
        click.echo(f"  {key}: {value}")


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
def demo():
    """Run an in-memory walkthrough with simulated time"""
    from aucengine.core.auction import AuctionEngine, AuctionError
    from aucengine.core.clock import ManualClock
    from aucengine.core.ledger import Ledger
    from aucengine.crypto import generate_address

    click.echo("=" * 60)
    click.echo("  AUCENGINE - DUTCH AUCTION DEMO")
    click.echo("=" * 60)
    click.echo()

    owner, seller, buyer = generate_address(), generate_address(), generate_address()
    clock = ManualClock()
    ledger = Ledger()
    engine = AuctionEngine(owner=owner, ledger=ledger, clock=clock)
    ledger.mint(buyer, 10_000_000)

    click.echo("📦 Seller lists 'fake item' at 1,000,000, -3/s for 60s...")
    auction_id = engine.create_auction(seller, 1_000_000, 3, "fake item", 60)
    click.echo(f"  ✓ Auction {auction_id} created")

    clock.advance(10)
    click.echo(f"⏳ 10s later the price is {engine.get_price_for(auction_id)}")

    click.echo("💸 Buyer pays 3,000,000...")
    final_price, refund = engine.buy(auction_id, buyer, 3_000_000)
    click.echo(f"  ✓ Final price: {final_price}, refund: {refund}")
    click.echo(f"  ✓ Seller: {ledger.get_balance(seller)}")
    click.echo(f"  ✓ Owner fee: {ledger.get_balance(owner)}")
    click.echo(f"  ✓ Buyer: {ledger.get_balance(buyer)}")

    try:
        engine.buy(auction_id, buyer, 3_000_000)
    except AuctionError as e:
        click.echo(f"  ✓ Second buy rejected: {e.message}")

    click.echo()
    click.echo(f"📊 {engine.stats()}")
    click.echo("✅ Demo complete!")


if __name__ == "__main__":
    cli()
