"""
Bootstrap - Wire a persistent engine from configuration.

On first start the engine owner (operating account) is generated and saved;
later starts reuse it together with the stored auctions, balances and events.
Fee totals are not stored; they are rebuilt from the settled auctions.
"""

from typing import Optional

from aucengine.core.auction import AuctionEngine, AuctionStore, EventBus
from aucengine.core.clock import Clock
from aucengine.core.config import EngineConfig
from aucengine.core.fees import FeeSchedule
from aucengine.core.ledger import Ledger
from aucengine.core.storage import StorageManager
from aucengine.crypto import bytes_to_hex, generate_address
from aucengine.utils.logger import get_logger

logger = get_logger("bootstrap")


def open_engine(config: EngineConfig, clock: Optional[Clock] = None) -> AuctionEngine:
    """
    Open (or initialise) the engine stored under config.data_dir.

    Args:
        config: Engine configuration
        clock: Time source, defaults to the system clock

    Returns:
        AuctionEngine backed by SQLite
    """
    config.ensure_dirs()
    storage = StorageManager(config.data_dir, db_name=config.db_name)

    owner = storage.get_owner()
    if owner is None:
        owner = generate_address()
        storage.save_owner(owner)
        logger.info(f"Initialised engine owner {bytes_to_hex(owner)}")

    store = AuctionStore(storage_manager=storage)
    fees = FeeSchedule()
    for auction in store.list_auctions():
        if auction.stopped:
            fees.record(fees.split(auction.final_price))

    return AuctionEngine(
        owner=owner,
        ledger=Ledger(storage_manager=storage),
        clock=clock,
        store=store,
        fees=fees,
        events=EventBus(storage_manager=storage),
        max_item_length=config.max_item_length,
    )
