import asyncio

import pytest
from sqlalchemy import func, select

from mfgops.domain.errors import InsufficientStockError
from mfgops.domain.inventory import ledger
from mfgops.domain.inventory.db_models import InventoryItem, InventoryTransaction


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("quantities", "possible_on_hand"),
    [((3, 3), {2}), ((3, 5), {0, 2})],
)
async def test_concurrent_withdrawals_never_overdraw(test_database, make_item, quantities, possible_on_hand):
    item = await make_item(5)
    item_id = item.item_id

    async def withdraw(quantity: int):
        async with test_database.session_factory() as session:
            return await ledger.apply_transaction(
                session,
                item_id=item_id,
                transaction_type="OUT",
                quantity=quantity,
                actor_id=f"worker-{quantity}",
            )

    outcomes = await asyncio.gather(*(withdraw(quantity) for quantity in quantities), return_exceptions=True)

    successes = [outcome for outcome in outcomes if isinstance(outcome, ledger.LedgerResult)]
    rejections = [outcome for outcome in outcomes if isinstance(outcome, InsufficientStockError)]
    assert len(successes) == 1
    assert len(rejections) == 1

    async with test_database.session_factory() as session:
        on_hand = await session.scalar(
            select(InventoryItem.on_hand_quantity).where(InventoryItem.item_id == item_id)
        )
        entries = await session.scalar(
            select(func.count())
            .select_from(InventoryTransaction)
            .where(InventoryTransaction.item_id == item_id)
        )
        replay = await ledger.replay_ledger(session, item_id)

    assert on_hand == successes[0].new_quantity
    assert on_hand in possible_on_hand
    assert entries == 2
    assert replay.consistent


@pytest.mark.asyncio
async def test_concurrent_receipts_all_land(test_database, make_item):
    item = await make_item(0)
    item_id = item.item_id

    async def receive(quantity: int):
        async with test_database.session_factory() as session:
            return await ledger.apply_transaction(
                session,
                item_id=item_id,
                transaction_type="IN",
                quantity=quantity,
                actor_id="dock",
            )

    results = await asyncio.gather(*(receive(qty) for qty in range(1, 6)))

    assert sorted(result.new_quantity for result in results)[-1] == 15
    async with test_database.session_factory() as session:
        replay = await ledger.replay_ledger(session, item_id)
    assert replay.entries == 5
    assert replay.replayed_quantity == 15
    assert replay.consistent
