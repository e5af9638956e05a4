"""Deterministic test data for seeded named environments."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import delete

from pops.models.mirror import Budget, Entity, InventoryItem, Transaction, WishListItem
from pops.models.sync import SyncCursor

if TYPE_CHECKING:
    from pops.database import Store

logger = logging.getLogger(__name__)

_SEED_EDITED = "2024-01-01T00:00:00.000Z"

_ENTITIES = [
    ("entity-001", "Woolworths", "Supermarket", "88000014675", "Woolies, WOW", '["Groceries"]'),
    ("entity-002", "Coles", "Supermarket", "45004189708", "Coles Express", '["Groceries"]'),
    ("entity-003", "Netflix", "Subscription", None, "Netflix.com", '["Entertainment"]'),
    ("entity-004", "Shell", "Fuel Station", "46004610459", "Shell Coles Express",
     '["Transport"]'),
    ("entity-005", "Employer Pty Ltd", "Employer", None, None, '["Income"]'),
]

# (id, description, account, amount, date, type, categories, entity_id, online)
_TRANSACTIONS = [
    ("txn-001", "Weekly groceries", "ANZ Everyday", -125.5, "2024-06-01", "Expense",
     '["Groceries"]', "entity-001", False),
    ("txn-002", "Top-up shop", "ANZ Everyday", -32.1, "2024-06-04", "Expense",
     '["Groceries"]', "entity-002", False),
    ("txn-003", "Streaming", "Amex", -22.99, "2024-06-05", "Expense",
     '["Entertainment", "Subscriptions"]', "entity-003", True),
    ("txn-004", "Fuel", "Amex", -84.0, "2024-06-07", "Expense", '["Transport"]',
     "entity-004", False),
    ("txn-005", "Salary", "ANZ Everyday", 4200.0, "2024-06-15", "Income", '["Income"]',
     "entity-005", False),
    ("txn-006", "Weekly groceries", "ANZ Everyday", -141.75, "2024-06-08", "Expense",
     '["Groceries"]', "entity-001", False),
    ("txn-007", "Transfer to savings", "ANZ Everyday", -500.0, "2024-06-16", "Transfer", "[]",
     None, True),
    ("txn-008", "Transfer from everyday", "ANZ Savings", 500.0, "2024-06-16", "Transfer", "[]",
     None, True),
]

_BUDGETS = [
    ("budget-001", "Groceries", "Monthly", 800.0, True),
    ("budget-002", "Entertainment", "Monthly", 100.0, True),
    ("budget-003", "Transport", "Monthly", 300.0, False),
]


async def seed_store(store: Store) -> None:
    """Replace all mirror data in ``store`` with the test data set. Atomic."""
    names = {entity_id: name for entity_id, name, *_ in _ENTITIES}
    async with store.session_factory() as session, session.begin():
        for model in (Transaction, InventoryItem, Budget, WishListItem, Entity, SyncCursor):
            await session.execute(delete(model))

        for entity_id, name, kind, abn, aliases, default_category in _ENTITIES:
            session.add(
                Entity(
                    notion_id=entity_id,
                    name=name,
                    type=kind,
                    abn=abn,
                    aliases=aliases,
                    default_transaction_type="Expense" if kind != "Employer" else "Income",
                    default_category=default_category,
                    last_edited_time=_SEED_EDITED,
                )
            )

        for txn_id, desc, account, amount, date, kind, cats, entity_id, online in _TRANSACTIONS:
            session.add(
                Transaction(
                    notion_id=txn_id,
                    description=desc,
                    account=account,
                    amount=amount,
                    date=date,
                    type=kind,
                    categories=cats,
                    entity_id=entity_id,
                    entity_name=names.get(entity_id) if entity_id else None,
                    country="Australia",
                    online=online,
                    last_edited_time=_SEED_EDITED,
                )
            )

        for budget_id, category, period, amount, active in _BUDGETS:
            session.add(
                Budget(
                    notion_id=budget_id,
                    category=category,
                    period=period,
                    amount=amount,
                    active=active,
                    last_edited_time=_SEED_EDITED,
                )
            )

        session.add(
            InventoryItem(
                notion_id="inv-001",
                item_name="Laptop",
                brand="Lenovo",
                room="Office",
                type="Electronics",
                condition="Good",
                in_use=True,
                deductible=True,
                purchase_date="2023-03-10",
                replacement_value=2400.0,
                purchased_from_id="entity-001",
                purchased_from_name=names["entity-001"],
                last_edited_time=_SEED_EDITED,
            )
        )
        session.add(
            WishListItem(
                notion_id="wish-001",
                item="Road bike",
                target_amount=1800.0,
                saved=450.0,
                priority="Medium",
                url="https://example.com/bike",
                last_edited_time=_SEED_EDITED,
            )
        )
    logger.info("Seeded store %s with test data", store.name)
