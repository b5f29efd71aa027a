"""
Inventory ledger.

Quantities are keyed by (store, product, category) and never go negative.
Every decrement is a single conditional UPDATE:

    UPDATE inventory SET quantity = quantity - :q
    WHERE <key> AND quantity >= :q

so the sufficiency check and the write are one statement. Concurrent
checkouts against the same key serialize on the row; the loser sees zero
affected rows and gets InsufficientStockError. Reservations are never
committed here: the caller owns the transaction and rolls it back on any
failure, which undoes every decrement made for the cart.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from pos_billing.database import find_by_id, id_in_range, utcnow
from pos_billing.exceptions import InsufficientStockError, NotFoundError, ValidationError
from pos_billing.models import InventoryRecord, Product, Store
from pos_billing.services.bill_computation import MAX_QUANTITY, validate_quantity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reservation:
    product_id: int
    category_id: int
    quantity: int
    product_name: str


def _current_quantity(session, store_id: int, product_id: int, category_id: int) -> int:
    quantity = session.query(InventoryRecord.quantity).filter(
        InventoryRecord.store_id == store_id,
        InventoryRecord.product_id == product_id,
        InventoryRecord.category_id == category_id,
    ).scalar()
    return quantity or 0


def reserve(session, store_id: int, product_id: int, category_id: int, quantity: int,
            product_name: str = None) -> None:
    """Atomically decrement a key by quantity, or raise InsufficientStockError."""
    quantity = validate_quantity(quantity)
    result = session.execute(
        update(InventoryRecord)
        .where(
            InventoryRecord.store_id == store_id,
            InventoryRecord.product_id == product_id,
            InventoryRecord.category_id == category_id,
            InventoryRecord.quantity >= quantity,
        )
        .values(quantity=InventoryRecord.quantity - quantity, last_updated=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        available = _current_quantity(session, store_id, product_id, category_id)
        logger.info(
            f"[INVENTORY] Insufficient stock store={store_id} product={product_id} "
            f"requested={quantity} available={available}"
        )
        raise InsufficientStockError(product_name or f'#{product_id}', quantity, available)


def reserve_all(session, store_id: int, reservations: Iterable[Reservation]) -> None:
    """Reserve every line of a cart.

    Lines sharing a key are summed first so a product split over several
    lines is checked against its total quantity. Rows are then decremented in
    (product_id, category_id) order, the same lock order for every cart.
    """
    merged = {}
    for item in reservations:
        key = (item.product_id, item.category_id)
        if key in merged:
            previous = merged[key]
            merged[key] = Reservation(item.product_id, item.category_id,
                                      previous.quantity + item.quantity, previous.product_name)
        else:
            merged[key] = item

    for key in sorted(merged):
        item = merged[key]
        reserve(session, store_id, item.product_id, item.category_id, item.quantity, item.product_name)


def restock(session, store_id: int, product_id: int, quantity) -> InventoryRecord:
    """Increment stock for a product in a store, creating the record if needed."""
    quantity = validate_quantity(quantity)

    store = find_by_id(session, Store, store_id)
    if not store:
        raise NotFoundError(f'Store not found: {store_id}')
    product = find_by_id(session, Product, product_id)
    if not product or product.category_id is None:
        raise NotFoundError(f'Product not found: {product_id}')

    try:
        result = session.execute(
            update(InventoryRecord)
            .where(
                InventoryRecord.store_id == store_id,
                InventoryRecord.product_id == product_id,
                InventoryRecord.category_id == product.category_id,
                InventoryRecord.quantity <= MAX_QUANTITY - quantity,
            )
            .values(quantity=InventoryRecord.quantity + quantity, last_updated=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if _current_quantity(session, store_id, product_id, product.category_id):
                raise ValidationError(f'Stock for product {product_id} would exceed {MAX_QUANTITY}')
            session.add(InventoryRecord(
                store_id=store_id,
                product_id=product_id,
                category_id=product.category_id,
                quantity=quantity,
            ))
        session.commit()
    except (SQLAlchemyError, ValidationError):
        session.rollback()
        raise

    record = session.get(InventoryRecord, (store_id, product_id, product.category_id))
    session.refresh(record)
    logger.info(f"[INVENTORY] Restocked store={store_id} product={product_id} +{quantity} -> {record.quantity}")
    return record


def get_store_inventory(session, store_id: int) -> List[InventoryRecord]:
    if not id_in_range(store_id):
        return []
    return session.query(InventoryRecord).filter(
        InventoryRecord.store_id == store_id
    ).order_by(InventoryRecord.product_id).all()
