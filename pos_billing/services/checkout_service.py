"""
Checkout service - converts a cart into a persisted bill.

States: VALIDATING -> PRICING -> RESERVING -> PERSISTING -> DELIVERING -> DONE.
A failure in the first four states rolls the whole transaction back, so no
bill is written and no inventory changes. Delivery happens after the commit
and can never fail the checkout.
"""
import enum
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from pos_billing.database import find_by_id, id_in_range
from pos_billing.exceptions import (
    BillingError, ValidationError, NotFoundError, InsufficientStockError, PersistenceError
)
from pos_billing.models import Bill, Product, Store
from pos_billing.services.bill_computation import (
    BillAccumulator, PricedItem, breakdown_total, parse_id, validate_quantity
)
from pos_billing.services.bill_store import generate_bill_id, persist_bill
from pos_billing.services.inventory_service import Reservation, reserve_all
from pos_billing.services.tax_service import resolve_taxes_for_categories

logger = logging.getLogger(__name__)


class CheckoutState(enum.Enum):
    VALIDATING = 'validating'
    PRICING = 'pricing'
    RESERVING = 'reserving'
    PERSISTING = 'persisting'
    DELIVERING = 'delivering'
    DONE = 'done'


OUTCOME_LABELS = {
    ValidationError: 'validation_error',
    NotFoundError: 'not_found',
    InsufficientStockError: 'insufficient_stock',
    PersistenceError: 'persistence_error',
}


@dataclass
class CartLine:
    product_id: int
    quantity: int


@dataclass
class CheckoutRequest:
    store_id: int
    lines: List[CartLine]
    customer: Dict[str, Optional[str]] = field(default_factory=dict)


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_checkout_request(data) -> CheckoutRequest:
    """Validate the request payload shape and every quantity.

    Payload: {items: [{productId, quantity}], storeId, customerName?,
    customerPhone?, customerEmail?}. Quantity defaults to 1.
    """
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')

    items = data.get('items')
    if not items:
        raise ValidationError('No items in bill')
    if not isinstance(items, list):
        raise ValidationError('items must be a list')

    if data.get('storeId') in (None, ''):
        raise ValidationError('Store ID is required')
    store_id = parse_id(data['storeId'], 'storeId')

    lines = []
    for item in items:
        if not isinstance(item, dict) or item.get('productId') in (None, ''):
            raise ValidationError('Each item requires a productId')
        lines.append(CartLine(
            product_id=parse_id(item['productId'], 'productId'),
            quantity=validate_quantity(item.get('quantity', 1)),
        ))

    customer = {
        'name': _clean(data.get('customerName')),
        'phone': _clean(data.get('customerPhone')),
        'email': _clean(data.get('customerEmail')),
    }
    return CheckoutRequest(store_id=store_id, lines=lines, customer=customer)


def _load_products(session, lines: List[CartLine]) -> Dict[int, Product]:
    """Fetch every product of the cart in one query; fail on the first unknown id."""
    product_ids = {line.product_id for line in lines if id_in_range(line.product_id)}
    products = session.query(Product).filter(Product.id.in_(product_ids)).all()
    products_dict = {p.id: p for p in products}

    for line in lines:
        product = products_dict.get(line.product_id)
        if not product or product.category_id is None:
            raise NotFoundError(f'Product not found: {line.product_id}')
    return products_dict


def checkout(data, session) -> Bill:
    """Run the full checkout transaction and return the persisted bill.

    Raises:
        ValidationError: empty cart, malformed ids or quantities
        NotFoundError: unknown store or product
        InsufficientStockError: any line exceeds available stock
        PersistenceError: the bill could not be committed
    """
    started = time.perf_counter()
    checkout_id = generate_bill_id()
    state = _advance(checkout_id, CheckoutState.VALIDATING)

    try:
        request = parse_checkout_request(data)

        store = find_by_id(session, Store, request.store_id)
        if not store:
            raise NotFoundError(f'Store not found: {request.store_id}')
        products = _load_products(session, request.lines)

        state = _advance(checkout_id, CheckoutState.PRICING)
        taxes_by_category = resolve_taxes_for_categories(
            session, {p.category_id for p in products.values()}
        )
        accumulator = BillAccumulator()
        reservations = []
        for line in request.lines:
            product = products[line.product_id]
            taxes = [rule.to_spec() for rule in taxes_by_category[product.category_id]]
            accumulator.add_item(
                PricedItem(product.id, product.name, product.price, line.quantity), taxes
            )
            reservations.append(Reservation(product.id, product.category_id, line.quantity, product.name))
        totals = accumulator.finalize()
        logger.debug(
            f"[CHECKOUT] {checkout_id} priced {len(totals.lines)} lines "
            f"subtotal={totals.subtotal} tax={totals.tax_amount} "
            f"breakdown_drift={breakdown_total(totals) - totals.tax_amount}"
        )

        state = _advance(checkout_id, CheckoutState.RESERVING)
        reserve_all(session, store.id, reservations)

        state = _advance(checkout_id, CheckoutState.PERSISTING)
        bill = persist_bill(session, store.id, totals, request.customer, bill_id=checkout_id)
        session.commit()

    except BillingError as e:
        session.rollback()
        logger.warning(f"[CHECKOUT] {checkout_id} failed while {state.value}: {e.message}")
        _record_outcome(OUTCOME_LABELS.get(type(e), 'error'))
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"[CHECKOUT] {checkout_id} database error while {state.value}: {e}")
        if state is CheckoutState.PERSISTING:
            _record_outcome('persistence_error')
            raise PersistenceError() from e
        _record_outcome('internal_error')
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[CHECKOUT] {checkout_id} unexpected error while {state.value}")
        _record_outcome('internal_error')
        raise

    logger.info(
        f"[CHECKOUT] {checkout_id} committed store={bill.store_id} "
        f"lines={len(bill.lines)} grand_total={bill.grand_total}"
    )
    _record_outcome('success', time.perf_counter() - started)
    _invalidate_report_cache(bill.store_id)

    _advance(checkout_id, CheckoutState.DELIVERING)
    if bill.customer_email:
        from pos_billing.services.invoice_delivery import dispatch_invoice
        dispatch_invoice(bill)

    _advance(checkout_id, CheckoutState.DONE)
    return bill


# =====================================================
# PRIVATE HELPERS
# =====================================================

def _advance(checkout_id: str, state: CheckoutState) -> CheckoutState:
    logger.debug(f"[CHECKOUT] {checkout_id} -> {state.value}")
    return state


def _record_outcome(outcome: str, duration: float = None):
    """Update checkout metrics; never breaks the checkout."""
    try:
        from pos_billing.blueprints.metrics import checkouts_total, checkout_duration_seconds
        checkouts_total.labels(outcome=outcome).inc()
        if duration is not None:
            checkout_duration_seconds.observe(duration)
    except Exception as e:
        logger.warning(f"[CHECKOUT] Failed to record metrics: {e}")


def _invalidate_report_cache(store_id: int):
    """Gracefully attempt to invalidate the store's report cache."""
    try:
        from pos_billing.services.cache_service import get_cache
        get_cache().invalidate(store_id)
    except Exception as e:
        logger.warning(f"[CHECKOUT] Report cache invalidation skipped: {e}")
