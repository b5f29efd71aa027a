"""Write-once bill persistence and read paths."""
import uuid
from typing import List, Optional

from sqlalchemy.orm import selectinload

from pos_billing.database import id_in_range
from pos_billing.exceptions import NotFoundError
from pos_billing.models import Bill, BillLine
from pos_billing.services.bill_computation import BillTotals


def generate_bill_id() -> str:
    """Public bill identifier, distinct from the storage key."""
    return str(uuid.uuid4())


def persist_bill(session, store_id: int, totals: BillTotals, customer: Optional[dict] = None,
                 bill_id: Optional[str] = None) -> Bill:
    """Add the bill and its lines to the session and flush.

    Does not commit; checkout commits once inventory and bill are both staged.
    """
    customer = customer or {}
    bill = Bill(
        bill_id=bill_id or generate_bill_id(),
        store_id=store_id,
        customer_name=customer.get('name'),
        customer_phone=customer.get('phone'),
        customer_email=customer.get('email'),
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        grand_total=totals.grand_total,
        tax_breakdown=totals.tax_breakdown,
    )
    for position, line in enumerate(totals.lines):
        bill.lines.append(BillLine(
            position=position,
            product_id=line.item.product_id,
            product_name=line.item.product_name,
            quantity=line.item.quantity,
            unit_price=line.item.unit_price,
            line_total=line.line_total,
            taxes=line.tax_records(),
        ))
    session.add(bill)
    session.flush()
    return bill


def list_bills_by_store(session, store_id: int) -> List[Bill]:
    """Bills of a store, newest first. Always a list."""
    if not id_in_range(store_id):
        return []
    return session.query(Bill).options(
        selectinload(Bill.lines)
    ).filter(
        Bill.store_id == store_id
    ).order_by(Bill.created_at.desc(), Bill.id.desc()).all()


def get_bill(session, bill_id: str) -> Bill:
    """Look up a bill by its public identifier."""
    bill = session.query(Bill).filter(Bill.bill_id == bill_id).first()
    if not bill:
        raise NotFoundError('Bill not found')
    return bill
