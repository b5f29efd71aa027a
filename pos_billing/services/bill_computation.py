"""
Bill computation engine.

Pure pricing and tax math for a cart, no database or network access.
Checkout feeds it one priced line at a time and reads the final totals.

Rounding policy:
- Line totals and running sums are kept unrounded (Decimal).
- Every reported tax amount (per line and per breakdown row) is rounded
  to 2 decimals on its own.
- grand_total = round2(subtotal + unrounded total tax).
Summing rounded components may therefore differ from the rounded totals
by a few cents.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Dict, Iterable, List, Sequence, Tuple

from pos_billing.exceptions import ValidationError

PERCENTAGE = 'percentage'
FIXED = 'fixed'

TWO_PLACES = Decimal('0.01')
HUNDRED = Decimal('100')

# Stock and bill line quantities are stored in 32-bit Integer columns
MAX_QUANTITY = 2**31 - 1


def round2(value) -> Decimal:
    """Round to cents, half up."""
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def validate_quantity(quantity) -> int:
    """Return quantity as int, or raise ValidationError unless it is a positive integer."""
    if isinstance(quantity, bool) or quantity is None:
        raise ValidationError(f'Invalid quantity: {quantity!r}')
    try:
        as_decimal = Decimal(str(quantity).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f'Invalid quantity: {quantity!r}')
    if not as_decimal.is_finite() or as_decimal != as_decimal.to_integral_value():
        raise ValidationError(f'Quantity must be a whole number: {quantity!r}')
    if as_decimal <= 0:
        raise ValidationError('Quantity must be greater than 0')
    if as_decimal > MAX_QUANTITY:
        raise ValidationError(f'Quantity must not exceed {MAX_QUANTITY}')
    return int(as_decimal)


def parse_id(value, label: str) -> int:
    """Parse an identifier given as an int or a digit string. Booleans and floats are rejected."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f'Invalid {label}: {value!r}')
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f'Invalid {label}: {value!r}')


def _format_percentage(value: Decimal) -> str:
    return format(value.normalize(), 'f') if value else '0'


@dataclass(frozen=True)
class TaxSpec:
    """A tax rule reduced to what pricing needs."""
    name: str
    kind: str
    value: Decimal


@dataclass(frozen=True)
class PricedItem:
    """One cart line with the product data copied at checkout time."""
    product_id: int
    product_name: str
    unit_price: Decimal
    quantity: int


@dataclass
class AppliedTax:
    tax_name: str
    tax_percentage: Decimal
    amount: Decimal

    def to_record(self) -> dict:
        return {
            'tax_name': self.tax_name,
            'tax_percentage': _format_percentage(self.tax_percentage),
            'tax_amount': str(round2(self.amount)),
        }


@dataclass
class LineResult:
    item: PricedItem
    line_total: Decimal
    taxes: List[AppliedTax] = field(default_factory=list)

    @property
    def tax_total(self) -> Decimal:
        return sum((t.amount for t in self.taxes), Decimal('0'))

    def tax_records(self) -> List[dict]:
        return [t.to_record() for t in self.taxes]


@dataclass
class BillTotals:
    lines: List[LineResult]
    subtotal: Decimal
    tax_amount: Decimal
    grand_total: Decimal
    tax_breakdown: List[dict]


def compute_line(item: PricedItem, taxes: Sequence[TaxSpec]) -> LineResult:
    """Price one line and apply every tax rule of its category.

    Fixed-amount taxes apply once per line, not once per unit.
    """
    quantity = validate_quantity(item.quantity)
    unit_price = Decimal(str(item.unit_price))
    line_total = unit_price * quantity

    applied = []
    for tax in taxes:
        value = Decimal(str(tax.value))
        if tax.kind == PERCENTAGE:
            amount = line_total * value / HUNDRED
            percentage = value
        elif tax.kind == FIXED:
            amount = value
            percentage = Decimal('0')
        else:
            raise ValidationError(f'Unknown tax kind {tax.kind!r} for tax "{tax.name}"')
        applied.append(AppliedTax(tax_name=tax.name, tax_percentage=percentage, amount=amount))

    return LineResult(item=item, line_total=line_total, taxes=applied)


class BillAccumulator:
    """Running cart aggregation.

    The breakdown merges taxes by display name across categories; the first
    rule seen under a name fixes the reported percentage.
    """

    def __init__(self):
        self.lines: List[LineResult] = []
        self.subtotal = Decimal('0')
        self.total_tax = Decimal('0')
        self._breakdown: Dict[str, Tuple[Decimal, Decimal]] = {}

    def add(self, line: LineResult) -> LineResult:
        self.lines.append(line)
        self.subtotal += line.line_total
        self.total_tax += line.tax_total
        for tax in line.taxes:
            percentage, amount = self._breakdown.get(tax.tax_name, (tax.tax_percentage, Decimal('0')))
            self._breakdown[tax.tax_name] = (percentage, amount + tax.amount)
        return line

    def add_item(self, item: PricedItem, taxes: Sequence[TaxSpec]) -> LineResult:
        return self.add(compute_line(item, taxes))

    def finalize(self) -> BillTotals:
        breakdown = [
            AppliedTax(tax_name=name, tax_percentage=percentage, amount=amount).to_record()
            for name, (percentage, amount) in self._breakdown.items()
        ]
        return BillTotals(
            lines=list(self.lines),
            subtotal=round2(self.subtotal),
            tax_amount=round2(self.total_tax),
            grand_total=round2(self.subtotal + self.total_tax),
            tax_breakdown=breakdown,
        )


def compute_bill(entries: Iterable[Tuple[PricedItem, Sequence[TaxSpec]]]) -> BillTotals:
    """Compute totals for a whole cart given (item, taxes) pairs."""
    accumulator = BillAccumulator()
    for item, taxes in entries:
        accumulator.add_item(item, taxes)
    return accumulator.finalize()


def breakdown_total(totals: BillTotals) -> Decimal:
    """Sum of the rounded breakdown amounts."""
    return sum((Decimal(row['tax_amount']) for row in totals.tax_breakdown), Decimal('0'))
