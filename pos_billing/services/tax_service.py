"""Tax resolution by product category."""
from typing import Dict, Iterable, List

from pos_billing.models import TaxRule


def resolve_taxes(session, category_id: int) -> List[TaxRule]:
    """Active tax rules for a category, ordered by id. Empty for untaxed categories."""
    return session.query(TaxRule).filter(
        TaxRule.category_id == category_id,
        TaxRule.active == True  # noqa: E712
    ).order_by(TaxRule.id).all()


def resolve_taxes_for_categories(session, category_ids: Iterable[int]) -> Dict[int, List[TaxRule]]:
    """Batch version of resolve_taxes for a whole cart.

    Every requested category gets an entry, possibly an empty list.
    """
    wanted = set(category_ids)
    result = {category_id: [] for category_id in wanted}
    if not wanted:
        return result

    rules = session.query(TaxRule).filter(
        TaxRule.category_id.in_(wanted),
        TaxRule.active == True  # noqa: E712
    ).order_by(TaxRule.id).all()

    for rule in rules:
        result[rule.category_id].append(rule)
    return result
