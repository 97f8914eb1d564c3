# salesdesk/core/duplicates.py
"""
Duplicate-order detection.

A sale is a repeat when an earlier sale of the same product already used the
same customer name or the same phone number. The first occurrence stays
canonical; every later one reads as Duplicato.

The result is a read-time view over the sale list. Persisting it is optional
and must stay idempotent (see pending_duplicate_flags).
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Set, Tuple

from salesdesk.core.statuses import SaleStatus
from salesdesk.schemas.records import SaleRecord

Key = Tuple[str, str]


def _name_key(sale: SaleRecord) -> Optional[Key]:
    name = " ".join((sale.customer_name or "").split()).lower()
    if not name:
        return None
    return (sale.product_id, name)


def _phone_key(sale: SaleRecord) -> Optional[Key]:
    phone = "".join((sale.customer_phone or "").split())
    if not phone:
        return None
    return (sale.product_id, phone)


def _is_compared(sale: SaleRecord) -> bool:
    # Test orders and bookkeeping bonus entries never take part.
    return sale.status != SaleStatus.TEST and not sale.is_bonus


def duplicate_sale_ids(sales: Iterable[SaleRecord]) -> Set[str]:
    """Ids of the sales that repeat an earlier order of the same product."""
    candidates = sorted((s for s in sales if _is_compared(s)), key=lambda s: s.sale_date)

    seen_names: Set[Key] = set()
    seen_phones: Set[Key] = set()
    duplicates: Set[str] = set()

    for sale in candidates:
        name_key = _name_key(sale)
        phone_key = _phone_key(sale)

        if (name_key is not None and name_key in seen_names) or (
            phone_key is not None and phone_key in seen_phones
        ):
            duplicates.add(sale.id)

        if name_key is not None:
            seen_names.add(name_key)
        if phone_key is not None:
            seen_phones.add(phone_key)

    return duplicates


def flag_duplicates(sales: Sequence[SaleRecord]) -> List[SaleRecord]:
    """
    Same sales, same order; repeats come back as copies with status Duplicato.
    Inputs are left untouched.
    """
    dupes = duplicate_sale_ids(sales)
    return [
        s.model_copy(update={"status": SaleStatus.DUPLICATO}) if s.id in dupes else s
        for s in sales
    ]


def pending_duplicate_flags(sales: Sequence[SaleRecord]) -> List[SaleRecord]:
    """Duplicates whose stored status still needs to be written as Duplicato."""
    dupes = duplicate_sale_ids(sales)
    return [s for s in sales if s.id in dupes and s.status != SaleStatus.DUPLICATO]
