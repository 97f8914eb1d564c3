# salesdesk/core/statuses.py
"""
Sale / transaction / ticket status vocabularies and the status groups the
ledger and the reports are built on.

Status values are stored verbatim (Italian labels) because that is what the
operators read on the order list and what the existing data holds.
"""
from __future__ import annotations

import enum
from typing import FrozenSet, Mapping

from salesdesk.core.roles import UserRole


class SaleStatus(str, enum.Enum):
    IN_ATTESA = "In attesa"                  # new order, nobody called yet
    CONTATTATO = "Contattato"
    CONFERMATO = "Confermato"                # ready to ship
    ANNULLATO = "Annullato"
    CANCELLATO = "Cancellato"
    SPEDITO = "Spedito"
    SVINCOLATO = "Svincolato"                # commission released before delivery
    CONSEGNATO = "Consegnato"
    NON_RAGGIUNGIBILE = "Non raggiungibile"
    NON_RITIRATO = "Non ritirato"
    GIACENZA = "Giacenza"                    # parcel held by the carrier
    DUPLICATO = "Duplicato"                  # system-assigned
    TEST = "Test"                            # system-assigned


class TransactionType(str, enum.Enum):
    PAYOUT = "Payout"
    TRANSFER = "Transfer"
    ADJUSTMENT = "Adjustment"


class TransactionStatus(str, enum.Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"


class PaymentMethod(str, enum.Enum):
    PAYPAL = "PayPal"
    BANK_TRANSFER = "Bonifico Bancario"
    WORLDFILI = "Worldfili"


class TicketStatus(str, enum.Enum):
    OPEN = "Aperto"
    IN_PROGRESS = "In Lavorazione"
    CLOSED = "Chiuso"


S = SaleStatus

ALL_SALE_STATUSES: FrozenSet[SaleStatus] = frozenset(SaleStatus)

# Never counted as revenue.
NON_REVENUE_STATUSES: FrozenSet[SaleStatus] = frozenset({S.ANNULLATO, S.CANCELLATO, S.DUPLICATO, S.TEST})
REVENUE_STATUSES: FrozenSet[SaleStatus] = ALL_SALE_STATUSES - NON_REVENUE_STATUSES

# Affiliate commission is payable (bonus sales are approved regardless of status).
COMMISSION_APPROVED_STATUSES: FrozenSet[SaleStatus] = frozenset({S.SVINCOLATO, S.CONSEGNATO})
COMMISSION_PENDING_STATUSES: FrozenSet[SaleStatus] = frozenset(
    {S.IN_ATTESA, S.CONTATTATO, S.CONFERMATO, S.NON_RAGGIUNGIBILE, S.SPEDITO, S.GIACENZA}
)

# Logistics (fulfillment) and customer-care commissions mature on delivery only.
LOGISTICS_APPROVED_STATUSES: FrozenSet[SaleStatus] = frozenset({S.CONSEGNATO})
CUSTOMER_CARE_APPROVED_STATUSES: FrozenSet[SaleStatus] = frozenset({S.CONSEGNATO})
# Staff commissions are pending while delivery is still possible. Svincolato
# releases the affiliate's cut but the parcel is still travelling.
STAFF_COMMISSION_PENDING_STATUSES: FrozenSet[SaleStatus] = COMMISSION_PENDING_STATUSES | {S.SVINCOLATO}

# Left out of sale counts, approval rates and leaderboards.
COUNT_EXCLUDED_STATUSES: FrozenSet[SaleStatus] = frozenset({S.DUPLICATO, S.CANCELLATO, S.ANNULLATO})

# Assigned by the system only; never a manual transition target.
SYSTEM_ONLY_STATUSES: FrozenSet[SaleStatus] = frozenset({S.DUPLICATO, S.TEST})

# Statuses each role may set from the order editor.
ROLE_SETTABLE_STATUSES: Mapping[UserRole, FrozenSet[SaleStatus]] = {
    UserRole.ADMIN: ALL_SALE_STATUSES - SYSTEM_ONLY_STATUSES,
    UserRole.MANAGER: ALL_SALE_STATUSES - SYSTEM_ONLY_STATUSES,
    UserRole.LOGISTICS: frozenset(
        {S.CONFERMATO, S.SPEDITO, S.CONSEGNATO, S.SVINCOLATO, S.NON_RITIRATO, S.GIACENZA}
    ),
    UserRole.CUSTOMER_CARE: frozenset(
        {S.IN_ATTESA, S.CONTATTATO, S.CONFERMATO, S.CANCELLATO, S.NON_RAGGIUNGIBILE, S.GIACENZA}
    ),
    UserRole.AFFILIATE: frozenset(),
}

# Logistics acts on parcels, not on customers: their edits are not stamped
# as "last contacted by".
ROLES_STAMPED_AS_CONTACT: FrozenSet[UserRole] = frozenset(UserRole) - {UserRole.LOGISTICS}


def settable_statuses(role: UserRole | None) -> FrozenSet[SaleStatus]:
    if role is None:
        return frozenset()
    return ROLE_SETTABLE_STATUSES.get(role, frozenset())


def is_revenue_bearing(status: SaleStatus, *, is_bonus: bool = False) -> bool:
    return not is_bonus and status in REVENUE_STATUSES


def is_commission_approved(status: SaleStatus, *, is_bonus: bool = False) -> bool:
    return is_bonus or status in COMMISSION_APPROVED_STATUSES


def is_commission_pending(status: SaleStatus, *, is_bonus: bool = False) -> bool:
    return not is_bonus and status in COMMISSION_PENDING_STATUSES


def is_counted(status: SaleStatus, *, is_bonus: bool = False) -> bool:
    return not is_bonus and status not in COUNT_EXCLUDED_STATUSES and status is not S.TEST
