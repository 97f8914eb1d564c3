# salesdesk/core/roles.py

import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"                  # platform owner, unlimited balance
    MANAGER = "MANAGER"              # runs affiliates, has a balance
    AFFILIATE = "AFFILIATE"          # earns per-sale commission
    LOGISTICS = "LOGISTICS"          # ships orders, no balance
    CUSTOMER_CARE = "CUSTOMER_CARE"  # confirms orders by phone


# Roles whose balance is derived by the ledger.
BALANCE_ROLES = frozenset({UserRole.AFFILIATE, UserRole.MANAGER, UserRole.CUSTOMER_CARE})

MANAGERIAL_ROLES = frozenset({UserRole.ADMIN, UserRole.MANAGER})

