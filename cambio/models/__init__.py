"""
Consolidated models package.

IMPORTANT: Explicit imports only - no wildcards to prevent circular imports.
Importing this package registers every table on ``Base.metadata``.
"""

# Base utilities
from cambio.models.base import generate_id

# Profiles
from cambio.models.profile import UserRole, Profile

# Rates
from cambio.models.exchange_rate import ExchangeRate

# Accounts
from cambio.models.account import (
    SavedAccountType,
    AdminAccountType,
    SavedAccount,
    AdminAccount,
)
from cambio.models.usd_permission import UsdPermissionStatus, UsdPermission

# Transfers
from cambio.models.transfer import (
    TransferKind,
    TransferStatus,
    DestinationType,
    WithdrawalStatus,
    Transfer,
    CardlessWithdrawal,
)

# Chat
from cambio.models.chat import TransferChat, ChatMessage

# Notifications
from cambio.models.notification import Notification

# Audit
from cambio.models.audit import AuditLog


__all__ = [
    "generate_id",
    # Profiles
    "UserRole",
    "Profile",
    # Rates
    "ExchangeRate",
    # Accounts
    "SavedAccountType",
    "AdminAccountType",
    "SavedAccount",
    "AdminAccount",
    "UsdPermissionStatus",
    "UsdPermission",
    # Transfers
    "TransferKind",
    "TransferStatus",
    "DestinationType",
    "WithdrawalStatus",
    "Transfer",
    "CardlessWithdrawal",
    # Chat
    "TransferChat",
    "ChatMessage",
    # Notifications
    "Notification",
    # Audit
    "AuditLog",
]
