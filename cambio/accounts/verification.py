"""Stablecoin eligibility of customer payout accounts."""
from typing import Optional

from cambio.config import settings
from cambio.errors import GuardFailure
from cambio.models.account import SavedAccount, SavedAccountType


class AccountNotVerified(GuardFailure):
    """The destination account may not receive stablecoin transfers."""


def can_receive_stablecoin(account: Optional[SavedAccount]) -> bool:
    """Only a Binance account an administrator verified for USDT qualifies."""
    if account is None:
        return False
    return (
        SavedAccountType(account.type) == SavedAccountType.BINANCE
        and bool(account.usdt_enabled)
        and account.verified_at is not None
    )


def ensure_can_receive_stablecoin(account: Optional[SavedAccount]) -> None:
    if can_receive_stablecoin(account):
        return
    if account is None:
        raise AccountNotVerified(
            "USDT transfers need a saved Binance account verified by an administrator. "
            f"{settings.SUPPORT_CONTACT}"
        )
    if SavedAccountType(account.type) != SavedAccountType.BINANCE:
        raise AccountNotVerified("USDT transfers can only be sent to a Binance account")
    raise AccountNotVerified(
        f"This Binance account is not verified for USDT transfers. {settings.SUPPORT_CONTACT}"
    )
