"""Validation of payout account details (CLABE, card, Binance) and platform receiving accounts."""
import re
from typing import Any, Dict, Optional

from cambio.errors import ValidationError
from cambio.models.account import AdminAccountType, SavedAccountType

CLABE_LENGTH = 18
CARD_LENGTH = 16

_DIGITS = re.compile(r"^[0-9]+$")


def _text(details: Dict[str, Any], key: str, label: str) -> str:
    value = details.get(key)
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    return str(value).strip()


def _digits(value: str, length: int, label: str) -> str:
    compact = value.replace(" ", "")
    if len(compact) != length or not _DIGITS.match(compact):
        raise ValidationError(f"{label} must have exactly {length} digits")
    return compact


def _email(value: str, label: str) -> str:
    if "@" not in value:
        raise ValidationError(f"{label} must be a valid email address")
    return value


def validate_account_details(account_type: SavedAccountType, details: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """
    Check and normalise the details of a customer payout account.

    Returns only the recognised keys, with card and CLABE numbers stripped of spaces.
    """
    details = details or {}
    account_type = SavedAccountType(account_type)

    if account_type == SavedAccountType.CLABE:
        return {"clabe": _digits(_text(details, "clabe", "CLABE"), CLABE_LENGTH, "CLABE")}

    if account_type == SavedAccountType.CARD:
        return {
            "card_number": _digits(_text(details, "card_number", "Card number"), CARD_LENGTH, "Card number"),
            "card_holder": _text(details, "card_holder", "Card holder"),
        }

    return {
        "binance_id": _text(details, "binance_id", "Binance ID"),
        "binance_email": _email(_text(details, "binance_email", "Binance email"), "Binance email"),
    }


def account_identity(account_type: SavedAccountType, details: Dict[str, Any]) -> str:
    """The field two accounts of the same type must not share."""
    account_type = SavedAccountType(account_type)
    if account_type == SavedAccountType.CLABE:
        return str(details.get("clabe", ""))
    if account_type == SavedAccountType.CARD:
        return str(details.get("card_number", ""))
    return str(details.get("binance_id", ""))


def validate_admin_account_details(account_type: AdminAccountType, details: Optional[Dict[str, Any]]) -> Dict[str, str]:
    details = details or {}
    if AdminAccountType(account_type) == AdminAccountType.BANK:
        return {
            "bank_name": _text(details, "bank_name", "Bank name"),
            "account_number": _text(details, "account_number", "Account number"),
            "account_holder": _text(details, "account_holder", "Account holder"),
        }
    return {
        "binance_id": _text(details, "binance_id", "Binance ID"),
        "binance_email": _email(_text(details, "binance_email", "Binance email"), "Binance email"),
    }
