"""
Transfer lifecycle state machine.

Statuses: pending, pending_usd_approval, pending_cardless, completed, failed.
``completed`` and ``failed`` are terminal.

    pending_usd_approval --approve--> pending
    pending              --complete--> completed
    pending_cardless     --issue_code--> completed
    any non-terminal     --reject--> failed

A stablecoin transfer therefore reaches ``completed`` only through ``pending``.
This module is pure: it decides *whether* a transition is allowed and what it
leads to. ``TransferService`` applies it with a conditional update.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from cambio.currencies import STABLECOIN
from cambio.errors import GuardFailure, ValidationError
from cambio.models.transfer import TransferKind, TransferStatus


class TransferEvent(str, Enum):
    """Admin actions that move a transfer between statuses."""
    APPROVE = "approve"
    COMPLETE = "complete"
    REJECT = "reject"
    ISSUE_CODE = "issue_code"


TERMINAL_STATUSES = frozenset({TransferStatus.COMPLETED, TransferStatus.FAILED})

KIND_LABELS = {
    TransferKind.BANK_OR_CARD: "International",
    TransferKind.CARDLESS: "Cardless",
    TransferKind.STABLECOIN: "USDT",
}

CARDLESS_CODE_PATTERN = re.compile(r"^[0-9]{8}$")


@dataclass(frozen=True)
class Transition:
    """One allowed edge of the state machine and the messages it produces."""
    source: TransferStatus
    event: TransferEvent
    target: TransferStatus
    title: str        # "{label}" is replaced by the transfer kind label
    content: str
    chat_message: str


def _reject(source: TransferStatus) -> Transition:
    return Transition(
        source=source,
        event=TransferEvent.REJECT,
        target=TransferStatus.FAILED,
        title="{label} transfer rejected",
        content="Your transfer has been rejected.",
        chat_message="❌ Transfer rejected by an administrator",
    )


TRANSITIONS: Dict[Tuple[TransferStatus, TransferEvent], Transition] = {
    (TransferStatus.PENDING_USD_APPROVAL, TransferEvent.APPROVE): Transition(
        source=TransferStatus.PENDING_USD_APPROVAL,
        event=TransferEvent.APPROVE,
        target=TransferStatus.PENDING,
        title="{label} transfer approved",
        content="Your transfer has been approved. Please proceed with your deposit.",
        chat_message="✅ Transfer approved, waiting for the deposit",
    ),
    (TransferStatus.PENDING, TransferEvent.COMPLETE): Transition(
        source=TransferStatus.PENDING,
        event=TransferEvent.COMPLETE,
        target=TransferStatus.COMPLETED,
        title="{label} transfer completed",
        content="Your transfer has been completed.",
        chat_message="✅ Transfer completed",
    ),
    (TransferStatus.PENDING_CARDLESS, TransferEvent.ISSUE_CODE): Transition(
        source=TransferStatus.PENDING_CARDLESS,
        event=TransferEvent.ISSUE_CODE,
        target=TransferStatus.COMPLETED,
        title="Withdrawal code ready",
        content="Your cardless withdrawal code is ready. You can see it in the transfer details.",
        chat_message="✅ Withdrawal code generated and available",
    ),
}
for _status in TransferStatus:
    if _status not in TERMINAL_STATUSES:
        TRANSITIONS[(_status, TransferEvent.REJECT)] = _reject(_status)


def initial_status(kind: TransferKind, destination_currency: str) -> TransferStatus:
    """Status a new transfer starts in. Cardless wins over the destination currency."""
    if kind == TransferKind.CARDLESS:
        return TransferStatus.PENDING_CARDLESS
    if destination_currency == STABLECOIN:
        return TransferStatus.PENDING_USD_APPROVAL
    return TransferStatus.PENDING


def is_terminal(status: TransferStatus) -> bool:
    return TransferStatus(status) in TERMINAL_STATUSES


def available_events(status: TransferStatus) -> List[TransferEvent]:
    """Events an admin may apply from ``status``, for building action menus."""
    status = TransferStatus(status)
    return [event for (source, event) in TRANSITIONS if source == status]


def plan_transition(status: TransferStatus, event: TransferEvent) -> Transition:
    """
    Return the transition for ``event`` from ``status``.

    Raises GuardFailure with an explanation when the event is not allowed.
    """
    status = TransferStatus(status)
    event = TransferEvent(event)

    transition = TRANSITIONS.get((status, event))
    if transition is not None:
        return transition

    if status in TERMINAL_STATUSES:
        raise GuardFailure(f"Transfer is already {status.value} and cannot change")
    if status == TransferStatus.PENDING_USD_APPROVAL and event == TransferEvent.COMPLETE:
        raise GuardFailure("USDT transfers must be approved before they can be completed")
    if status == TransferStatus.PENDING_CARDLESS and event == TransferEvent.COMPLETE:
        raise GuardFailure("Cardless transfers are completed by issuing a withdrawal code")
    if event == TransferEvent.APPROVE:
        raise GuardFailure("Only transfers awaiting USDT approval can be approved")
    if event == TransferEvent.ISSUE_CODE:
        raise GuardFailure("Withdrawal codes can only be issued for cardless transfers awaiting a code")
    raise GuardFailure(f"Cannot {event.value} a transfer that is {status.value}")


def validate_cardless_code(code: str) -> str:
    """Withdrawal codes are exactly 8 ASCII digits."""
    if not isinstance(code, str) or not CARDLESS_CODE_PATTERN.fullmatch(code):
        raise ValidationError("The withdrawal code must be exactly 8 digits")
    return code
