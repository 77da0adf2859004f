"""
Common test fixtures shared by all modules.

Provides factory functions for the anchoring engine's building blocks:
- Donation rows (as they sit in the donations table)
- In-memory stores seeded with donations
- Lifecycle controllers wired to a FakeLedger and a manual clock

These are the foundational building blocks used by higher-level fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from core.config.runtime import RuntimeConfig
from core.ledger import AlwaysFunded, FakeLedger, InMemoryDonationStore, LedgerClient, WalletCheck
from orchestrator.lifecycle import BatchLifecycleController


BASE_TIME = datetime(2025, 2, 2, 10, 30, tzinfo=timezone.utc)


# =============================================================================
# Donation Factories
# =============================================================================

def make_donation(
    donation_id: str = "abc-123",
    amount: Any = "1000.00",
    currency: str = "INR",
    payment_id: Optional[str] = None,
    payment_method: str = "upi",
    external_reference: Optional[str] = "UPI123",
    created_at: Any = "2025-02-02T10:30:00Z",
    donor_name: Optional[str] = "John",
    anonymous: bool = False,
    **extra: Any,
) -> dict[str, Any]:
    """
    Create a donation row for testing.

    The defaults serialize to:
        abc-123|1000.00|INR|pay_xyz|UPI123|2025-02-02T10:30:00Z|upi|John|false
    """
    row = {
        "id": donation_id,
        "amount": amount,
        "currency": currency,
        "payment_id": payment_id if payment_id is not None else "pay_xyz",
        "payment_method": payment_method,
        "external_reference": external_reference,
        "created_at": created_at,
        "donor_name": donor_name,
        "anonymous": anonymous,
    }
    row.update(extra)
    return row


def make_donations(
    count: int,
    *,
    prefix: str = "don",
    amount: str = "100.00",
    start: datetime = BASE_TIME,
) -> list[dict[str, Any]]:
    """Create `count` distinct donations one minute apart."""
    return [
        make_donation(
            donation_id=f"{prefix}-{i:03d}",
            amount=amount,
            payment_id=f"pay_{prefix}_{i:03d}",
            external_reference=f"REF{i:03d}",
            created_at=(start + timedelta(minutes=i)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            donor_name=f"Donor {i}",
        )
        for i in range(count)
    ]


def make_three_donations() -> list[dict[str, Any]]:
    """INR 100, 200 and 300, created in that order."""
    return [
        make_donation(
            donation_id=f"d{i}",
            amount=f"{amount}.00",
            payment_id=f"pay_d{i}",
            external_reference=f"UPI00{i}",
            created_at=(BASE_TIME + timedelta(minutes=i)).strftime("%Y-%m-%dT%H:%M:%SZ"),
            donor_name=name,
        )
        for i, (amount, name) in enumerate([(100, "Asha"), (200, "Ravi"), (300, "Meera")], start=1)
    ]


# =============================================================================
# Store / Controller Factories
# =============================================================================

def make_store(donations: Sequence[dict[str, Any]] = ()) -> InMemoryDonationStore:
    """In-memory store seeded with the given rows."""
    store = InMemoryDonationStore()
    for row in donations:
        store.add_donation(row)
    return store


class ManualClock:
    """
    Monotonic clock advanced only by sleep().

    Lets finality timeouts run instantly in tests.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_controller(
    store: Optional[InMemoryDonationStore] = None,
    ledger: Optional[LedgerClient] = None,
    wallet: Optional[WalletCheck] = None,
    config: Optional[RuntimeConfig] = None,
    clock: Optional[ManualClock] = None,
) -> BatchLifecycleController:
    """Controller over a fake ledger with an always-funded wallet and a manual clock."""
    clock = clock or ManualClock()
    return BatchLifecycleController(
        store if store is not None else make_store(),
        ledger if ledger is not None else FakeLedger(),
        wallet if wallet is not None else AlwaysFunded(),
        config or RuntimeConfig(),
        sleep=clock.sleep,
        clock=clock,
    )
