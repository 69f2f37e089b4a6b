"""
Vibe Ledger: reward-point economy engine

This module provides:
- A singleton global account with economy-wide audit counters
- Per-user accounts at deterministic, re-verifiable addresses
- Tip, upvote, claim and config transitions with checked arithmetic
- All-or-nothing commits with immediate rejection of contended records
- An append-only audit trail of accepted transitions
"""

from .models import (
    GlobalAccount,
    UserAccount,
    TipRecorded,
    UpvoteRecorded,
    RewardsClaimed,
    AuditRecord,
)
from .addressing import AddressDeriver, derive_address
from .store import LedgerStore
from .audit import AuditEmitter
from .settlement import InMemoryTokenSettlement, TokenSettlement
from .service import RewardEngine

__all__ = [
    "GlobalAccount",
    "UserAccount",
    "TipRecorded",
    "UpvoteRecorded",
    "RewardsClaimed",
    "AuditRecord",
    "AddressDeriver",
    "derive_address",
    "LedgerStore",
    "AuditEmitter",
    "InMemoryTokenSettlement",
    "TokenSettlement",
    "RewardEngine",
]
