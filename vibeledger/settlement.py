import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import SettlementFailed
from .models import U64_MAX


logger = logging.getLogger(__name__)


class TokenSettlement(Protocol):
    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        *,
        authority: str,
        mint: str,
        recipient_owner: str,
    ) -> None:
        """Move `amount` units from the pool account to the recipient, or raise SettlementFailed."""
        ...


@dataclass
class TokenAccount:
    address: str
    mint: str
    owner: str
    balance: int = 0


class InMemoryTokenSettlement:
    """Token accounts kept in process memory; one lock serializes transfers."""

    def __init__(self):
        self.accounts: dict[str, TokenAccount] = {}
        self._lock = threading.Lock()

    def open_account(self, mint: str, owner: str, address: Optional[str] = None) -> str:
        address = address or secrets.token_hex(32)
        with self._lock:
            if address in self.accounts:
                raise ValueError(f"Token account {address} already exists")
            self.accounts[address] = TokenAccount(address=address, mint=mint, owner=owner)
        return address

    def mint_to(self, address: str, amount: int) -> None:
        with self._lock:
            account = self.accounts[address]
            if account.balance + amount > U64_MAX:
                raise ValueError("Mint would overflow token account balance")
            account.balance += amount

    def balance_of(self, address: str) -> int:
        return self.accounts[address].balance

    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        *,
        authority: str,
        mint: str,
        recipient_owner: str,
    ) -> None:
        with self._lock:
            pool = self.accounts.get(source)
            recipient = self.accounts.get(destination)
            if pool is None:
                raise SettlementFailed(f"Pool token account {source} does not exist")
            if recipient is None:
                raise SettlementFailed(f"Recipient token account {destination} does not exist")
            if pool.mint != mint:
                raise SettlementFailed("Pool token account holds a different mint")
            if recipient.mint != mint:
                raise SettlementFailed("Recipient token account holds a different mint")
            if pool.owner != authority:
                raise SettlementFailed("Pool token account is not controlled by the transfer authority")
            if recipient.owner != recipient_owner:
                raise SettlementFailed("Recipient token account is not owned by the claimant")
            if pool.balance < amount:
                raise SettlementFailed(f"Insufficient pool balance: {pool.balance} < {amount}")
            if recipient.balance + amount > U64_MAX:
                raise SettlementFailed("Transfer would overflow recipient balance")
            pool.balance -= amount
            recipient.balance += amount
        logger.info("settled %d token unit(s) %s -> %s", amount, source, destination)
