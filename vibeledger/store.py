import logging
import threading
from typing import Callable, Optional

from .addressing import AddressDeriver
from .codec import Record, decode_record, encode_record
from .errors import AccountInUse, AddressMismatch, AlreadyInitialized, NotFound
from .models import GlobalAccount, UserAccount


logger = logging.getLogger(__name__)


class InMemoryStorage:
    def __init__(self):
        self.records: dict[str, bytes] = {}
        self.busy: set[str] = set()
        self.guard = threading.Lock()


class Transaction:
    """
    One atomic unit of work against the store.

    Records touched by the transaction are locked for its lifetime; a second
    transaction touching one of them is rejected at once with AccountInUse.
    Staged writes become visible together on clean exit and are dropped if
    the block raises. Commit callbacks run after the write and before the
    locks are released, so they observe commits in order.
    """

    def __init__(self, store: "LedgerStore"):
        self._store = store
        self._held: set[str] = set()
        self._staged: dict[str, Record] = {}
        self._on_commit: list[Callable[[], None]] = []

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                if self._staged:
                    self._store._write(self._staged)
                for callback in self._on_commit:
                    callback()
        finally:
            self._store._release(self._held)
            self._held.clear()
            self._staged.clear()
            self._on_commit.clear()
        return False

    def on_commit(self, callback: Callable[[], None]) -> None:
        self._on_commit.append(callback)

    def _claim(self, address: str) -> None:
        if address not in self._held:
            self._store._acquire(address)
            self._held.add(address)

    def _read(self, address: str) -> Record:
        self._claim(address)
        if address in self._staged:
            return self._staged[address]
        return self._store.load(address)

    def load_global(self, address: str) -> GlobalAccount:
        record = self._read(address)
        if not isinstance(record, GlobalAccount):
            raise AddressMismatch(f"Record at {address} is not the global account")
        self._store.deriver.verify_global(address, record)
        return record

    def load_user(self, address: str) -> UserAccount:
        record = self._read(address)
        if not isinstance(record, UserAccount):
            raise AddressMismatch(f"Record at {address} is not a user account")
        self._store.deriver.verify_user(address, record)
        return record

    def create_global(self, record: GlobalAccount) -> str:
        address = self._store.deriver.global_address().address
        self._store.deriver.verify_global(address, record)
        self._create(address, record, "Economy is already initialized")
        return address

    def create_user(self, record: UserAccount) -> str:
        address = self._store.deriver.user_address(record.owner).address
        self._store.deriver.verify_user(address, record)
        self._create(address, record, f"User account for {record.owner} already exists")
        return address

    def _create(self, address: str, record: Record, message: str) -> None:
        self._claim(address)
        if address in self._staged or self._store.exists(address):
            raise AlreadyInitialized(message)
        self._staged[address] = record

    def store(self, address: str, record: Record) -> None:
        if address not in self._held:
            raise RuntimeError(f"Record {address} was not loaded in this transaction")
        self._staged[address] = record


class LedgerStore:
    def __init__(self, deriver: AddressDeriver, storage: Optional[InMemoryStorage] = None):
        self.deriver = deriver
        self.storage = storage or InMemoryStorage()

    def transaction(self) -> Transaction:
        return Transaction(self)

    def exists(self, address: str) -> bool:
        return address in self.storage.records

    def load(self, address: str) -> Record:
        data = self.storage.records.get(address)
        if data is None:
            raise NotFound(f"No record stored at {address}")
        return decode_record(data)

    def load_global(self) -> GlobalAccount:
        address = self.deriver.global_address().address
        record = self.load(address)
        if not isinstance(record, GlobalAccount):
            raise AddressMismatch(f"Record at {address} is not the global account")
        self.deriver.verify_global(address, record)
        return record

    def load_user(self, address: str) -> UserAccount:
        record = self.load(address)
        if not isinstance(record, UserAccount):
            raise AddressMismatch(f"Record at {address} is not a user account")
        self.deriver.verify_user(address, record)
        return record

    def _acquire(self, address: str) -> None:
        with self.storage.guard:
            if address in self.storage.busy:
                raise AccountInUse(f"Record {address} is locked by another transaction")
            self.storage.busy.add(address)

    def _release(self, addresses: set[str]) -> None:
        with self.storage.guard:
            self.storage.busy.difference_update(addresses)

    def _write(self, staged: dict[str, Record]) -> None:
        encoded = {address: encode_record(record) for address, record in staged.items()}
        with self.storage.guard:
            self.storage.records.update(encoded)
        logger.debug("committed %d record(s)", len(encoded))
