"""
Deterministic record addressing.

Every record lives at an address derived from a namespace tag, an optional
owner key and the program id. Derivation searches bump values from 255
downward and keeps the first candidate that cannot be mistaken for a signing
identity; that bump is the record's correctness code. Because the search is
deterministic, a record can always be re-verified from its own stored owner
and bump.
"""

import hashlib
import struct
from dataclasses import dataclass
from typing import Optional

from .errors import AddressMismatch
from .models import GlobalAccount, UserAccount


GLOBAL_NAMESPACE = "global_state"
USER_NAMESPACE = "user_state"

_DERIVATION_MARKER = b"ProgramDerivedAddress"


@dataclass(frozen=True)
class DerivedAddress:
    address: str
    bump: int


def _candidate(seeds: list[bytes], bump: int, program_id: bytes) -> bytes:
    h = hashlib.sha256()
    for seed in seeds:
        # length prefix keeps ("ab", "c") and ("a", "bc") apart
        h.update(struct.pack("<I", len(seed)))
        h.update(seed)
    h.update(bytes([bump]))
    h.update(program_id)
    h.update(_DERIVATION_MARKER)
    return h.digest()


def _is_identity_key(digest: bytes) -> bool:
    # High bit of the last byte marks keys reserved for signing identities.
    return bool(digest[-1] & 0x80)


def derive_address(namespace: str, owner: Optional[str], program_id: str) -> DerivedAddress:
    seeds = [namespace.encode("utf-8")]
    if owner is not None:
        seeds.append(bytes.fromhex(owner))
    program = bytes.fromhex(program_id)
    for bump in range(255, -1, -1):
        digest = _candidate(seeds, bump, program)
        if not _is_identity_key(digest):
            return DerivedAddress(address=digest.hex(), bump=bump)
    raise ValueError(f"No viable bump for namespace {namespace!r}")


class AddressDeriver:
    def __init__(self, program_id: str):
        self.program_id = program_id

    def global_address(self) -> DerivedAddress:
        return derive_address(GLOBAL_NAMESPACE, None, self.program_id)

    def user_address(self, owner: str) -> DerivedAddress:
        return derive_address(USER_NAMESPACE, owner, self.program_id)

    def verify_global(self, address: str, record: GlobalAccount) -> None:
        self._verify(address, self.global_address(), record.bump, "global account")

    def verify_user(self, address: str, record: UserAccount) -> None:
        self._verify(address, self.user_address(record.owner), record.bump, f"user account of {record.owner}")

    @staticmethod
    def _verify(address: str, expected: DerivedAddress, stored_bump: int, label: str) -> None:
        if stored_bump != expected.bump:
            raise AddressMismatch(
                f"Stored bump {stored_bump} for {label} is not canonical (expected {expected.bump})"
            )
        if address != expected.address:
            raise AddressMismatch(f"Address {address} does not match derived address of {label}")
