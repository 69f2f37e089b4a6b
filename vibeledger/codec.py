"""
Fixed byte layout for stored records.

Each record starts with an 8-byte discriminator (first bytes of
sha256("account:<Kind>")) followed by its fields in declaration order,
little-endian, keys as raw 32 bytes. The layout must not change once records
have been written.
"""

import hashlib
import struct
from typing import Union

from pydantic import ValidationError

from .errors import InvalidRecord
from .models import GlobalAccount, UserAccount


Record = Union[GlobalAccount, UserAccount]


def _discriminator(kind: str) -> bytes:
    return hashlib.sha256(f"account:{kind}".encode("utf-8")).digest()[:8]


GLOBAL_DISCRIMINATOR = _discriminator("GlobalAccount")
USER_DISCRIMINATOR = _discriminator("UserAccount")

_GLOBAL_LAYOUT = struct.Struct("<8s32s32sQQQB")
_USER_LAYOUT = struct.Struct("<8s32sQQQQQB")


def encode_record(record: Record) -> bytes:
    if isinstance(record, GlobalAccount):
        return _GLOBAL_LAYOUT.pack(
            GLOBAL_DISCRIMINATOR,
            bytes.fromhex(record.authority),
            bytes.fromhex(record.reward_token_mint),
            record.total_actions_recorded,
            record.total_token_rewarded_cumulative,
            record.total_points_distributed,
            record.bump,
        )
    if isinstance(record, UserAccount):
        return _USER_LAYOUT.pack(
            USER_DISCRIMINATOR,
            bytes.fromhex(record.owner),
            record.vibe_points,
            record.total_token_earned_cumulative,
            record.total_actions_sent,
            record.total_upvotes_sent,
            record.level,
            record.bump,
        )
    raise TypeError(f"Cannot encode {type(record).__name__}")


def decode_record(data: bytes) -> Record:
    head = data[:8]
    try:
        if head == GLOBAL_DISCRIMINATOR and len(data) == _GLOBAL_LAYOUT.size:
            _, authority, mint, actions, rewarded, points, bump = _GLOBAL_LAYOUT.unpack(data)
            return GlobalAccount(
                authority=authority.hex(),
                reward_token_mint=mint.hex(),
                total_actions_recorded=actions,
                total_token_rewarded_cumulative=rewarded,
                total_points_distributed=points,
                bump=bump,
            )
        if head == USER_DISCRIMINATOR and len(data) == _USER_LAYOUT.size:
            _, owner, points, earned, tips, upvotes, level, bump = _USER_LAYOUT.unpack(data)
            return UserAccount(
                owner=owner.hex(),
                vibe_points=points,
                total_token_earned_cumulative=earned,
                total_actions_sent=tips,
                total_upvotes_sent=upvotes,
                level=level,
                bump=bump,
            )
    except ValidationError as e:
        raise InvalidRecord(f"Stored record failed validation: {e}") from e
    raise InvalidRecord(f"Unrecognised record layout ({len(data)} bytes)")
