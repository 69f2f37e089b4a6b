from datetime import datetime
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict


U64_MAX = 2**64 - 1
U8_MAX = 2**8 - 1

Pubkey = Annotated[
    str,
    Field(pattern=r"^[0-9a-f]{64}$", description="32-byte key as lowercase hex"),
]
U64 = Annotated[int, Field(ge=0, le=U64_MAX)]
U8 = Annotated[int, Field(ge=0, le=U8_MAX)]


class GlobalAccount(BaseModel):
    authority: Pubkey
    reward_token_mint: Pubkey
    total_actions_recorded: U64 = 0
    total_token_rewarded_cumulative: U64 = 0
    total_points_distributed: U64 = 0
    bump: U8

    model_config = ConfigDict(from_attributes=True, frozen=True)


class UserAccount(BaseModel):
    owner: Pubkey
    vibe_points: U64 = 0
    total_token_earned_cumulative: U64 = 0
    total_actions_sent: U64 = 0
    total_upvotes_sent: U64 = 0
    level: U64 = 1
    bump: U8

    model_config = ConfigDict(from_attributes=True, frozen=True)

    def claimable_tokens(self) -> int:
        # 10 points redeem for 1 token unit
        return (self.vibe_points // 10) * 1


class TipRecorded(BaseModel):
    kind: Literal["TipRecorded"] = "TipRecorded"
    user: Pubkey
    tip_amount: U64
    points_earned: U64
    reference: str


class UpvoteRecorded(BaseModel):
    kind: Literal["UpvoteRecorded"] = "UpvoteRecorded"
    user: Pubkey
    creator_address: Pubkey
    post_id: str
    points_earned: U64


class RewardsClaimed(BaseModel):
    kind: Literal["RewardsClaimed"] = "RewardsClaimed"
    user: Pubkey
    token_amount: U64


AuditEvent = Annotated[
    Union[TipRecorded, UpvoteRecorded, RewardsClaimed],
    Field(discriminator="kind"),
]


class AuditRecord(BaseModel):
    sequence: int
    emitted_at: datetime
    event: AuditEvent


class InitializeRequest(BaseModel):
    authority: Pubkey
    reward_token_mint: Optional[Pubkey] = Field(
        default=None, description="Reward token mint; the configured default is used when omitted"
    )


class InitializeUserRequest(BaseModel):
    user: Pubkey


class RecordTipRequest(BaseModel):
    user: Pubkey
    tip_amount: U64
    reference: str = Field(default="", description="Free-form tip reference, e.g. a payment signature")
    user_account: Optional[Pubkey] = Field(
        default=None, description="Address of the caller's user account; derived when omitted"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "user": "9f2c1a" + "0" * 58,
            "tip_amount": 1000,
            "reference": "tip for stream 42",
        }
    })


class RecordUpvoteRequest(BaseModel):
    user: Pubkey
    creator_address: Pubkey
    post_id: str
    user_account: Optional[Pubkey] = None


class ClaimRewardsRequest(BaseModel):
    user: Pubkey
    treasury: Pubkey = Field(..., description="Token account holding the shared reward pool")
    user_token_account: Pubkey = Field(..., description="Caller's token account receiving the reward")
    user_account: Optional[Pubkey] = None


class UpdateConfigRequest(BaseModel):
    authority: Pubkey
    new_authority: Optional[Pubkey] = None


class GlobalResponse(BaseModel):
    address: Pubkey
    account: GlobalAccount
    message: str


class UserResponse(BaseModel):
    address: Pubkey
    account: UserAccount
    event: Optional[AuditEvent] = None
    message: str


class EventLogResponse(BaseModel):
    records: list[AuditRecord]
    total_count: int
