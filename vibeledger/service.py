import functools
import logging
from typing import Optional

from .addressing import AddressDeriver
from .audit import AuditEmitter
from .config import DEFAULT_PROGRAM_ID
from .errors import (
    LedgerServiceError,
    AlreadyInitialized,
    NotFound,
    AddressMismatch,
    Unauthorized,
    ArithmeticOverflow,
    NoRewardsToClaim,
    SettlementFailed,
    AccountInUse,
    InvalidRecord,
)
from .models import (
    U64_MAX,
    GlobalAccount,
    UserAccount,
    TipRecorded,
    UpvoteRecorded,
    RewardsClaimed,
    InitializeRequest,
    InitializeUserRequest,
    RecordTipRequest,
    RecordUpvoteRequest,
    ClaimRewardsRequest,
    UpdateConfigRequest,
    GlobalResponse,
    UserResponse,
    EventLogResponse,
)
from .settlement import InMemoryTokenSettlement, TokenSettlement
from .store import LedgerStore, Transaction


logger = logging.getLogger(__name__)

__all__ = [
    "RewardEngine",
    "LedgerServiceError",
    "AlreadyInitialized",
    "NotFound",
    "AddressMismatch",
    "Unauthorized",
    "ArithmeticOverflow",
    "NoRewardsToClaim",
    "SettlementFailed",
    "AccountInUse",
    "InvalidRecord",
    "tip_points",
    "level_for",
]

TIP_BASE_POINTS = 5
TIP_BONUS_DIVISOR = 100
UPVOTE_POINTS = 1
POINTS_PER_LEVEL = 100


def checked_add(current: int, delta: int, field: str) -> int:
    total = current + delta
    if total > U64_MAX:
        raise ArithmeticOverflow(f"{field} would overflow: {current} + {delta}")
    return total


def tip_points(tip_amount: int) -> int:
    return TIP_BASE_POINTS + tip_amount // TIP_BONUS_DIVISOR


def level_for(vibe_points: int) -> int:
    return vibe_points // POINTS_PER_LEVEL + 1


def _transition(func):
    @functools.wraps(func)
    def wrapper(self, request, *args, **kwargs):
        try:
            return func(self, request, *args, **kwargs)
        except LedgerServiceError as e:
            logger.warning("%s rejected: %s: %s", func.__name__, e.code, e)
            raise
    return wrapper


class RewardEngine:
    def __init__(
        self,
        store: Optional[LedgerStore] = None,
        settlement: Optional[TokenSettlement] = None,
        emitter: Optional[AuditEmitter] = None,
        program_id: str = DEFAULT_PROGRAM_ID,
    ):
        self.store = store or LedgerStore(AddressDeriver(program_id))
        self.deriver = self.store.deriver
        self.settlement = settlement if settlement is not None else InMemoryTokenSettlement()
        self.emitter = emitter or AuditEmitter()

    @property
    def global_address(self) -> str:
        return self.deriver.global_address().address

    def user_address(self, owner: str) -> str:
        return self.deriver.user_address(owner).address

    @_transition
    def initialize(self, request: InitializeRequest) -> GlobalResponse:
        if request.reward_token_mint is None:
            raise ValueError("reward_token_mint is required to initialize the economy")
        account = GlobalAccount(
            authority=request.authority,
            reward_token_mint=request.reward_token_mint,
            bump=self.deriver.global_address().bump,
        )
        with self.store.transaction() as tx:
            address = tx.create_global(account)

        logger.info("economy initialized at %s by %s", address, request.authority)
        return GlobalResponse(address=address, account=account, message="Economy initialized")

    @_transition
    def initialize_user(self, request: InitializeUserRequest) -> UserResponse:
        account = UserAccount(owner=request.user, bump=self.deriver.user_address(request.user).bump)
        with self.store.transaction() as tx:
            address = tx.create_user(account)

        logger.info("user account %s created for %s", address, request.user)
        return UserResponse(address=address, account=account, message="User account created")

    @_transition
    def record_tip(self, request: RecordTipRequest) -> UserResponse:
        points = tip_points(request.tip_amount)

        with self.store.transaction() as tx:
            address, user = self._load_owned_user(tx, request.user, request.user_account)
            glob = tx.load_global(self.global_address)

            vibe_points = checked_add(user.vibe_points, points, "vibe_points")
            user = user.model_copy(update={
                "vibe_points": vibe_points,
                "total_actions_sent": checked_add(user.total_actions_sent, 1, "total_actions_sent"),
                "level": level_for(vibe_points),
            })
            glob = glob.model_copy(update={
                "total_actions_recorded": checked_add(glob.total_actions_recorded, 1, "total_actions_recorded"),
                "total_token_rewarded_cumulative": checked_add(
                    glob.total_token_rewarded_cumulative, request.tip_amount, "total_token_rewarded_cumulative"
                ),
                "total_points_distributed": checked_add(
                    glob.total_points_distributed, points, "total_points_distributed"
                ),
            })
            tx.store(address, user)
            tx.store(self.global_address, glob)

            event = TipRecorded(
                user=request.user,
                tip_amount=request.tip_amount,
                points_earned=points,
                reference=request.reference,
            )
            tx.on_commit(functools.partial(self.emitter.emit, event))

        logger.info("tip of %d recorded for %s: +%d points", request.tip_amount, request.user, points)
        return UserResponse(address=address, account=user, event=event, message="Tip recorded")

    @_transition
    def record_upvote(self, request: RecordUpvoteRequest) -> UserResponse:
        with self.store.transaction() as tx:
            address, user = self._load_owned_user(tx, request.user, request.user_account)
            glob = tx.load_global(self.global_address)

            vibe_points = checked_add(user.vibe_points, UPVOTE_POINTS, "vibe_points")
            user = user.model_copy(update={
                "vibe_points": vibe_points,
                "total_upvotes_sent": checked_add(user.total_upvotes_sent, 1, "total_upvotes_sent"),
                "level": level_for(vibe_points),
            })
            glob = glob.model_copy(update={
                "total_points_distributed": checked_add(
                    glob.total_points_distributed, UPVOTE_POINTS, "total_points_distributed"
                ),
            })
            tx.store(address, user)
            tx.store(self.global_address, glob)

            # creator_address is carried for attribution only
            event = UpvoteRecorded(
                user=request.user,
                creator_address=request.creator_address,
                post_id=request.post_id,
                points_earned=UPVOTE_POINTS,
            )
            tx.on_commit(functools.partial(self.emitter.emit, event))

        logger.info("upvote on %s recorded for %s", request.post_id, request.user)
        return UserResponse(address=address, account=user, event=event, message="Upvote recorded")

    @_transition
    def claim_rewards(self, request: ClaimRewardsRequest) -> UserResponse:
        with self.store.transaction() as tx:
            address, user = self._load_owned_user(tx, request.user, request.user_account)
            glob = tx.load_global(self.global_address)

            claimable = user.claimable_tokens()
            if claimable == 0:
                raise NoRewardsToClaim(f"{user.vibe_points} vibe points are not enough to claim a reward")

            user = user.model_copy(update={
                "total_token_earned_cumulative": checked_add(
                    user.total_token_earned_cumulative, claimable, "total_token_earned_cumulative"
                ),
                "vibe_points": 0,
                "level": level_for(0),
            })

            # Settlement runs last so any failure leaves staged records unwritten.
            self.settlement.transfer(
                request.treasury,
                request.user_token_account,
                claimable,
                authority=self.global_address,
                mint=glob.reward_token_mint,
                recipient_owner=request.user,
            )
            tx.store(address, user)

            event = RewardsClaimed(user=request.user, token_amount=claimable)
            tx.on_commit(functools.partial(self.emitter.emit, event))

        logger.info("%s claimed %d reward token unit(s)", request.user, claimable)
        return UserResponse(address=address, account=user, event=event, message="Rewards claimed")

    @_transition
    def update_config(self, request: UpdateConfigRequest) -> GlobalResponse:
        with self.store.transaction() as tx:
            glob = tx.load_global(self.global_address)
            if request.authority != glob.authority:
                raise Unauthorized(f"{request.authority} is not the economy authority")
            if request.new_authority is not None:
                glob = glob.model_copy(update={"authority": request.new_authority})
                tx.store(self.global_address, glob)

        if request.new_authority is not None:
            logger.info("economy authority changed to %s", request.new_authority)
        return GlobalResponse(address=self.global_address, account=glob, message="Configuration updated")

    def get_global(self) -> GlobalResponse:
        return GlobalResponse(
            address=self.global_address,
            account=self.store.load_global(),
            message="Global account",
        )

    def get_user(self, owner: str) -> UserResponse:
        address = self.user_address(owner)
        return UserResponse(address=address, account=self.store.load_user(address), message="User account")

    def get_user_at(self, address: str) -> UserResponse:
        return UserResponse(address=address, account=self.store.load_user(address), message="User account")

    def claimable_rewards(self, owner: str) -> int:
        return self.store.load_user(self.user_address(owner)).claimable_tokens()

    def get_events(self, user: Optional[str] = None, limit: int = 50, offset: int = 0) -> EventLogResponse:
        return EventLogResponse(
            records=self.emitter.records(user=user, limit=limit, offset=offset),
            total_count=self.emitter.count(user=user),
        )

    def _load_owned_user(
        self, tx: Transaction, caller: str, address: Optional[str]
    ) -> tuple[str, UserAccount]:
        address = address or self.user_address(caller)
        user = tx.load_user(address)
        if user.owner != caller:
            raise Unauthorized(f"{caller} does not own user account {address}")
        return address, user
