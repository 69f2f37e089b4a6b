from typing import Optional
from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .logging_config import configure_logging
from .models import (
    InitializeRequest, InitializeUserRequest, RecordTipRequest, RecordUpvoteRequest,
    ClaimRewardsRequest, UpdateConfigRequest, GlobalResponse, UserResponse, EventLogResponse,
)
from .service import (
    RewardEngine, LedgerServiceError, AlreadyInitialized, NotFound, AddressMismatch,
    Unauthorized, ArithmeticOverflow, NoRewardsToClaim, SettlementFailed, AccountInUse, InvalidRecord,
)


_STATUS_BY_ERROR = {
    NotFound: status.HTTP_404_NOT_FOUND,
    AlreadyInitialized: status.HTTP_409_CONFLICT,
    AccountInUse: status.HTTP_409_CONFLICT,
    Unauthorized: status.HTTP_403_FORBIDDEN,
    AddressMismatch: status.HTTP_400_BAD_REQUEST,
    NoRewardsToClaim: status.HTTP_400_BAD_REQUEST,
    ArithmeticOverflow: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SettlementFailed: status.HTTP_402_PAYMENT_REQUIRED,
    InvalidRecord: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _http_error(e: LedgerServiceError) -> HTTPException:
    code = _STATUS_BY_ERROR.get(type(e), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=code, detail={"error": e.code, "message": str(e)})


def create_app(engine: Optional[RewardEngine] = None, settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)
    reward_engine = engine or RewardEngine(program_id=settings.program_id)

    app = FastAPI(
        title="Vibe Ledger API",
        description="Reward-point economy: tips and upvotes earn vibe points redeemable for reward tokens",
        version="1.0.0",
        root_path=settings.api_root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["System"])
    def health_check():
        return {"status": "healthy", "service": "vibe-ledger"}

    @app.post("/economy", response_model=GlobalResponse, status_code=status.HTTP_201_CREATED, tags=["Economy"])
    def initialize_economy(request: InitializeRequest) -> GlobalResponse:
        if request.reward_token_mint is None:
            if settings.reward_token_mint is None:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="reward_token_mint is required when no default mint is configured",
                )
            request = request.model_copy(update={"reward_token_mint": settings.reward_token_mint})
        try:
            return reward_engine.initialize(request)
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.get("/economy", response_model=GlobalResponse, tags=["Economy"])
    def get_economy() -> GlobalResponse:
        try:
            return reward_engine.get_global()
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.patch("/economy/config", response_model=GlobalResponse, tags=["Economy"])
    def update_config(request: UpdateConfigRequest) -> GlobalResponse:
        try:
            return reward_engine.update_config(request)
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED, tags=["Users"])
    def initialize_user(request: InitializeUserRequest) -> UserResponse:
        try:
            return reward_engine.initialize_user(request)
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.get("/users/{owner}", response_model=UserResponse, tags=["Users"])
    def get_user(owner: str) -> UserResponse:
        try:
            return reward_engine.get_user(owner)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Malformed owner key {owner!r}")
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.post("/tips", response_model=UserResponse, tags=["Actions"])
    def record_tip(request: RecordTipRequest) -> UserResponse:
        try:
            return reward_engine.record_tip(request)
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.post("/upvotes", response_model=UserResponse, tags=["Actions"])
    def record_upvote(request: RecordUpvoteRequest) -> UserResponse:
        try:
            return reward_engine.record_upvote(request)
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.post("/claims", response_model=UserResponse, tags=["Rewards"])
    def claim_rewards(request: ClaimRewardsRequest) -> UserResponse:
        try:
            return reward_engine.claim_rewards(request)
        except LedgerServiceError as e:
            raise _http_error(e)

    @app.get("/events", response_model=EventLogResponse, tags=["Audit"])
    def get_events(user: Optional[str] = None, limit: int = 50, offset: int = 0) -> EventLogResponse:
        return reward_engine.get_events(user=user, limit=limit, offset=offset)

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
