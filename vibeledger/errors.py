class LedgerServiceError(Exception):
    code = "LedgerServiceError"


class AlreadyInitialized(LedgerServiceError):
    code = "AlreadyInitialized"


class NotFound(LedgerServiceError):
    code = "NotFound"


class AddressMismatch(LedgerServiceError):
    code = "AddressMismatch"


class Unauthorized(LedgerServiceError):
    code = "Unauthorized"


class ArithmeticOverflow(LedgerServiceError):
    code = "ArithmeticOverflow"


class NoRewardsToClaim(LedgerServiceError):
    code = "NoRewardsToClaim"


class SettlementFailed(LedgerServiceError):
    code = "SettlementFailed"


class AccountInUse(LedgerServiceError):
    """Another in-flight transition holds the record; retry later."""
    code = "AccountInUse"


class InvalidRecord(LedgerServiceError):
    """Stored bytes do not decode as the expected record kind."""
    code = "InvalidRecord"
