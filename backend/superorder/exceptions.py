class ExtensionError(Exception):
    """
    Base exception for all conditional execution errors.
    """
    retryable = False

    def __init__(self, message: str, code: str = "extension_error"):
        self.message = message
        self.code = code
        super().__init__(self.message)

class ConfigurationError(ExtensionError):
    """
    Invalid, unauthorized or out-of-order configuration.
    """
    def __init__(self, message: str = "Invalid configuration.", code: str = "configuration_error"):
        super().__init__(message, code)

class NotTriggeredError(ExtensionError):
    """
    The price condition was evaluated and does not hold.
    Settlement paths treat this as a fillable amount of zero.
    """
    retryable = True

    def __init__(self, message: str = "Trigger condition not met.", code: str = "not_triggered"):
        super().__init__(message, code)

class PriceOracleError(ExtensionError):
    def __init__(self, message: str = "Price oracle error.", code: str = "price_oracle_error"):
        super().__init__(message, code)

class StaleDataError(PriceOracleError):
    retryable = True

    def __init__(self, message: str = "Price data is older than the allowed heartbeat.", code: str = "stale_data"):
        super().__init__(message, code)

class PriceFeedUnavailableError(StaleDataError):
    """
    The price feed could not be reached. Treated like stale data: retry later.
    """
    def __init__(self, message: str = "Price feed unavailable.", code: str = "price_feed_unavailable"):
        super().__init__(message, code)

class InvalidPriceError(PriceOracleError):
    def __init__(self, message: str = "Price feed returned a non-positive price.", code: str = "invalid_price"):
        super().__init__(message, code)

class ManipulationError(PriceOracleError):
    """
    Raised when a new price deviates from the last recorded sample by more than the configured bound.
    """
    def __init__(self, message: str = "Price deviation exceeds the configured bound.", code: str = "price_manipulation"):
        super().__init__(message, code)

class UnauthorizedError(ExtensionError):
    def __init__(self, message: str = "Caller is not authorized for this action.", code: str = "unauthorized"):
        super().__init__(message, code)

class PausedError(ExtensionError):
    def __init__(self, message: str = "Engine is paused.", code: str = "paused"):
        super().__init__(message, code)

class SlippageError(ExtensionError):
    """
    Raised when the swap venue returns less than the slippage-adjusted expected amount.
    The whole execution is rolled back.
    """
    def __init__(self, message: str = "Slippage exceeded maximum threshold.", code: str = "slippage_exceeded"):
        super().__init__(message, code)

class RaceConditionError(ExtensionError):
    retryable = True

    def __init__(self, message: str = "Cancellation is not due yet.", code: str = "race_condition"):
        super().__init__(message, code)

class FeeTooHighError(ExtensionError):
    def __init__(self, message: str = "Transaction fee is above the allowed ceiling.", code: str = "fee_too_high"):
        super().__init__(message, code)

class AlreadyResolvedError(ExtensionError):
    """
    The state is already terminal. Public entrypoints suppress this into a no-op.
    """
    def __init__(self, message: str = "Already resolved.", code: str = "already_resolved"):
        super().__init__(message, code)

class ReentrantCallError(ExtensionError):
    def __init__(self, message: str = "Action already in progress for this order.", code: str = "reentrant_call"):
        super().__init__(message, code)
