from functools import wraps

import ccxt
import httpx

from superorder.exceptions import ExtensionError, PriceFeedUnavailableError, PriceOracleError

# Order matters: the first matching class wins
CCXT_ERROR_MAP = {
    ccxt.RequestTimeout: PriceFeedUnavailableError,
    ccxt.NetworkError: PriceFeedUnavailableError,
    ccxt.BadSymbol: PriceOracleError,
    ccxt.ExchangeError: PriceOracleError,
}


def map_feed_errors(func):
    """
    Decorator to catch ccxt and httpx exceptions and re-raise them as oracle errors.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ExtensionError:
            raise
        except ccxt.BaseError as e:
            for ccxt_exception, feed_exception in CCXT_ERROR_MAP.items():
                if isinstance(e, ccxt_exception):
                    raise feed_exception(f"{feed_exception().message} Original error: {e}") from e
            raise PriceOracleError(f"An unexpected price source error occurred: {e}") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code >= 500:
                raise PriceFeedUnavailableError(f"Price endpoint returned {e.response.status_code}.") from e
            raise PriceOracleError(f"Price endpoint rejected the request: {e.response.status_code}.") from e
        except httpx.HTTPError as e:
            raise PriceFeedUnavailableError(f"{PriceFeedUnavailableError().message} Original error: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise PriceOracleError(f"Malformed price data: {e}") from e
    return wrapper
