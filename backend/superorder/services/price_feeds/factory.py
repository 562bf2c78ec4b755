from superorder.exceptions import ConfigurationError
from superorder.services.price_feeds.ccxt_feed import CcxtPriceFeed
from superorder.services.price_feeds.http_feed import HttpPriceFeed
from superorder.services.price_feeds.interface import PriceFeed
from superorder.services.price_feeds.static_feed import StaticPriceFeed


def get_price_feed(feed_type: str, feed_config: dict = None) -> PriceFeed:
    """
    Factory function to get a price feed instance from a configuration dictionary.
    """
    feed_config = feed_config or {}
    feed_type = feed_type.lower()

    if feed_type == "static":
        return StaticPriceFeed(
            clock=feed_config.get("clock"),
            default_decimals=feed_config.get("decimals", 8),
        )
    elif feed_type == "http":
        if not feed_config.get("base_url"):
            raise ConfigurationError("HTTP price feed requires 'base_url'.")
        return HttpPriceFeed(
            base_url=feed_config["base_url"],
            timeout=feed_config.get("timeout", 10.0),
            transport=feed_config.get("transport"),
        )
    elif feed_type == "ccxt":
        return CcxtPriceFeed(
            exchange_id=feed_config.get("exchange_id", "binance"),
            symbols=feed_config.get("symbols"),
            decimals=feed_config.get("decimals", 8),
        )
    else:
        raise ConfigurationError(f"Price feed type '{feed_type}' is not supported.")


def get_supported_feeds() -> list[str]:
    return ["static", "http", "ccxt"]
