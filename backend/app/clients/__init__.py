"""Exchange clients."""

from app.clients.binance_rest import BinanceRestClient, to_pair
from app.clients.binance_ws_kline import BinanceKlineWebSocket, parse_kline_message

__all__ = [
    "BinanceRestClient",
    "to_pair",
    "BinanceKlineWebSocket",
    "parse_kline_message",
]
