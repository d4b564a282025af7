from .coinapi_client import CoinApiClient
from .coinapi_provider import CoinApiProvider

__all__ = ["CoinApiClient", "CoinApiProvider"]
