from landed_cost.modules.economics.fx.cache import FxRateCache
from landed_cost.modules.economics.fx.provider import FxProviderBase, HttpFxProvider
from landed_cost.modules.economics.fx.rate_service import FxRateQuote, FxRateService

__all__ = [
    "FxProviderBase",
    "FxRateCache",
    "FxRateQuote",
    "FxRateService",
    "HttpFxProvider",
]
