from .base import Provider, QuoteProvider, TokenMetadataProvider
from .rpc import RpcClient, get_rpc_client
from .token_search import TokenSearchProvider, TokenSearchResult
from .zeroex import ZeroExProvider

__all__ = [
    "Provider",
    "QuoteProvider",
    "TokenMetadataProvider",
    "RpcClient",
    "get_rpc_client",
    "TokenSearchProvider",
    "TokenSearchResult",
    "ZeroExProvider",
]
