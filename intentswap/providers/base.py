from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class QuoteProvider(Provider):
    """Provider for swap prices and executable quotes (amounts in base units)"""

    @abstractmethod
    async def get_price(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: Optional[str] = None,
    ) -> Any:
        """Indicative price, no executable payload"""
        pass

    @abstractmethod
    async def get_quote(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str,
    ) -> Any:
        """Binding quote with transaction payload and allowance/permit requirements"""
        pass


class TokenMetadataProvider(Provider):
    """Provider for token search by name or symbol"""

    @abstractmethod
    async def search(self, query: str, limit: int = 10) -> Any:
        """Return candidate tokens for a name/symbol search"""
        pass
