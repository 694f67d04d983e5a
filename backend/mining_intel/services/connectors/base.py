from abc import ABC, abstractmethod


class ConnectorResult(dict):
    """Provider response normalized to ``{"pages": [{"url": ..., "markdown": ...}]}``."""


class BaseConnector(ABC):
    """
    A web search+scrape provider. ``fetch`` takes ``query`` and a result
    ``limit`` and returns the scraped pages; an empty result means the
    provider is unconfigured or found nothing.
    """

    name: str

    @abstractmethod
    async def fetch(self, **params) -> ConnectorResult:
        ...
