from .base import BaseConnector, ConnectorResult
from .firecrawl import FirecrawlConnector

__all__ = ["BaseConnector", "ConnectorResult", "FirecrawlConnector"]
