# Import every model so relationship() string targets resolve on first use
from .company import Company, CompanyStatus
from .executive import Executive
from .asset import Asset

__all__ = ["Company", "CompanyStatus", "Executive", "Asset"]
