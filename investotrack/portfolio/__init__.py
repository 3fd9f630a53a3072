"""Portfolio domain package."""

from investotrack.portfolio.models import Holding, RoundingPolicy
from investotrack.portfolio.portfolio_service import PortfolioService

__all__ = ["Holding", "PortfolioService", "RoundingPolicy"]
