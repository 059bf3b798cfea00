"""Services — EssentialLoader, DetailedLoader, MaturityService."""

from maturity_engine.services.essential_loader import EssentialLoader
from maturity_engine.services.detailed_loader import DetailedLoader
from maturity_engine.services.maturity_service import MaturityService

__all__ = ["EssentialLoader", "DetailedLoader", "MaturityService"]
