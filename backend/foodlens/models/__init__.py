from .product import AlternativeSuggestion, DataSource, Nutrition, ProductRecord
from .outcome import ResolutionOutcome, ResolutionStatus

__all__ = [
    "AlternativeSuggestion",
    "DataSource",
    "Nutrition",
    "ProductRecord",
    "ResolutionOutcome",
    "ResolutionStatus",
]
