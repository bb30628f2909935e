"""
Typed result of a resolution call. Single format for barcode, text and image.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from foodlens.models.product import ProductRecord


class ResolutionStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    NOT_RECOGNIZED = "not_recognized"
    UNAVAILABLE = "unavailable"
    ERROR = "error"
    INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class ResolutionOutcome:
    status: ResolutionStatus
    products: tuple[ProductRecord, ...] = field(default_factory=tuple)
    message: str = ""

    @classmethod
    def found(cls, *products: ProductRecord) -> "ResolutionOutcome":
        if not products:
            raise ValueError("found outcome needs at least one product")
        return cls(ResolutionStatus.FOUND, tuple(products))

    @classmethod
    def failed(cls, status: ResolutionStatus, message: str = "") -> "ResolutionOutcome":
        return cls(status, (), message)

    @property
    def is_found(self) -> bool:
        return self.status == ResolutionStatus.FOUND

    @property
    def product(self) -> Optional[ProductRecord]:
        """Best product, or None for every non-found outcome."""
        return self.products[0] if self.products else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "product": self.product.to_dict() if self.product else None,
            "products": [p.to_dict() for p in self.products],
            "message": self.message,
        }
