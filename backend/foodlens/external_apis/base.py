"""
Result type shared by every source adapter.
"""
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from foodlens.models.product import ProductRecord

SourceStatus = Literal["ok", "empty", "failed", "unavailable"]


@dataclass
class SourceResult:
    """
    Outcome of one call to one source. Adapters return this instead of raising.
      ok          -> products holds at least one record
      empty       -> the source answered, nothing usable (incl. unparseable output)
      failed      -> transport error or timeout
      unavailable -> source not configured or disabled; no call was made
    """
    status: SourceStatus
    source: str  # "open_food_facts" | "model" | "local_cache"
    products: List[ProductRecord] = field(default_factory=list)
    raw_response_summary: str = ""  # for logging
    # Database barcode lookups only: the record reports an energy value.
    complete: bool = False

    @property
    def ok(self) -> bool:
        return self.status == "ok" and bool(self.products)

    @property
    def best(self) -> Optional[ProductRecord]:
        return self.products[0] if self.products else None
