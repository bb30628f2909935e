"""
In-memory scan history: the most recent records keyed by barcode,
least-recently-scanned evicted first. The app writes to it after a
successful resolution; the resolver only reads.
"""
import logging
from collections import OrderedDict
from typing import List, Optional

from foodlens.models.product import ProductRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 200


def _query_words(query: str) -> List[str]:
    return [w for w in query.lower().split() if len(w) > 2]


class ScanCache:
    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.max_entries = max(1, int(max_entries))
        self._records: "OrderedDict[str, ProductRecord]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: ProductRecord) -> None:
        """Insert or refresh; re-adding a barcode moves it to most recent."""
        key = record.barcode or record.id
        self._records[key] = record
        self._records.move_to_end(key)
        while len(self._records) > self.max_entries:
            evicted, _ = self._records.popitem(last=False)
            logger.debug("SCAN_CACHE evicted key=%s", evicted)

    def get_by_barcode(self, barcode: str) -> Optional[ProductRecord]:
        code = (barcode or "").strip()
        if not code:
            return None
        return self._records.get(code)

    def find_by_name(self, query: str, limit: int = 5) -> List[ProductRecord]:
        """
        Newest first. A record matches when every query word longer than two
        characters occurs in "brand name", or the whole query is a substring.
        """
        q = (query or "").strip().lower()
        if not q:
            return []
        words = _query_words(q)
        hits: List[ProductRecord] = []
        for record in reversed(self._records.values()):
            haystack = f"{record.brand} {record.name}".lower()
            if (words and all(w in haystack for w in words)) or q in haystack:
                hits.append(record)
                if len(hits) >= limit:
                    break
        return hits

    def recent(self, limit: int = 20) -> List[ProductRecord]:
        return list(reversed(self._records.values()))[:max(0, limit)]

    def clear(self) -> None:
        self._records.clear()
