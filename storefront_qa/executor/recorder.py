"""Result recorder — one row per attempted combination, in iteration order."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterator

from storefront_qa.models.product import Combination
from storefront_qa.models.result import ResultRow, ResultStatus

logger = logging.getLogger(__name__)


class ResultRecorder:
    """Append-only, insertion-ordered store of ResultRows for a single run."""

    def __init__(self):
        self._rows: list[ResultRow] = []

    def record(
        self,
        combination: Combination,
        observed_price: Decimal | None,
        price_text: str = "",
        observed_text: str = "",
        shipping: str = "",
    ) -> ResultRow:
        row = ResultRow(
            configuration=combination.values(),
            observed_price=observed_price,
            price_text=price_text,
            observed_text=observed_text,
            shipping=shipping,
        )
        self._rows.append(row)
        logger.debug("Recorded %s: %s", combination.label, price_text or observed_price)
        return row

    def skip(
        self,
        combination: Combination,
        reason: str,
        observed_price: Decimal | None = None,
        price_text: str = "",
        observed_text: str = "",
    ) -> ResultRow:
        """Record a combination that could not be completed. It is never retried."""
        row = ResultRow(
            configuration=combination.values(),
            observed_price=observed_price,
            price_text=price_text,
            observed_text=observed_text,
        )
        row.mark(ResultStatus.SKIPPED, detail=f"Skipped: {reason}")
        self._rows.append(row)
        logger.warning("Skipped %s: %s", combination.label, reason)
        return row

    @property
    def rows(self) -> tuple[ResultRow, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[ResultRow]:
        return iter(tuple(self._rows))
