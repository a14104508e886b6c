"""Ordered strategy chains — try several ways of doing one thing until one works."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence

logger = logging.getLogger(__name__)

Strategy = tuple[str, Callable[[], Awaitable[bool]]]


async def first_successful(
    strategies: Sequence[Strategy],
    label: str = "",
    reraise: tuple[type[BaseException], ...] = (),
) -> str | None:
    """Run strategies in order and return the name of the first that reports success.

    A strategy fails by returning False or raising; either way the next one
    is tried. Exceptions of the ``reraise`` types end the chain and propagate.
    Returns None when every strategy fails.
    """
    for name, attempt in strategies:
        try:
            if await attempt():
                logger.debug("%s: strategy '%s' succeeded", label or "chain", name)
                return name
            logger.debug("%s: strategy '%s' did not succeed", label or "chain", name)
        except reraise:
            raise
        except Exception as e:
            logger.warning("%s: strategy '%s' failed: %s", label or "chain", name, e)
    return None
