"""Helpers shared by the service classes."""
import logging
import math
from typing import Dict


class BaseService:
    """Gives every service a logger named ``storefront.service.<Class>``."""

    def __init__(self) -> None:
        self._log = logging.getLogger(f'storefront.service.{type(self).__name__}')


def pagination(page: int, limit: int, total: int) -> Dict[str, int]:
    """Build the ``{page, limit, total, pages}`` envelope."""
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit) if limit else 0,
    }


def offset_for(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit
