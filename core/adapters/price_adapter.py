"""BTC/USD price lookup used to stamp stakes.

current_price never raises: any failure is logged and reported as 0, the
"price not known yet" placeholder that the refresh operation backfills later.
"""

import logging
from decimal import Decimal, InvalidOperation

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class PriceOracle:

	def __init__(self, api_url: str | None = None, timeout: float | None = None, session=None):
		self.api_url = api_url or settings.COINGECKO_API_URL
		self.timeout = timeout or getattr(settings, "PRICE_TIMEOUT_SECONDS", 10)
		self.session = session or requests.Session()

	def current_price(self) -> Decimal:
		try:
			r = self.session.get(self.api_url, params={"ids": "bitcoin", "vs_currencies": "usd"}, timeout=self.timeout)
			r.raise_for_status()
			price = Decimal(str(r.json()["bitcoin"]["usd"]))
		except (requests.RequestException, ValueError, KeyError, TypeError, InvalidOperation) as exc:
			logger.warning("BTC price lookup failed: %s", exc)
			return Decimal("0")
		if not price.is_finite() or price < 0:
			logger.warning("BTC price lookup returned %s", price)
			return Decimal("0")
		return price
