"""
FRED (Federal Reserve Economic Data) benchmark curve.

Builds a short-end USD curve from the latest daily observations:
- SOFR (overnight)
- Treasury constant maturity 1M, 3M, 6M, 1Y, 2Y

Quoted yields are percentages and are used as simple annual rates.
"""

from typing import Optional

import pandas as pd
from fredapi import Fred

from fyarb.core.errors import InvalidCurveError, ProviderError
from fyarb.pricing.curve import BenchmarkCurve, CurveKnot, DayCount
from fyarb.providers.curves import CurveProvider


class FREDCurveProvider(CurveProvider):
    """
    Benchmark curve from FRED series.

    Uses the fredapi library for data access.
    """

    name = "fred"

    # series id -> tenor in years
    SERIES = {
        "SOFR": 1 / 360,
        "DGS1MO": 1 / 12,
        "DGS3MO": 0.25,
        "DGS6MO": 0.5,
        "DGS1": 1.0,
        "DGS2": 2.0,
    }

    def __init__(self, day_count: str = "act360", lookback_days: int = 14, **kwargs):
        super().__init__(**kwargs)
        self.day_count = DayCount(day_count)
        self.lookback_days = lookback_days
        self._client: Optional[Fred] = None

    def _initialize(self) -> None:
        """Initialize FRED API client."""
        api_key = self.settings.fred_api_key
        if not api_key:
            raise ProviderError(
                "FRED API key not configured",
                provider=self.name,
                recoverable=False,
            )
        self._client = Fred(api_key=api_key)
        self.logger.info("FRED provider initialized")

    @property
    def client(self) -> Fred:
        self._ensure_initialized()
        return self._client

    def latest_rate(self, series_id: str) -> Optional[float]:
        """Most recent observation as a decimal rate, or None if unavailable."""
        cached = self._get_cached(f"latest:{series_id}")
        if cached is not None:
            return cached

        start = (pd.Timestamp.now(tz="UTC").normalize() - pd.Timedelta(days=self.lookback_days)).strftime("%Y-%m-%d")
        try:
            series = self.client.get_series(series_id, observation_start=start)
        except (ValueError, OSError) as e:
            # fredapi raises ValueError for API errors, URLError for transport
            self._handle_error(e, f"get_series({series_id})")
            return None

        values = pd.to_numeric(series, errors="coerce").dropna()
        if values.empty:
            self.logger.warning(f"No recent observations for {series_id}")
            return None

        rate = float(values.iloc[-1]) / 100
        self._set_cached(f"latest:{series_id}", rate)
        return rate

    def load_curve(self) -> BenchmarkCurve:
        knots = []
        for series_id, tenor in self.SERIES.items():
            rate = self.latest_rate(series_id)
            if rate is not None:
                knots.append(CurveKnot(tenor, rate))

        if not knots:
            raise ProviderError(
                "No FRED series returned data",
                provider=self.name,
                recoverable=True,
            )

        try:
            curve = BenchmarkCurve(knots, day_count=self.day_count, source="fred")
        except InvalidCurveError as e:
            self.logger.error(f"FRED data does not form a valid curve: {e.message}")
            raise

        self.logger.info(f"Loaded FRED curve: {curve!r}")
        return curve
