"""
Analytics Aggregator - network metrics from a transaction sample.

network_health = (0.7 * success_rate + 0.3 * gas_price_stability) * 100
gas_price_stability = max(0, 1 - pstdev(gas) / mean(gas))

block_production_rate (blocks/minute) precedence:
1. Sample estimate: max(1, ceil(n / transactions_per_block)) blocks over
   the sample's timestamp spread, when >= 2 timestamps with spread > 0.
2. Static block-time table: 60 / block_time_seconds.

An empty sample yields an all-zero snapshot. Every output is finite.
"""

import math
import statistics
from decimal import Decimal
from typing import Optional, Sequence

from chain_explorer.config import AnalyticsConfig
from chain_explorer.models import AnalyticsSnapshot, NormalizedTransaction, TxStatus


SUCCESS_WEIGHT = 0.7
STABILITY_WEIGHT = 0.3

WINDOWS = ("1h", "24h", "7d", "30d")


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def gas_price_stability(gas_prices: Sequence[float]) -> float:
    """1 - coefficient of variation, floored at 0. Zero for an empty or zero-mean sample."""
    if not gas_prices:
        return 0.0
    mean = statistics.fmean(gas_prices)
    if mean <= 0:
        return 0.0
    deviation = statistics.pstdev(gas_prices) if len(gas_prices) > 1 else 0.0
    return _finite(max(0.0, 1.0 - deviation / mean))


class AnalyticsAggregator:
    """
    Computes an AnalyticsSnapshot from normalized transactions.

    Usage:
        aggregator = AnalyticsAggregator(config.analytics)
        snapshot = aggregator.aggregate("ethereum", transactions)
    """

    def __init__(self, config: Optional[AnalyticsConfig] = None) -> None:
        self._config = config or AnalyticsConfig()

    def block_production_rate(
        self,
        chain_id: str,
        transactions: Sequence[NormalizedTransaction],
    ) -> float:
        """Blocks per minute."""
        timestamps = [tx.timestamp for tx in transactions if tx.timestamp is not None]
        if len(timestamps) >= 2:
            spread = max(timestamps) - min(timestamps)
            if spread > 0:
                blocks = max(1, math.ceil(len(transactions) / self._config.transactions_per_block))
                rate = blocks / spread * 60
                if math.isfinite(rate) and rate > 0:
                    return rate
        return _finite(60 / self._config.block_time(chain_id))

    def aggregate(
        self,
        chain_id: str,
        transactions: Sequence[NormalizedTransaction],
        window: str = "24h",
    ) -> AnalyticsSnapshot:
        if not transactions:
            return AnalyticsSnapshot(chain_id=chain_id, window=window)

        addresses = set()
        for tx in transactions:
            if tx.from_address:
                addresses.add(tx.from_address)
            if tx.to_address:
                addresses.add(tx.to_address)

        total_volume = sum((tx.value for tx in transactions), Decimal(0))

        gas_prices = [tx.gas_price for tx in transactions if tx.gas_price is not None and tx.gas_price > 0]
        average_gas = statistics.fmean(gas_prices) if gas_prices else 0.0
        stability = gas_price_stability(gas_prices)

        successful = sum(1 for tx in transactions if tx.status != TxStatus.FAILED)
        success_rate = successful / len(transactions)

        threshold = Decimal(str(self._config.large_threshold(chain_id)))
        large = sum(1 for tx in transactions if tx.value >= threshold)

        health = (SUCCESS_WEIGHT * success_rate + STABILITY_WEIGHT * stability) * 100

        return AnalyticsSnapshot(
            chain_id=chain_id,
            window=window,
            total_transactions=len(transactions),
            active_addresses=len(addresses),
            total_volume=total_volume,
            average_gas_price=_finite(average_gas),
            block_production_rate=self.block_production_rate(chain_id, transactions),
            network_health=_finite(min(100.0, max(0.0, health))),
            large_transaction_count=large,
            success_rate=_finite(success_rate),
            gas_price_stability=stability,
        )
