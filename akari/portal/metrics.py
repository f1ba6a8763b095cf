"""Pure market metrics: launch ROI, whale classification, stablecoin flows."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any

WHALE_TIER_USD = 100_000
SHARK_TIER_USD = 25_000

# Net USDT outflow from Ethereum beyond this reads as risk-off
ETH_RISK_OFF_THRESHOLD_USD = 400_000
HIGH_SEVERITY_OUTFLOW_USD = 100_000


def compute_roi_percent(sale_price_usd: float | None, latest_price_usd: float | None) -> float | None:
    """Percent change from sale price to latest price.

    None unless both prices are present and positive.
    """
    if sale_price_usd is None or latest_price_usd is None:
        return None
    if sale_price_usd <= 0 or latest_price_usd <= 0:
        return None
    return (latest_price_usd - sale_price_usd) / sale_price_usd * 100


def classify_whale_entry(amount_usd: float) -> str:
    return "accumulating" if amount_usd >= 0 else "distributing"


def whale_size_tier(amount_usd: float) -> str:
    size = abs(amount_usd)
    if size >= WHALE_TIER_USD:
        return "whale"
    if size >= SHARK_TIER_USD:
        return "shark"
    return "fish"


@dataclass(frozen=True)
class ChainFlow:
    stable_symbol: str
    to_chain: str
    net_amount_usd: float
    snapshot_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FlowSignal:
    type: str
    title: str
    description: str
    severity: int
    chain: str
    stable_symbol: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def aggregate_chain_flows(rows: Iterable[Any]) -> list[ChainFlow]:
    """Sum net flow per (stable, to_chain), case-folded.

    Sorted by absolute net amount, largest first.
    """
    totals: dict[tuple[str, str], list[float]] = {}
    for row in rows:
        key = (row.stable_symbol.upper(), row.to_chain.lower())
        bucket = totals.setdefault(key, [0.0, 0])
        bucket[0] += row.net_amount_usd or 0.0
        bucket[1] += 1

    flows = [
        ChainFlow(stable_symbol=stable, to_chain=chain, net_amount_usd=net, snapshot_count=int(count))
        for (stable, chain), (net, count) in totals.items()
    ]
    flows.sort(key=lambda f: abs(f.net_amount_usd), reverse=True)
    return flows


def net_flow(flows: Iterable[ChainFlow], stable_symbol: str, to_chain: str) -> float:
    stable, chain = stable_symbol.upper(), to_chain.lower()
    return sum(f.net_amount_usd for f in flows if f.stable_symbol == stable and f.to_chain == chain)


def derive_flow_signals(
    flows: list[ChainFlow],
    risk_off_threshold_usd: float = ETH_RISK_OFF_THRESHOLD_USD,
) -> list[FlowSignal]:
    """Signals implied by aggregated flows. Currently only the Ethereum risk-off rule."""
    signals: list[FlowSignal] = []

    eth_usdt = net_flow(flows, "USDT", "ethereum")
    if eth_usdt < -risk_off_threshold_usd:
        signals.append(
            FlowSignal(
                type="ETH_RISK_OFF",
                title="USDT outflow from Ethereum",
                description="Net USDT is leaving Ethereum. Risk-off or rotation into alt L1s possible.",
                severity=3 if eth_usdt < -HIGH_SEVERITY_OUTFLOW_USD else 2,
                chain="ethereum",
                stable_symbol="USDT",
            )
        )

    return signals
