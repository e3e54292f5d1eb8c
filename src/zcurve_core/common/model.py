from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from zcurve_core.common.constants import UNIT_SCALE, WAD
from zcurve_core.common.enums import OrderSide, PricingBasis, QuoteMode, SaleStatus
from zcurve_core.common.errors import InvalidCurveConfig, StaleTelemetry


@dataclass(frozen=True)
class CurveParameters:
    """Shape of a quadratic-then-linear sale curve. Amounts are 18-decimal base units."""
    sale_cap: int
    quad_cap: int
    divisor: int
    unit_scale: int = UNIT_SCALE

    def __post_init__(self):
        if self.sale_cap <= 0:
            raise InvalidCurveConfig("sale_cap must be > 0.")
        if self.quad_cap <= 0:
            raise InvalidCurveConfig("quad_cap must be > 0.")
        if self.quad_cap > self.sale_cap:
            raise InvalidCurveConfig("quad_cap cannot exceed sale_cap.")
        if self.divisor <= 0:
            raise InvalidCurveConfig("divisor must be > 0.")
        if self.unit_scale <= 0 or WAD % self.unit_scale != 0:
            raise InvalidCurveConfig("unit_scale must be a positive divisor of 1e18.")

    @classmethod
    def calibrated(
        cls,
        sale_cap: int,
        quad_cap: int,
        target_raise: int,
        unit_scale: int = UNIT_SCALE,
    ) -> "CurveParameters":
        """Parameters whose divisor makes the full sale raise exactly ``target_raise``."""
        from zcurve_core.curves.helpers.zcurve import ZCurveHelper

        divisor = ZCurveHelper.calibrate_divisor(sale_cap, quad_cap, target_raise, unit_scale)
        return cls(sale_cap, quad_cap, divisor, unit_scale)

    @property
    def sale_ticks(self) -> int:
        return self.sale_cap // self.unit_scale

    @property
    def quad_ticks(self) -> int:
        return self.quad_cap // self.unit_scale


@dataclass
class SaleTelemetry:
    """Point-in-time snapshot of an on-chain sale. The engine only reads it."""
    net_sold: int = 0
    eth_escrow: int = 0
    current_price: int = 0
    deadline: Optional[int] = None
    status: SaleStatus = SaleStatus.ACTIVE
    eth_target: Optional[int] = None
    fee_or_hook: Optional[int] = None

    def __post_init__(self):
        if self.net_sold < 0:
            raise StaleTelemetry("net_sold cannot be negative.")
        if self.eth_escrow < 0:
            raise StaleTelemetry("eth_escrow cannot be negative.")
        if self.current_price < 0:
            raise StaleTelemetry("current_price cannot be negative.")

    def check_against(self, params: CurveParameters):
        """Raise StaleTelemetry if the snapshot cannot belong to a sale with these parameters."""
        if self.net_sold > params.sale_cap:
            raise StaleTelemetry(
                f"net_sold {self.net_sold} exceeds sale_cap {params.sale_cap}."
            )

    def remaining(self, params: CurveParameters) -> int:
        return params.sale_cap - self.net_sold

    def is_open(self, now: int) -> bool:
        if self.status != SaleStatus.ACTIVE:
            return False
        return self.deadline is None or now <= self.deadline


@dataclass
class Quote:
    """Outcome of a prospective purchase."""
    mode: QuoteMode
    amount_in: int
    amount_out: int
    price_impact_bps: int = 0
    marginal_impact_bps: int = 0
    min_out: Optional[int] = None
    max_in: Optional[int] = None


@dataclass
class MarketProjection:
    market_cap_eth: Optional[int]
    market_cap_usd: Optional[Decimal]
    effective_fee_bps: int
    is_bonding_phase: bool
    effective_price: int = 0
    pricing_basis: PricingBasis = PricingBasis.NONE
    funding_progress_bps: Optional[int] = None


@dataclass
class CurveSample:
    coins_sold: int
    percent_sold: Decimal
    marginal_price: int
    cumulative_cost: int


@dataclass
class CurveScenario:
    """Shape summary of the curve calibrated to one target raise."""
    target_raise: int
    divisor: int
    average_price: int
    price_at_25_percent: int
    price_at_50_percent: int
    price_at_75_percent: int
    price_at_100_percent: int
    coins_for_one_eth: int


@dataclass
class TransactionRequest:
    """A discrete buy (coins wanted) or sell (coins burned) against a simulated sale."""
    order_type: OrderSide
    amount: int = 0
    user_id: Optional[str] = None


@dataclass
class TransactionResult:
    """Outcome of a simulated transaction."""
    executed_amount: int
    total_cost: int
    average_price: int
    new_net_sold: int
    timestamp: datetime


@dataclass
class SimulationResult:
    """Holds the aggregated results of simulating multiple transactions."""
    transactions: List[TransactionResult] = field(default_factory=list)
    final_net_sold: int = 0
    final_eth_escrow: int = 0
    final_price: int = 0
    metadata: Dict = field(default_factory=dict)
