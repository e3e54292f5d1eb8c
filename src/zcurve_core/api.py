"""
Flat entry points for callers that hold sale state as plain integers.

Each function builds the value objects it needs and delegates; none of them
keeps state between calls.
"""
from decimal import Decimal
from typing import List, Optional, Union

from zcurve_core.common.constants import UNIT_SCALE
from zcurve_core.common.enums import SaleStatus, SlippageBound
from zcurve_core.common.model import CurveParameters, CurveSample, MarketProjection, SaleTelemetry
from zcurve_core.analysis.sampler import CurveSampler
from zcurve_core.curves.helpers.zcurve import ZCurveHelper
from zcurve_core.market.projector import MarketStateProjector
from zcurve_core.quote.engine import QuoteEngine


def cost(coins_sold: int, sale_cap: int, quad_cap: int, divisor: int, unit_scale: int = UNIT_SCALE) -> int:
    return ZCurveHelper.cost(coins_sold, CurveParameters(sale_cap, quad_cap, divisor, unit_scale))


def calibrate_divisor(sale_cap: int, quad_cap: int, target_raise: int, unit_scale: int = UNIT_SCALE) -> int:
    return ZCurveHelper.calibrate_divisor(sale_cap, quad_cap, target_raise, unit_scale)


def coins_for_eth_budget(
    net_sold: int,
    sale_cap: int,
    quad_cap: int,
    divisor: int,
    eth_budget: int,
    unit_scale: int = UNIT_SCALE,
) -> int:
    params = CurveParameters(sale_cap, quad_cap, divisor, unit_scale)
    return QuoteEngine.coins_for_eth_budget(SaleTelemetry(net_sold=net_sold), params, eth_budget)


def eth_for_exact_coins(
    net_sold: int,
    sale_cap: int,
    quad_cap: int,
    divisor: int,
    coins_wanted: int,
    unit_scale: int = UNIT_SCALE,
) -> int:
    params = CurveParameters(sale_cap, quad_cap, divisor, unit_scale)
    return QuoteEngine.eth_for_exact_coins(SaleTelemetry(net_sold=net_sold), params, coins_wanted)


def apply_slippage(amount_out: int, tolerance_bps: int, direction: Union[SlippageBound, str]) -> int:
    if isinstance(direction, str):
        direction = SlippageBound.from_str(direction)
    return QuoteEngine.apply_slippage(amount_out, tolerance_bps, direction)


def project_market_cap(
    status: Union[SaleStatus, str],
    net_sold: int,
    eth_escrow: int,
    current_price: int,
    total_nominal_supply: int,
    sale_cap: int,
    reserve_eth: Optional[int] = None,
    reserve_token: Optional[int] = None,
    circulating_supply: Optional[int] = None,
    eth_usd_rate: Optional[Decimal] = None,
    fee_or_hook: Optional[int] = None,
    eth_target: Optional[int] = None,
) -> MarketProjection:
    if isinstance(status, str):
        status = SaleStatus.from_str(status)
    return MarketStateProjector().project(
        status,
        sale_cap,
        net_sold,
        eth_escrow,
        current_price,
        total_nominal_supply=total_nominal_supply,
        reserve_eth=reserve_eth,
        reserve_token=reserve_token,
        circulating_supply=circulating_supply,
        eth_usd_rate=eth_usd_rate,
        fee_or_hook=fee_or_hook,
        eth_target=eth_target,
    )


def sample_curve(
    sale_cap: int,
    quad_cap: int,
    divisor: int,
    sample_count: int,
    unit_scale: int = UNIT_SCALE,
) -> List[CurveSample]:
    return CurveSampler.sample(CurveParameters(sale_cap, quad_cap, divisor, unit_scale), sample_count)
