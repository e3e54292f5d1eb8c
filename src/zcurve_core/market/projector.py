import logging
from decimal import Decimal
from typing import Optional, Tuple

from zcurve_core.common.constants import (
    AVERAGE_PRICE_THRESHOLD_BPS,
    BPS,
    DEFAULT_SWAP_FEE_BPS,
    TOTAL_SUPPLY,
    WAD,
)
from zcurve_core.common.enums import PricingBasis, SaleStatus
from zcurve_core.common.errors import StaleTelemetry
from zcurve_core.common.math import mul_div
from zcurve_core.common.model import MarketProjection


logger = logging.getLogger(__name__)


class MarketStateProjector:
    """
    Turns a sale snapshot into an implied market capitalization.

    While the sale is ACTIVE the whole nominal supply is valued at an
    effective curve price; once FINALIZED the graduated pool's reserves set
    the price. The projector branches on status and never changes it.

    Options (keyword arguments):
      - average_price_threshold_bps: below this share of the sale cap sold the
        average price paid is used instead of the marginal price
      - default_swap_fee_bps: fee assumed when the pool's fee slot holds a hook
      - total_nominal_supply: supply valued during the bonding phase
    """

    def __init__(self, **kwargs):
        self.options = {
            "average_price_threshold_bps": AVERAGE_PRICE_THRESHOLD_BPS,
            "default_swap_fee_bps": DEFAULT_SWAP_FEE_BPS,
            "total_nominal_supply": TOTAL_SUPPLY,
        }

        for k, v in kwargs.items():
            if k in self.options:
                self.options[k] = v
            else:
                if "custom" not in self.options:
                    self.options["custom"] = {}
                self.options["custom"][k] = v

    @staticmethod
    def to_usd(amount_wei: Optional[int], eth_usd_rate: Optional[Decimal]) -> Optional[Decimal]:
        if amount_wei is None or eth_usd_rate is None or eth_usd_rate <= 0:
            return None
        return Decimal(amount_wei) / Decimal(WAD) * Decimal(eth_usd_rate)

    def effective_fee_bps(self, status: SaleStatus, fee_or_hook: Optional[int] = None) -> int:
        """0 on the curve; the pool fee after graduation (hook ids map to the default fee)."""
        if status == SaleStatus.ACTIVE:
            return 0
        if fee_or_hook is not None and 0 <= fee_or_hook < BPS:
            return fee_or_hook
        return self.options["default_swap_fee_bps"]

    def select_bonding_price(
        self,
        sale_cap: int,
        net_sold: int,
        eth_escrow: int,
        current_price: int,
    ) -> Tuple[int, PricingBasis]:
        """
        Picks the price that values the supply during the bonding phase.

        Under the threshold the marginal price is noisy, so the average paid
        (``eth_escrow / net_sold``) is used. Past it the marginal price wins,
        falling back to the average if the marginal price is unavailable.
        """
        if net_sold > 0 and eth_escrow > 0:
            average = mul_div(eth_escrow, WAD, net_sold)
            threshold = self.options["average_price_threshold_bps"]
            below_threshold = net_sold * BPS < threshold * sale_cap
            if below_threshold and average > 0:
                return average, PricingBasis.AVERAGE
            if current_price > 0:
                return current_price, PricingBasis.MARGINAL
            return average, PricingBasis.AVERAGE

        if current_price > 0:
            return current_price, PricingBasis.MARGINAL
        return 0, PricingBasis.NONE

    def project(
        self,
        status: SaleStatus,
        sale_cap: int,
        net_sold: int,
        eth_escrow: int,
        current_price: int,
        total_nominal_supply: Optional[int] = None,
        reserve_eth: Optional[int] = None,
        reserve_token: Optional[int] = None,
        circulating_supply: Optional[int] = None,
        eth_usd_rate: Optional[Decimal] = None,
        fee_or_hook: Optional[int] = None,
        eth_target: Optional[int] = None,
    ) -> MarketProjection:
        """
        Implied market cap for a sale snapshot. When ``eth_target`` is given the
        projection also reports how much of it is escrowed.

        :raises StaleTelemetry: if net_sold exceeds sale_cap, amounts are negative
            or the nominal supply is not positive
        """
        if sale_cap <= 0:
            raise StaleTelemetry("sale_cap must be > 0.")
        if net_sold < 0 or eth_escrow < 0 or current_price < 0:
            raise StaleTelemetry("Telemetry amounts cannot be negative.")
        if net_sold > sale_cap:
            raise StaleTelemetry(f"net_sold {net_sold} exceeds sale_cap {sale_cap}.")

        fee = self.effective_fee_bps(status, fee_or_hook)
        progress = None
        if eth_target is not None:
            progress = self.funding_progress_bps(eth_escrow, eth_target)

        if status == SaleStatus.ACTIVE:
            supply = total_nominal_supply
            if supply is None:
                supply = self.options["total_nominal_supply"]
            if supply <= 0:
                raise StaleTelemetry(f"total_nominal_supply must be > 0, got {supply}.")
            price, basis = self.select_bonding_price(sale_cap, net_sold, eth_escrow, current_price)
            market_cap = mul_div(supply, price, WAD)
            logger.debug("Bonding-phase projection: basis=%s price=%d", basis, price)
            return MarketProjection(
                market_cap_eth=market_cap,
                market_cap_usd=self.to_usd(market_cap, eth_usd_rate),
                effective_fee_bps=fee,
                is_bonding_phase=True,
                effective_price=price,
                pricing_basis=basis,
                funding_progress_bps=progress,
            )

        if not reserve_eth or not reserve_token or reserve_eth <= 0 or reserve_token <= 0:
            return MarketProjection(
                market_cap_eth=None,
                market_cap_usd=None,
                effective_fee_bps=fee,
                is_bonding_phase=False,
                funding_progress_bps=progress,
            )

        price = mul_div(reserve_eth, WAD, reserve_token)
        market_cap = None
        if circulating_supply:
            market_cap = mul_div(reserve_eth, circulating_supply, reserve_token)
        return MarketProjection(
            market_cap_eth=market_cap,
            market_cap_usd=self.to_usd(market_cap, eth_usd_rate),
            effective_fee_bps=fee,
            is_bonding_phase=False,
            effective_price=price,
            pricing_basis=PricingBasis.RESERVES,
            funding_progress_bps=progress,
        )

    def project_telemetry(self, telemetry, sale_cap: int, **kwargs) -> MarketProjection:
        """Convenience wrapper reading status, amounts, fee and ETH target from a SaleTelemetry."""
        kwargs.setdefault("fee_or_hook", telemetry.fee_or_hook)
        kwargs.setdefault("eth_target", telemetry.eth_target)
        return self.project(
            telemetry.status,
            sale_cap,
            telemetry.net_sold,
            telemetry.eth_escrow,
            telemetry.current_price,
            **kwargs,
        )

    @staticmethod
    def funding_progress_bps(eth_escrow: int, eth_target: Optional[int]) -> int:
        """Share of the ETH target already escrowed, in basis points."""
        if not eth_target or eth_target <= 0:
            return 0
        return mul_div(eth_escrow, BPS, eth_target)

    @staticmethod
    def sold_progress_bps(net_sold: int, sale_cap: int) -> int:
        if sale_cap <= 0:
            return 0
        return mul_div(net_sold, BPS, sale_cap)
