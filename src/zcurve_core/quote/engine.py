import logging
from typing import Optional

from zcurve_core.common.constants import BPS, WAD
from zcurve_core.common.enums import QuoteMode, SlippageBound
from zcurve_core.common.errors import InsufficientSupply, SaleClosed
from zcurve_core.common.math import div_trunc, mul_div, mul_div_up, quantize_up
from zcurve_core.common.model import CurveParameters, Quote, SaleTelemetry
from zcurve_core.curves.helpers.zcurve import ZCurveHelper as helper


logger = logging.getLogger(__name__)


class QuoteEngine:
    """
    Answers point queries against a sale snapshot, mirroring the contract's
    view functions (coinsForETH, buyCost, sellRefund, coinsToBurnForETH).

    Every method is a pure function of its arguments; nothing is cached.
    """

    @staticmethod
    def _check(telemetry: SaleTelemetry, params: CurveParameters, now: Optional[int] = None):
        telemetry.check_against(params)
        if now is not None and not telemetry.is_open(now):
            raise SaleClosed(
                f"Sale is {telemetry.status} with deadline {telemetry.deadline}; now={now}."
            )

    @staticmethod
    def coins_for_eth_budget(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        eth_budget: int,
        now: Optional[int] = None,
    ) -> int:
        """
        Largest ``n`` in ``[0, sale_cap - net_sold]`` whose cost fits ``eth_budget``.

        Bounded binary search over the cost function, O(log sale_cap) steps.
        """
        if eth_budget < 0:
            raise ValueError("eth_budget cannot be negative.")
        QuoteEngine._check(telemetry, params, now)

        remaining = telemetry.remaining(params)
        if eth_budget == 0 or remaining <= 0:
            return 0

        base_cost = helper.cost(telemetry.net_sold, params)
        if helper.cost(params.sale_cap, params) - base_cost <= eth_budget:
            return remaining

        # Invariant: cost(lo) <= budget < cost(hi)
        lo, hi = 0, remaining
        steps = 0
        while hi - lo > 1:
            mid = (lo + hi) // 2
            if helper.cost(telemetry.net_sold + mid, params) - base_cost <= eth_budget:
                lo = mid
            else:
                hi = mid
            steps += 1

        logger.debug("coins_for_eth_budget: budget=%d coins=%d steps=%d", eth_budget, lo, steps)
        return lo

    @staticmethod
    def eth_for_exact_coins(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        coins_wanted: int,
        now: Optional[int] = None,
    ) -> int:
        """ETH (wei) the contract charges for exactly ``coins_wanted`` more coins."""
        if coins_wanted < 0:
            raise ValueError("coins_wanted cannot be negative.")
        QuoteEngine._check(telemetry, params, now)

        remaining = telemetry.remaining(params)
        if coins_wanted > remaining:
            raise InsufficientSupply(
                f"Requested {coins_wanted} coins but only {remaining} remain."
            )
        if coins_wanted == 0:
            return 0
        return helper.cost_between(telemetry.net_sold, telemetry.net_sold + coins_wanted, params)

    @staticmethod
    def eth_for_coins_sold(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        coins_in: int,
    ) -> int:
        """Refund for burning ``coins_in`` back into the curve; clamped to net_sold."""
        if coins_in < 0:
            raise ValueError("coins_in cannot be negative.")
        telemetry.check_against(params)
        coins_in = min(coins_in, telemetry.net_sold)
        if coins_in == 0:
            return 0
        return helper.cost_between(telemetry.net_sold - coins_in, telemetry.net_sold, params)

    @staticmethod
    def coins_to_burn_for_eth(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        eth_out: int,
    ) -> int:
        """
        Smallest tick-aligned amount of coins whose refund covers ``eth_out``.

        :raises InsufficientSupply: if burning every sold coin refunds less than eth_out
        """
        if eth_out < 0:
            raise ValueError("eth_out cannot be negative.")
        telemetry.check_against(params)
        if eth_out == 0:
            return 0

        net_sold = telemetry.net_sold
        if QuoteEngine.eth_for_coins_sold(telemetry, params, net_sold) < eth_out:
            raise InsufficientSupply(f"Curve escrow cannot refund {eth_out} wei.")

        # Invariant: refund(lo) < eth_out <= refund(hi)
        lo, hi = 0, net_sold
        while hi - lo > 1:
            mid = (lo + hi) // 2
            if QuoteEngine.eth_for_coins_sold(telemetry, params, mid) < eth_out:
                lo = mid
            else:
                hi = mid
        return min(quantize_up(hi, params.unit_scale), net_sold)

    @staticmethod
    def apply_slippage(amount: int, tolerance_bps: int, direction: SlippageBound) -> int:
        """
        Bound a quoted amount by a slippage tolerance.

        MIN_OUT: ``amount * (10000 - tol) / 10000`` rounded down.
        MAX_IN: ``amount * (10000 + tol) / 10000`` rounded up.
        """
        if amount < 0:
            raise ValueError("amount cannot be negative.")
        if tolerance_bps < 0 or tolerance_bps > BPS:
            raise ValueError(f"tolerance_bps must be within [0, {BPS}].")
        if direction == SlippageBound.MIN_OUT:
            return mul_div(amount, BPS - tolerance_bps, BPS)
        if direction == SlippageBound.MAX_IN:
            return mul_div_up(amount, BPS + tolerance_bps, BPS)
        raise NotImplementedError(f"Unsupported slippage direction {direction}")

    @staticmethod
    def average_price(eth_amount: int, coins: int) -> int:
        """Average fill price in wei per whole coin; 0 for an empty fill."""
        if coins <= 0:
            return 0
        return mul_div(eth_amount, WAD, coins)

    @staticmethod
    def price_impact_bps(eth_required: int, coins: int, current_price: int) -> int:
        """
        ``(average_fill - current_price) * 10000 / current_price``, truncated toward zero.

        Negative values are valid: the tick quantization and first free ticks can
        put the average fill under the quoted marginal price.
        """
        if current_price <= 0 or coins <= 0:
            return 0
        average = QuoteEngine.average_price(eth_required, coins)
        return div_trunc((average - current_price) * BPS, current_price)

    @staticmethod
    def marginal_price_impact_bps(price_before: int, price_after: int) -> int:
        """
        Move of the marginal price caused by a trade, in bps of the price before it.
        Positive after buys, negative after sells; 0 when there is no price to compare to.
        """
        if price_before <= 0:
            return 0
        return div_trunc((price_after - price_before) * BPS, price_before)

    @staticmethod
    def _reference_price(telemetry: SaleTelemetry, params: CurveParameters) -> int:
        if telemetry.current_price > 0:
            return telemetry.current_price
        return helper.marginal_price(telemetry.net_sold, params)

    @staticmethod
    def quote_exact_eth_in(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        eth_in: int,
        tolerance_bps: int = 0,
        now: Optional[int] = None,
    ) -> Quote:
        """Full buy quote for spending ``eth_in``; ``min_out`` protects the coins received."""
        coins = QuoteEngine.coins_for_eth_budget(telemetry, params, eth_in, now)
        spent = helper.cost_between(telemetry.net_sold, telemetry.net_sold + coins, params)
        reference = QuoteEngine._reference_price(telemetry, params)
        price_after = helper.marginal_price(telemetry.net_sold + coins, params)
        return Quote(
            mode=QuoteMode.EXACT_ETH_IN,
            amount_in=eth_in,
            amount_out=coins,
            price_impact_bps=QuoteEngine.price_impact_bps(spent, coins, reference),
            marginal_impact_bps=QuoteEngine.marginal_price_impact_bps(reference, price_after),
            min_out=QuoteEngine.apply_slippage(coins, tolerance_bps, SlippageBound.MIN_OUT),
        )

    @staticmethod
    def quote_exact_coins_out(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        coins_wanted: int,
        tolerance_bps: int = 0,
        now: Optional[int] = None,
    ) -> Quote:
        """Full buy quote for exactly ``coins_wanted``; ``max_in`` caps the ETH sent."""
        eth_required = QuoteEngine.eth_for_exact_coins(telemetry, params, coins_wanted, now)
        reference = QuoteEngine._reference_price(telemetry, params)
        price_after = helper.marginal_price(telemetry.net_sold + coins_wanted, params)
        return Quote(
            mode=QuoteMode.EXACT_COINS_OUT,
            amount_in=coins_wanted,
            amount_out=eth_required,
            price_impact_bps=QuoteEngine.price_impact_bps(eth_required, coins_wanted, reference),
            marginal_impact_bps=QuoteEngine.marginal_price_impact_bps(reference, price_after),
            max_in=QuoteEngine.apply_slippage(eth_required, tolerance_bps, SlippageBound.MAX_IN),
        )

    @staticmethod
    def quote_exact_coins_in(
        telemetry: SaleTelemetry,
        params: CurveParameters,
        coins_in: int,
        tolerance_bps: int = 0,
        now: Optional[int] = None,
    ) -> Quote:
        """
        Full sell quote for burning ``coins_in``; ``min_out`` protects the ETH refunded.

        :raises InsufficientSupply: if coins_in exceeds the coins sold so far
        """
        if coins_in < 0:
            raise ValueError("coins_in cannot be negative.")
        QuoteEngine._check(telemetry, params, now)
        if coins_in > telemetry.net_sold:
            raise InsufficientSupply(
                f"Cannot sell {coins_in} coins; only {telemetry.net_sold} have been sold."
            )

        refund = QuoteEngine.eth_for_coins_sold(telemetry, params, coins_in)
        reference = QuoteEngine._reference_price(telemetry, params)
        price_after = helper.marginal_price(telemetry.net_sold - coins_in, params)
        return Quote(
            mode=QuoteMode.EXACT_COINS_IN,
            amount_in=coins_in,
            amount_out=refund,
            price_impact_bps=QuoteEngine.price_impact_bps(refund, coins_in, reference),
            marginal_impact_bps=QuoteEngine.marginal_price_impact_bps(reference, price_after),
            min_out=QuoteEngine.apply_slippage(refund, tolerance_bps, SlippageBound.MIN_OUT),
        )
