import logging

from zcurve_core.common.constants import UNIT_SCALE, WAD
from zcurve_core.common.errors import InvalidCurveConfig
from zcurve_core.common.math import checked_uint256, div_trunc
from zcurve_core.common.model import CurveParameters


logger = logging.getLogger(__name__)


class ZCurveHelper:
    """
    Closed-form math for the quadratic-then-linear sale curve.

    Coins are priced in ticks of ``unit_scale`` base units. With ``m`` ticks
    sold and the breakpoint at ``K`` ticks, the marginal price of tick ``i``
    is ``i² / (6 * divisor)`` ETH while ``i < K`` and frozen at ``K²`` after
    that. Summing those prices gives the weighted tick count:

        W(m) = m(m-1)(2m-1)/6                  m <= K   (sum of squares)
        W(m) = W(K) + K² (m - K)               m >  K   (linear tail)

    and the cumulative cost is ``W(m) * 1e18 // (6 * divisor)`` wei, a single
    truncating division, so the curve never over-charges.
    """

    @staticmethod
    def sum_of_squares(ticks: int) -> int:
        """sum_{i=0..ticks-1} i², exact."""
        if ticks < 2:
            return 0
        return ticks * (ticks - 1) * (2 * ticks - 1) // 6

    @staticmethod
    def weighted_ticks(ticks: int, quad_ticks: int) -> int:
        """W(m) for ``ticks`` sold and the breakpoint at ``quad_ticks``."""
        if ticks <= quad_ticks:
            return ZCurveHelper.sum_of_squares(ticks)
        base = ZCurveHelper.sum_of_squares(quad_ticks)
        return base + quad_ticks * quad_ticks * (ticks - quad_ticks)

    @staticmethod
    def quadratic_cost(coins_sold: int, params: CurveParameters) -> int:
        """Cost evaluated with the quadratic piece only, whatever side of the breakpoint."""
        ticks = coins_sold // params.unit_scale
        numerator = ZCurveHelper.sum_of_squares(ticks) * WAD
        return div_trunc(checked_uint256(numerator, "cost numerator"), 6 * params.divisor)

    @staticmethod
    def linear_cost(coins_sold: int, params: CurveParameters) -> int:
        """Cost evaluated as breakpoint base plus the linear tail (valid for coins_sold >= quad_cap)."""
        ticks = coins_sold // params.unit_scale
        k = params.quad_ticks
        weighted = ZCurveHelper.sum_of_squares(k) + k * k * (ticks - k)
        numerator = weighted * WAD
        return div_trunc(checked_uint256(numerator, "cost numerator"), 6 * params.divisor)

    @staticmethod
    def cost(coins_sold: int, params: CurveParameters) -> int:
        """
        Cumulative ETH (wei) paid by buyers once ``coins_sold`` base units are out.

        :raises ValueError: if coins_sold is negative or beyond the sale cap
        :raises ArithmeticOverflow: if the numerator would not fit in uint256
        """
        if coins_sold < 0:
            raise ValueError("coins_sold cannot be negative.")
        if coins_sold > params.sale_cap:
            raise ValueError(f"coins_sold {coins_sold} exceeds sale_cap {params.sale_cap}.")
        if coins_sold <= params.quad_cap:
            return ZCurveHelper.quadratic_cost(coins_sold, params)
        return ZCurveHelper.linear_cost(coins_sold, params)

    @staticmethod
    def cost_between(start: int, end: int, params: CurveParameters) -> int:
        """ETH paid to move the curve from ``start`` to ``end`` coins sold (end >= start)."""
        return ZCurveHelper.cost(end, params) - ZCurveHelper.cost(start, params)

    @staticmethod
    def marginal_price(coins_sold: int, params: CurveParameters) -> int:
        """
        Price of the next tick scaled to one whole coin, in wei.

        The slope is taken per piece: ``m²`` in the quadratic region and the
        breakpoint's ``K²`` in the linear region, so both sides of the
        breakpoint agree.
        """
        if coins_sold < 0:
            raise ValueError("coins_sold cannot be negative.")
        ticks = min(coins_sold // params.unit_scale, params.quad_ticks)
        ticks_per_coin = WAD // params.unit_scale
        numerator = ticks * ticks * WAD * ticks_per_coin
        return div_trunc(checked_uint256(numerator, "price numerator"), 6 * params.divisor)

    @staticmethod
    def validate_config(sale_cap: int, quad_cap: int, target_raise: int):
        """Raises InvalidCurveConfig on non-positive or inconsistent sale parameters."""
        if sale_cap <= 0:
            raise InvalidCurveConfig("sale_cap must be > 0.")
        if quad_cap <= 0:
            raise InvalidCurveConfig("quad_cap must be > 0.")
        if quad_cap > sale_cap:
            raise InvalidCurveConfig("quad_cap cannot exceed sale_cap.")
        if target_raise <= 0:
            raise InvalidCurveConfig("target_raise must be > 0.")

    @staticmethod
    def calibrate_divisor(
        sale_cap: int,
        quad_cap: int,
        target_raise: int,
        unit_scale: int = UNIT_SCALE,
    ) -> int:
        """
        Solves ``cost(sale_cap) == target_raise`` for the divisor.

        The divisor only appears in the shared denominator, so
        ``divisor = W(sale_ticks) * 1e18 // (6 * target_raise)``.

        :raises InvalidCurveConfig: on bad inputs, or if the target cannot be hit
            exactly at this tick resolution
        """
        ZCurveHelper.validate_config(sale_cap, quad_cap, target_raise)
        if unit_scale <= 0 or WAD % unit_scale != 0:
            raise InvalidCurveConfig("unit_scale must be a positive divisor of 1e18.")

        weighted = ZCurveHelper.weighted_ticks(sale_cap // unit_scale, quad_cap // unit_scale)
        if weighted == 0:
            raise InvalidCurveConfig("Curve has no priced ticks; quad_cap is below one tick.")

        numerator = checked_uint256(weighted * WAD, "divisor numerator")
        divisor = div_trunc(numerator, 6 * target_raise)
        if divisor <= 0:
            raise InvalidCurveConfig(
                f"target_raise {target_raise} is too large for this curve resolution."
            )

        params = CurveParameters(sale_cap, quad_cap, divisor, unit_scale)
        reached = ZCurveHelper.cost(sale_cap, params)
        if reached != target_raise:
            raise InvalidCurveConfig(
                f"Calibrated curve raises {reached} wei instead of {target_raise}."
            )

        logger.info(
            "Calibrated divisor %d for sale_cap=%d quad_cap=%d target=%d",
            divisor, sale_cap, quad_cap, target_raise,
        )
        return divisor

    @staticmethod
    def build_params(
        sale_cap: int,
        quad_cap: int,
        target_raise: int,
        unit_scale: int = UNIT_SCALE,
    ) -> CurveParameters:
        """Calibrates the divisor and returns the resulting CurveParameters."""
        return CurveParameters.calibrated(sale_cap, quad_cap, target_raise, unit_scale)
