import logging
from decimal import Decimal
from typing import Iterator, List, Optional

from zcurve_core.common.constants import PRESET_TARGET_RAISES, QUAD_CAP, SALE_CAP, UNIT_SCALE, WAD
from zcurve_core.common.model import CurveParameters, CurveSample, CurveScenario, SaleTelemetry
from zcurve_core.curves.helpers.zcurve import ZCurveHelper as helper
from zcurve_core.quote.engine import QuoteEngine


logger = logging.getLogger(__name__)


class CurveSampler:
    """Offline views of a curve's shape; not part of the live quote path."""

    @staticmethod
    def iter_samples(params: CurveParameters, sample_count: int) -> Iterator[CurveSample]:
        """
        Yields ``sample_count`` evenly spaced points from 0% to 100% of the sale cap.
        A fresh iterator starts over; nothing is kept between calls.
        """
        if sample_count < 2:
            raise ValueError("sample_count must be at least 2.")
        intervals = sample_count - 1
        for i in range(sample_count):
            coins = params.sale_cap * i // intervals
            yield CurveSample(
                coins_sold=coins,
                percent_sold=Decimal(100 * i) / Decimal(intervals),
                marginal_price=helper.marginal_price(coins, params),
                cumulative_cost=helper.cost(coins, params),
            )

    @staticmethod
    def sample(params: CurveParameters, sample_count: int = 101) -> List[CurveSample]:
        return list(CurveSampler.iter_samples(params, sample_count))

    @staticmethod
    def analyze_scenario(params: CurveParameters, target_raise: int) -> CurveScenario:
        """Price progression and first-buyer depth for one calibrated curve."""
        sale_cap = params.sale_cap
        start = SaleTelemetry()
        return CurveScenario(
            target_raise=target_raise,
            divisor=params.divisor,
            average_price=target_raise * WAD // sale_cap,
            price_at_25_percent=helper.marginal_price(sale_cap * 25 // 100, params),
            price_at_50_percent=helper.marginal_price(sale_cap * 50 // 100, params),
            price_at_75_percent=helper.marginal_price(sale_cap * 75 // 100, params),
            price_at_100_percent=helper.marginal_price(sale_cap, params),
            coins_for_one_eth=QuoteEngine.coins_for_eth_budget(start, params, WAD),
        )

    @staticmethod
    def analyze_scenarios(
        sale_cap: int = SALE_CAP,
        quad_cap: int = QUAD_CAP,
        target_raises: Optional[List[int]] = None,
        unit_scale: int = UNIT_SCALE,
    ) -> List[CurveScenario]:
        """Calibrates one curve per target raise and summarizes each."""
        if target_raises is None:
            target_raises = PRESET_TARGET_RAISES

        scenarios = []
        for target_raise in target_raises:
            params = helper.build_params(sale_cap, quad_cap, target_raise, unit_scale)
            scenarios.append(CurveSampler.analyze_scenario(params, target_raise))
        logger.info("Analyzed %d target raises", len(scenarios))
        return scenarios
