import pytest

from zcurve_core.common.constants import QUAD_CAP, SALE_CAP, UNIT_SCALE, WAD
from zcurve_core.common.errors import ArithmeticOverflow, InvalidCurveConfig
from zcurve_core.common.model import CurveParameters
from zcurve_core.curves.helpers.zcurve import ZCurveHelper


# Divisors the launch UI shipped for the standard 800M / 200M sale
PRESET_DIVISOR_2_ETH = 2222222222222220555555555555558333333333333
PRESET_DIVISOR_001_ETH = 444444444444444111111111111111666666666666666


@pytest.fixture
def standard_params():
    """
    The standard 800M sale with a 200M quadratic region, calibrated to raise 2 ETH.
    """
    return ZCurveHelper.build_params(SALE_CAP, QUAD_CAP, 2 * WAD)


@pytest.fixture
def tiny_params():
    """
    A ten-tick curve with one base unit per tick and the breakpoint at tick 4.
    Weighted ticks: W(2)=1, W(3)=5, W(4)=14, W(m>4)=14+16(m-4).
    With divisor=1, cost = W * 1e18 // 6.
    """
    return CurveParameters(sale_cap=10, quad_cap=4, divisor=1, unit_scale=1)


@pytest.mark.parametrize(
    "ticks, expected",
    [
        (0, 0),
        (1, 0),
        (2, 1),
        (3, 5),
        (4, 14),
        (10, 285),
    ]
)
def test_sum_of_squares(ticks, expected):
    assert ZCurveHelper.sum_of_squares(ticks) == expected


@pytest.mark.parametrize(
    "ticks, quad_ticks, expected",
    [
        (3, 4, 5),
        (4, 4, 14),
        (5, 4, 30),
        (10, 4, 110),
        (10, 10, 285),
    ]
)
def test_weighted_ticks(ticks, quad_ticks, expected):
    assert ZCurveHelper.weighted_ticks(ticks, quad_ticks) == expected


@pytest.mark.parametrize(
    "coins, expected",
    [
        (0, 0),
        (1, 0),                        # first two ticks are free
        (2, 166666666666666666),       # 1e18 // 6
        (3, 833333333333333333),       # 5e18 // 6
        (4, 2333333333333333333),      # 14e18 // 6
        (5, 5 * 10 ** 18),             # 30e18 // 6
        (10, 18333333333333333333),    # 110e18 // 6
    ]
)
def test_cost_tiny_curve(tiny_params, coins, expected):
    assert ZCurveHelper.cost(coins, tiny_params) == expected


def test_cost_rejects_out_of_range(tiny_params):
    with pytest.raises(ValueError):
        ZCurveHelper.cost(-1, tiny_params)
    with pytest.raises(ValueError):
        ZCurveHelper.cost(11, tiny_params)


def test_cost_between(tiny_params):
    assert ZCurveHelper.cost_between(4, 5, tiny_params) == 5 * 10 ** 18 - 2333333333333333333
    assert ZCurveHelper.cost_between(7, 7, tiny_params) == 0


def test_cost_at_zero_is_zero(standard_params):
    assert ZCurveHelper.cost(0, standard_params) == 0


def test_cost_at_sale_cap_equals_target(standard_params):
    assert ZCurveHelper.cost(SALE_CAP, standard_params) == 2 * WAD


def test_continuity_at_breakpoint(standard_params):
    quad = ZCurveHelper.quadratic_cost(QUAD_CAP, standard_params)
    linear = ZCurveHelper.linear_cost(QUAD_CAP, standard_params)
    assert quad == linear
    assert ZCurveHelper.cost(QUAD_CAP, standard_params) == quad


def test_continuity_at_breakpoint_tiny(tiny_params):
    assert ZCurveHelper.quadratic_cost(4, tiny_params) == ZCurveHelper.linear_cost(4, tiny_params)


def test_cost_is_monotonic(standard_params):
    """
    Strictly increasing between coarse points, never decreasing between any two.
    """
    points = [SALE_CAP * i // 200 for i in range(201)]
    costs = [ZCurveHelper.cost(p, standard_params) for p in points]
    for a, b in zip(costs[1:], costs[2:]):
        assert a < b
    assert costs == sorted(costs)


def test_cost_is_flat_within_a_tick(standard_params):
    start = QUAD_CAP + 5 * UNIT_SCALE
    assert ZCurveHelper.cost(start, standard_params) == ZCurveHelper.cost(start + UNIT_SCALE - 1, standard_params)


def test_cost_never_overcharges(standard_params):
    """
    A single truncation: the exact rational cost exceeds the charged cost by less than one wei.
    """
    coins = 123_456_789 * WAD
    ticks = coins // UNIT_SCALE
    numerator = ZCurveHelper.sum_of_squares(ticks) * WAD
    denominator = 6 * standard_params.divisor
    charged = ZCurveHelper.cost(coins, standard_params)
    assert charged * denominator <= numerator < (charged + 1) * denominator


def test_marginal_price_tiny(tiny_params):
    per_coin = WAD * WAD
    assert ZCurveHelper.marginal_price(0, tiny_params) == 0
    assert ZCurveHelper.marginal_price(2, tiny_params) == 4 * per_coin // 6
    assert ZCurveHelper.marginal_price(3, tiny_params) == 9 * per_coin // 6
    # Linear region: frozen at the breakpoint price
    assert ZCurveHelper.marginal_price(4, tiny_params) == 16 * per_coin // 6
    assert ZCurveHelper.marginal_price(9, tiny_params) == 16 * per_coin // 6


def test_marginal_price_smooth_at_breakpoint(standard_params):
    at_break = ZCurveHelper.marginal_price(QUAD_CAP, standard_params)
    after = ZCurveHelper.marginal_price(QUAD_CAP + 10 * WAD, standard_params)
    before = ZCurveHelper.marginal_price(QUAD_CAP - UNIT_SCALE, standard_params)
    assert at_break == after
    assert before < at_break


def test_marginal_price_matches_tick_increment(standard_params):
    """
    Price per tick times ticks per coin equals the coin price, within truncation.
    """
    coins = 50_000_000 * WAD
    ticks_per_coin = WAD // UNIT_SCALE
    tick_cost = ZCurveHelper.cost(coins + UNIT_SCALE, standard_params) - ZCurveHelper.cost(coins, standard_params)
    price = ZCurveHelper.marginal_price(coins, standard_params)
    assert abs(price - tick_cost * ticks_per_coin) <= 2 * ticks_per_coin


def test_calibrate_matches_presets():
    assert ZCurveHelper.calibrate_divisor(SALE_CAP, QUAD_CAP, 2 * WAD) == PRESET_DIVISOR_2_ETH
    assert ZCurveHelper.calibrate_divisor(SALE_CAP, QUAD_CAP, WAD // 100) == PRESET_DIVISOR_001_ETH


@pytest.mark.parametrize(
    "target",
    [WAD // 100, WAD // 10, WAD // 2, WAD, 5 * WAD, 17 * WAD // 2, 123_456_789_123_456_789],
)
def test_calibration_is_exact(target):
    params = ZCurveHelper.build_params(SALE_CAP, QUAD_CAP, target)
    assert ZCurveHelper.cost(SALE_CAP, params) == target


def test_calibration_tiny_curve():
    divisor = ZCurveHelper.calibrate_divisor(10, 4, 10 ** 9, unit_scale=1)
    assert divisor == 18333333333
    params = CurveParameters(10, 4, divisor, 1)
    assert ZCurveHelper.cost(10, params) == 10 ** 9


def test_calibration_pure_quadratic():
    params = ZCurveHelper.build_params(SALE_CAP, SALE_CAP, WAD)
    assert ZCurveHelper.cost(SALE_CAP, params) == WAD


@pytest.mark.parametrize(
    "sale_cap, quad_cap, target",
    [
        (0, 0, WAD),
        (SALE_CAP, 0, WAD),
        (SALE_CAP, -WAD, WAD),
        (SALE_CAP, SALE_CAP + 1, WAD),
        (-SALE_CAP, QUAD_CAP, WAD),
        (SALE_CAP, QUAD_CAP, 0),
        (SALE_CAP, QUAD_CAP, -WAD),
    ]
)
def test_calibration_rejects_bad_config(sale_cap, quad_cap, target):
    with pytest.raises(InvalidCurveConfig):
        ZCurveHelper.calibrate_divisor(sale_cap, quad_cap, target)


def test_calibration_rejects_unreachable_target():
    # 110e18 // (6 * 1e30) == 0
    with pytest.raises(InvalidCurveConfig):
        ZCurveHelper.calibrate_divisor(10, 4, 10 ** 30, unit_scale=1)


def test_calibration_rejects_inexact_target():
    # divisor 110e18 // 6e19 == 1 raises 18.33 ETH, not 10
    with pytest.raises(InvalidCurveConfig):
        ZCurveHelper.calibrate_divisor(10, 4, 10 * WAD, unit_scale=1)


def test_calibration_rejects_breakpoint_below_one_tick():
    with pytest.raises(InvalidCurveConfig):
        ZCurveHelper.calibrate_divisor(SALE_CAP, UNIT_SCALE - 1, WAD)


def test_raw_base_units_overflow_uint256():
    """
    Pricing every base unit separately needs numerators far beyond uint256.
    """
    with pytest.raises(ArithmeticOverflow):
        ZCurveHelper.calibrate_divisor(SALE_CAP, QUAD_CAP, 2 * WAD, unit_scale=1)

    params = CurveParameters(SALE_CAP, QUAD_CAP, divisor=1, unit_scale=1)
    with pytest.raises(ArithmeticOverflow):
        ZCurveHelper.cost(SALE_CAP, params)
