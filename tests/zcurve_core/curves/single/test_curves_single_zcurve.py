import pytest

from datetime import datetime
from unittest.mock import patch

from zcurve_core.common.constants import WAD
from zcurve_core.common.enums import OrderSide, SaleStatus
from zcurve_core.common.errors import InsufficientSupply, SaleClosed, StaleTelemetry
from zcurve_core.common.model import CurveParameters, SaleTelemetry, TransactionRequest
from zcurve_core.curves.single.base import BondingCurve
from zcurve_core.curves.single.zcurve import ZCurveBondingCurve
from zcurve_core.curves.helpers.zcurve import ZCurveHelper as helper


@pytest.fixture
def tiny_params():
    """
    Ten ticks of one base unit, breakpoint at tick 4, divisor 1.
    cost(n) = W(n) * 1e18 // 6 with W = 0, 0, 1, 5, 14, 30, 46, 62, 78, 94, 110.
    """
    return CurveParameters(sale_cap=10, quad_cap=4, divisor=1, unit_scale=1)


def _make_curve(params, net_sold=0, **kwargs) -> ZCurveBondingCurve:
    state = SaleTelemetry(net_sold=net_sold, eth_escrow=helper.cost(net_sold, params))
    return ZCurveBondingCurve(params, state, **kwargs)


def _buy(amount):
    return TransactionRequest(order_type=OrderSide.BUY, amount=amount)


def _sell(amount):
    return TransactionRequest(order_type=OrderSide.SELL, amount=amount)


def test_is_bonding_curve(tiny_params):
    curve = ZCurveBondingCurve(tiny_params)
    assert isinstance(curve, BondingCurve)
    assert curve.net_sold == 0
    assert curve.params is tiny_params


def test_options_defaults_and_custom(tiny_params):
    curve = ZCurveBondingCurve(tiny_params, pro_rata=True, label="replay")
    assert curve.options["pro_rata"] is True
    assert curve.options["allow_sell"] is True
    assert curve.options["custom"] == {"label": "replay"}


def test_initial_price_from_curve(tiny_params):
    curve = _make_curve(tiny_params, net_sold=3)
    assert curve.state.current_price == 9 * WAD * WAD // 6


def test_caller_snapshot_is_not_modified(tiny_params):
    snapshot = SaleTelemetry(net_sold=3, eth_escrow=helper.cost(3, tiny_params))
    curve = ZCurveBondingCurve(tiny_params, snapshot)
    curve.buy(_buy(2))
    curve.sell(_sell(4))

    assert curve.net_sold == 1
    assert curve.state is not snapshot
    assert snapshot.net_sold == 3
    assert snapshot.eth_escrow == 833333333333333333
    assert snapshot.current_price == 0


def test_rejects_stale_state(tiny_params):
    with pytest.raises(StaleTelemetry):
        ZCurveBondingCurve(tiny_params, SaleTelemetry(net_sold=11))


class TestBuy:
    def test_buy_updates_state(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params)
        result = curve.buy(_buy(3))

        assert result.executed_amount == 3
        assert result.total_cost == 833333333333333333
        assert result.new_net_sold == 3
        assert result.average_price == 833333333333333333 * WAD // 3
        assert curve.state.eth_escrow == 833333333333333333
        assert curve.state.current_price == helper.marginal_price(3, tiny_params)

    def test_escrow_tracks_cost(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params)
        for amount in (1, 2, 3):
            curve.buy(_buy(amount))
            assert curve.state.eth_escrow == helper.cost(curve.net_sold, tiny_params)

    def test_over_cap_reverts(self, tiny_params):
        curve = _make_curve(tiny_params, net_sold=8)
        with pytest.raises(InsufficientSupply):
            curve.buy(_buy(3))
        assert curve.net_sold == 8

    def test_pro_rata_fills_remainder_and_finalizes(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params, pro_rata=True)
        result = curve.buy(_buy(11))

        assert result.executed_amount == 10
        assert result.total_cost == 18333333333333333333
        assert curve.state.status == SaleStatus.FINALIZED

        with pytest.raises(SaleClosed):
            curve.buy(_buy(1))

    def test_stays_active_when_finalize_disabled(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params, finalize_when_sold_out=False)
        curve.buy(_buy(10))
        assert curve.state.status == SaleStatus.ACTIVE

    def test_zero_amount(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params)
        result = curve.buy(_buy(0))
        assert result.executed_amount == 0
        assert result.total_cost == 0
        assert result.average_price == 0

    def test_buy_disabled(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params, allow_buy=False)
        with pytest.raises(ValueError, match="Buys are disabled"):
            curve.buy(_buy(1))

    def test_buy_with_eth_keeps_change(self, tiny_params):
        curve = ZCurveBondingCurve(tiny_params)
        result = curve.buy_with_eth(WAD)
        assert result.executed_amount == 3
        assert result.total_cost <= WAD

    @patch("zcurve_core.curves.single.zcurve.datetime")
    def test_timestamp(self, mock_datetime, tiny_params):
        fixed = datetime(2024, 1, 1, 12, 0, 0)
        mock_datetime.now.return_value = fixed
        curve = ZCurveBondingCurve(tiny_params)
        assert curve.buy(_buy(1)).timestamp == fixed


class TestSell:
    def test_sell_refunds_curve_difference(self, tiny_params):
        curve = _make_curve(tiny_params, net_sold=3)
        result = curve.sell(_sell(1))

        assert result.total_cost == 666666666666666667
        assert curve.net_sold == 2
        assert curve.state.eth_escrow == 166666666666666666

    def test_oversell(self, tiny_params):
        curve = _make_curve(tiny_params, net_sold=2)
        with pytest.raises(InsufficientSupply):
            curve.sell(_sell(3))

    def test_sell_disabled(self, tiny_params):
        curve = _make_curve(tiny_params, net_sold=2, allow_sell=False)
        with pytest.raises(ValueError, match="Sells are disabled"):
            curve.sell(_sell(1))

    def test_refund_limited_to_escrow(self, tiny_params):
        """A snapshot with coins sold but nothing escrowed cannot pay a refund."""
        curve = ZCurveBondingCurve(tiny_params, SaleTelemetry(net_sold=3))
        with pytest.raises(InsufficientSupply, match="escrow"):
            curve.sell(_sell(1))
        assert curve.net_sold == 3
        assert curve.state.eth_escrow == 0

    def test_finalized_sale_rejects_sells(self, tiny_params):
        state = SaleTelemetry(net_sold=10, status=SaleStatus.FINALIZED)
        curve = ZCurveBondingCurve(tiny_params, state)
        with pytest.raises(SaleClosed):
            curve.sell(_sell(1))


def test_simulate(tiny_params):
    curve = ZCurveBondingCurve(tiny_params)
    result = curve.simulate([_buy(4), _sell(2), _buy(1)])

    assert [t.total_cost for t in result.transactions] == [
        2333333333333333333,
        2166666666666666667,
        666666666666666667,
    ]
    assert result.final_net_sold == 3
    assert result.final_eth_escrow == 833333333333333333
    assert result.final_price == helper.marginal_price(3, tiny_params)
    assert result.metadata["status"] == "ACTIVE"
