import pytest

from dataclasses import FrozenInstanceError

from zcurve_core.common.constants import QUAD_CAP, SALE_CAP, UNIT_SCALE, WAD
from zcurve_core.common.enums import SaleStatus
from zcurve_core.common.errors import InvalidCurveConfig, StaleTelemetry, ZCurveError
from zcurve_core.common.model import CurveParameters, SaleTelemetry


class TestCurveParameters:
    def test_defaults(self):
        params = CurveParameters(sale_cap=SALE_CAP, quad_cap=QUAD_CAP, divisor=1)
        assert params.unit_scale == UNIT_SCALE
        assert params.sale_ticks == 800_000_000 * 10 ** 6
        assert params.quad_ticks == 200_000_000 * 10 ** 6

    @pytest.mark.parametrize(
        "sale_cap, quad_cap, divisor, unit_scale",
        [
            (0, 0, 1, 1),
            (10, 0, 1, 1),
            (10, -1, 1, 1),
            (10, 11, 1, 1),
            (10, 5, 0, 1),
            (10, 5, -3, 1),
            (10, 5, 1, 0),
            (10, 5, 1, 3),   # does not divide 1e18
        ]
    )
    def test_invalid(self, sale_cap, quad_cap, divisor, unit_scale):
        with pytest.raises(InvalidCurveConfig):
            CurveParameters(sale_cap, quad_cap, divisor, unit_scale)

    def test_invalid_config_is_value_error(self):
        with pytest.raises(ValueError):
            CurveParameters(10, 20, 1, 1)

    def test_quad_cap_may_equal_sale_cap(self):
        params = CurveParameters(10, 10, 1, 1)
        assert params.quad_cap == params.sale_cap

    def test_frozen(self):
        params = CurveParameters(10, 5, 1, 1)
        with pytest.raises(FrozenInstanceError):
            params.divisor = 2


    def test_calibrated(self):
        params = CurveParameters.calibrated(SALE_CAP, QUAD_CAP, 2 * WAD)
        assert params.divisor == 2222222222222220555555555555558333333333333
        assert params.unit_scale == UNIT_SCALE
        assert params.sale_cap == SALE_CAP

    def test_calibrated_small_curve(self):
        params = CurveParameters.calibrated(10, 4, 10 ** 9, unit_scale=1)
        assert params == CurveParameters(10, 4, 18333333333, 1)

    def test_calibrated_rejects_bad_target(self):
        with pytest.raises(InvalidCurveConfig):
            CurveParameters.calibrated(SALE_CAP, QUAD_CAP, 0)


class TestSaleTelemetry:
    def test_defaults(self):
        telemetry = SaleTelemetry()
        assert telemetry.net_sold == 0
        assert telemetry.eth_escrow == 0
        assert telemetry.status == SaleStatus.ACTIVE
        assert telemetry.deadline is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"net_sold": -1},
            {"eth_escrow": -1},
            {"current_price": -1},
        ]
    )
    def test_negative_amounts(self, kwargs):
        with pytest.raises(StaleTelemetry):
            SaleTelemetry(**kwargs)

    def test_check_against_sale_cap(self):
        params = CurveParameters(10 * WAD, 5 * WAD, 1)
        SaleTelemetry(net_sold=10 * WAD).check_against(params)
        with pytest.raises(StaleTelemetry) as exc:
            SaleTelemetry(net_sold=10 * WAD + 1).check_against(params)
        assert exc.value.kind == "StaleTelemetry"
        assert isinstance(exc.value, ZCurveError)

    def test_remaining(self):
        params = CurveParameters(10 * WAD, 5 * WAD, 1)
        assert SaleTelemetry(net_sold=4 * WAD).remaining(params) == 6 * WAD

    def test_is_open(self):
        telemetry = SaleTelemetry(deadline=1_000)
        assert telemetry.is_open(999)
        assert telemetry.is_open(1_000)
        assert not telemetry.is_open(1_001)

    def test_is_open_without_deadline(self):
        assert SaleTelemetry().is_open(10 ** 12)

    def test_finalized_is_closed(self):
        assert not SaleTelemetry(status=SaleStatus.FINALIZED, deadline=1_000).is_open(0)


def test_error_to_dict():
    error = InvalidCurveConfig("bad")
    assert error.to_dict() == {"error": "InvalidCurveConfig", "message": "bad"}
