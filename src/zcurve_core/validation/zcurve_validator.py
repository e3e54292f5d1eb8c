from typing import Any, Dict, List, Optional

from zcurve_core.common.constants import WAD
from zcurve_core.common.enums import OrderSide
from zcurve_core.common.errors import ZCurveError
from zcurve_core.common.model import CurveParameters, SaleTelemetry, TransactionRequest
from zcurve_core.curves.helpers.zcurve import ZCurveHelper as helper
from zcurve_core.curves.single.zcurve import ZCurveBondingCurve
from zcurve_core.analysis.sampler import CurveSampler
from zcurve_core.quote.engine import QuoteEngine


class ZCurveValidator:
    """
    Sanity report for a calibrated quadratic-then-linear curve.
    Performs:
      1) Param checks (tick resolution, breakpoint position)
      2) Boundary tests (cost at 0, breakpoint continuity, cost at the sale cap)
      3) Scenario tests (small buy/sell sequence on a simulated sale)

    Each step returns a dict with:
      {
        "errors": [str...],
        "warnings": [str...],
        "info": {...}
      }
    and 'run_all_validations' aggregates them into a single result.
    """

    @staticmethod
    def validate_params(params: 'CurveParameters') -> Dict[str, Any]:
        errors: List[str] = []
        warnings: List[str] = []
        info: Dict[str, Any] = {}

        if params.quad_ticks < 1:
            errors.append("ZCurve: 'quad_cap' must span at least one tick.")
        elif params.quad_ticks < 2:
            warnings.append("ZCurve: quadratic region is empty; the curve is flat.")
        if params.sale_cap % params.unit_scale != 0:
            warnings.append("ZCurve: 'sale_cap' is not a whole number of ticks; the tail tick is free.")
        if params.quad_cap % params.unit_scale != 0:
            warnings.append("ZCurve: 'quad_cap' is not a whole number of ticks.")
        if params.quad_cap == params.sale_cap:
            warnings.append("ZCurve: breakpoint equals the sale cap; the curve is purely quadratic.")

        info["param_summary"] = {
            "sale_cap": str(params.sale_cap),
            "quad_cap": str(params.quad_cap),
            "divisor": str(params.divisor),
            "unit_scale": str(params.unit_scale),
            "quad_share_bps": str(params.quad_cap * 10_000 // params.sale_cap),
        }

        return {
            "errors": errors,
            "warnings": warnings,
            "info": info
        }

    @staticmethod
    def boundary_tests(params: 'CurveParameters', target_raise: Optional[int] = None) -> Dict[str, Any]:
        errors: List[str] = []
        warnings: List[str] = []
        info: Dict[str, Any] = {}

        try:
            if helper.cost(0, params) != 0:
                errors.append("Cost at zero coins sold is not zero.")

            quad = helper.quadratic_cost(params.quad_cap, params)
            linear = helper.linear_cost(params.quad_cap, params)
            if quad != linear:
                errors.append(f"Curve is discontinuous at quad_cap: {quad} != {linear}.")

            total = helper.cost(params.sale_cap, params)
            info["total_raise"] = str(total)
            if target_raise is not None and total != target_raise:
                errors.append(f"Cost at sale_cap is {total}, expected {target_raise}.")

            previous = -1
            for sample in CurveSampler.iter_samples(params, 41):
                if sample.cumulative_cost < previous:
                    errors.append(f"Cost decreases at {sample.percent_sold}% sold.")
                    break
                previous = sample.cumulative_cost
        except ZCurveError as e:
            errors.append(f"{e.kind}: {e.message}")

        info["boundary_tests_run"] = True
        return {
            "errors": errors,
            "warnings": warnings,
            "info": info
        }

    @staticmethod
    def scenario_tests(params: 'CurveParameters') -> Dict[str, Any]:
        """
        Runs a small scenario on a fresh simulated sale:
          1) buy with 1% of the total raise
          2) buy 1% of the sale cap
          3) sell half of what was bought
        Checks that escrow always equals the curve cost of net_sold.
        """
        errors: List[str] = []
        warnings: List[str] = []
        info: Dict[str, Any] = {}

        curve = ZCurveBondingCurve(params)

        try:
            total = helper.cost(params.sale_cap, params)
            info["coins_per_eth_at_start"] = str(
                QuoteEngine.coins_for_eth_budget(SaleTelemetry(), params, WAD)
            )

            first = curve.buy_with_eth(max(total // 100, 1))
            if first.executed_amount == 0:
                warnings.append("A 1% budget buys no coins at the start of the sale.")

            curve.buy(TransactionRequest(order_type=OrderSide.BUY, amount=params.sale_cap // 100))
            curve.sell(TransactionRequest(order_type=OrderSide.SELL, amount=curve.net_sold // 2))

            if curve.state.eth_escrow != helper.cost(curve.net_sold, params):
                errors.append("Escrow diverged from the curve cost after the scenario.")
        except ZCurveError as e:
            errors.append(f"Exception in scenario: {e.kind}: {e.message}")

        info["final_net_sold_after_scenario"] = str(curve.net_sold)
        info["final_price_after_scenario"] = str(curve.state.current_price)

        return {
            "errors": errors,
            "warnings": warnings,
            "info": info
        }

    @staticmethod
    def run_all_validations(params: 'CurveParameters', target_raise: Optional[int] = None) -> Dict[str, Any]:
        """
        Aggregates:
          - param check
          - boundary tests
          - scenario tests
        Returns a dict with keys: errors, warnings, info
        """
        results = {
            "errors": [],
            "warnings": [],
            "info": {}
        }

        param_check = ZCurveValidator.validate_params(params)
        results["errors"].extend(param_check["errors"])
        results["warnings"].extend(param_check["warnings"])
        results["info"].update(param_check["info"])

        if param_check["errors"]:
            return results

        boundary = ZCurveValidator.boundary_tests(params, target_raise)
        results["errors"].extend(boundary["errors"])
        results["warnings"].extend(boundary["warnings"])
        results["info"].update(boundary["info"])

        scenario = ZCurveValidator.scenario_tests(params)
        results["errors"].extend(scenario["errors"])
        results["warnings"].extend(scenario["warnings"])
        results["info"].update(scenario["info"])

        return results
