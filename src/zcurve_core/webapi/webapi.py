import logging
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from flask import jsonify
from flask_openapi3 import Info, Tag
from flask_openapi3 import OpenAPI

from zcurve_core.common.constants import (
    AVERAGE_PRICE_THRESHOLD_BPS,
    DEFAULT_SWAP_FEE_BPS,
    QUAD_CAP,
    SALE_CAP,
    TOTAL_SUPPLY,
    UNIT_SCALE,
)
from zcurve_core.common.enums import OrderSide, QuoteMode, SaleStatus
from zcurve_core.common.errors import InsufficientSupply, InvalidCurveConfig, SaleClosed, ZCurveError
from zcurve_core.common.model import CurveParameters, MarketProjection, Quote, SaleTelemetry
from zcurve_core.analysis.sampler import CurveSampler
from zcurve_core.curves.helpers.zcurve import ZCurveHelper
from zcurve_core.market.projector import MarketStateProjector
from zcurve_core.quote.engine import QuoteEngine
from zcurve_core.validation.zcurve_validator import ZCurveValidator


logger = logging.getLogger(__name__)

info = Info(title="zCurve Pricing API", version="1.0.0")


class CurveStatus(Enum):
    ACTIVE = "ACTIVE"
    FINALIZED = "FINALIZED"


class CurveOrderSide(Enum):
    buy = "BUY"
    sell = "SELL"


class CurveQuoteMode(Enum):
    exact_eth_in = "EXACT_ETH_IN"
    exact_coins_out = "EXACT_COINS_OUT"
    exact_coins_in = "EXACT_COINS_IN"


class CurveBody(BaseModel):
    sale_cap: int = Field(SALE_CAP, gt=0, description="Coins offered by the sale, base units")
    quad_cap: int = Field(QUAD_CAP, gt=0, description="Breakpoint between quadratic and linear pricing")
    divisor: Optional[int] = Field(None, gt=0, description="Calibrated divisor; derived from target_raise if omitted")
    target_raise: Optional[int] = Field(None, gt=0, description="ETH raised at the sale cap, wei")
    unit_scale: int = Field(UNIT_SCALE, gt=0, description="Base units per pricing tick")


class QuoteBody(CurveBody):
    net_sold: int = Field(0, ge=0, description="Coins sold so far")
    current_price: int = Field(0, ge=0, description="Marginal price, wei per whole coin")
    side: CurveOrderSide = Field(CurveOrderSide.buy, description="Buy from or sell back into the curve")
    mode: Optional[CurveQuoteMode] = Field(
        None, description="Buys: EXACT_ETH_IN (default) or EXACT_COINS_OUT. Sells: EXACT_COINS_IN"
    )
    amount: int = Field(ge=0, description="ETH offered (wei), or coins wanted or sold (base units)")
    tolerance_bps: int = Field(0, ge=0, le=10_000, description="Slippage tolerance")

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: Optional[CurveQuoteMode], info) -> Optional[CurveQuoteMode]:
        """Sells only burn exact coins; buys never do."""
        if v is None or "side" not in info.data:
            return v
        is_sell_mode = v == CurveQuoteMode.exact_coins_in
        if (info.data["side"] == CurveOrderSide.sell) != is_sell_mode:
            raise ValueError(f"mode {v.value} does not apply to {info.data['side'].value} quotes")
        return v


class SamplesBody(CurveBody):
    sample_count: int = Field(101, ge=2, le=1001, description="Evenly spaced points from 0% to 100%")


class ProjectionBody(BaseModel):
    status: CurveStatus = Field(description="Sale lifecycle phase")
    sale_cap: int = Field(SALE_CAP, gt=0)
    net_sold: int = Field(0, ge=0)
    eth_escrow: int = Field(0, ge=0)
    current_price: int = Field(0, ge=0)
    total_nominal_supply: Optional[int] = Field(None, gt=0)
    reserve_eth: Optional[int] = Field(None, ge=0)
    reserve_token: Optional[int] = Field(None, ge=0)
    circulating_supply: Optional[int] = Field(None, ge=0)
    eth_usd_rate: Optional[Decimal] = Field(None, description="USD per ETH, supplied by the caller")
    fee_or_hook: Optional[int] = Field(None, ge=0)
    eth_target: Optional[int] = Field(None, gt=0, description="ETH the sale aims to raise, wei")


curve_tag = Tag(
    name="Bonding Curve",
    description="Calibrate, sample and validate quadratic-then-linear sale curves",
)
quote_tag = Tag(
    name="Bonding Curve Quote",
    description="Quote a buy against a live sale snapshot",
)
market_tag = Tag(
    name="Market Projection",
    description="Implied market cap for a bonding or graduated sale",
)


def _resolve_params(body: CurveBody) -> CurveParameters:
    if body.divisor is not None:
        return CurveParameters(body.sale_cap, body.quad_cap, body.divisor, body.unit_scale)
    if body.target_raise is None:
        raise InvalidCurveConfig("Either divisor or target_raise is required.")
    return ZCurveHelper.build_params(body.sale_cap, body.quad_cap, body.target_raise, body.unit_scale)


def _quote_to_dict(quote: Quote) -> dict:
    return {
        "mode": str(quote.mode),
        "amount_in": str(quote.amount_in),
        "amount_out": str(quote.amount_out),
        "min_out": None if quote.min_out is None else str(quote.min_out),
        "max_in": None if quote.max_in is None else str(quote.max_in),
        "price_impact_bps": quote.price_impact_bps,
        "marginal_impact_bps": quote.marginal_impact_bps,
    }


def _projection_to_dict(projection: MarketProjection) -> dict:
    return {
        "market_cap_eth": None if projection.market_cap_eth is None else str(projection.market_cap_eth),
        "market_cap_usd": None if projection.market_cap_usd is None else str(projection.market_cap_usd),
        "effective_fee_bps": projection.effective_fee_bps,
        "is_bonding_phase": projection.is_bonding_phase,
        "effective_price": str(projection.effective_price),
        "pricing_basis": str(projection.pricing_basis),
        "funding_progress_bps": projection.funding_progress_bps,
    }


def create_app(**options) -> OpenAPI:
    """
    Builds the API. Keyword options override the projector policy:
    AVERAGE_PRICE_THRESHOLD_BPS, DEFAULT_SWAP_FEE_BPS, TOTAL_NOMINAL_SUPPLY.
    """
    app = OpenAPI(__name__, info=info)
    app.config.update(
        AVERAGE_PRICE_THRESHOLD_BPS=AVERAGE_PRICE_THRESHOLD_BPS,
        DEFAULT_SWAP_FEE_BPS=DEFAULT_SWAP_FEE_BPS,
        TOTAL_NOMINAL_SUPPLY=TOTAL_SUPPLY,
    )
    app.config.update(options)

    @app.errorhandler(ZCurveError)
    def handle_engine_error(error: ZCurveError):
        status = 409 if isinstance(error, (InsufficientSupply, SaleClosed)) else 400
        logger.warning("Rejected request: %s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), status

    @app.post("/curve/calibrate", summary="Calibrate Divisor", tags=[curve_tag])
    def calibrate(body: CurveBody):
        """
        Solve for the divisor that makes the full sale raise target_raise exactly
        """
        params = _resolve_params(body)
        return jsonify({
            "divisor": str(params.divisor),
            "total_raise": str(ZCurveHelper.cost(params.sale_cap, params)),
        })

    @app.post("/curve/quote", summary="Curve Quote", tags=[quote_tag])
    def quote(body: QuoteBody):
        """
        Quote a buy or a sell against the sale snapshot in the request
        """
        params = _resolve_params(body)
        telemetry = SaleTelemetry(net_sold=body.net_sold, current_price=body.current_price)
        side = OrderSide.from_str(body.side.value)
        if side == OrderSide.SELL:
            result = QuoteEngine.quote_exact_coins_in(telemetry, params, body.amount, body.tolerance_bps)
            return jsonify(_quote_to_dict(result))

        mode = QuoteMode.EXACT_ETH_IN if body.mode is None else QuoteMode.from_str(body.mode.value)
        if mode == QuoteMode.EXACT_ETH_IN:
            result = QuoteEngine.quote_exact_eth_in(telemetry, params, body.amount, body.tolerance_bps)
        else:
            result = QuoteEngine.quote_exact_coins_out(telemetry, params, body.amount, body.tolerance_bps)
        return jsonify(_quote_to_dict(result))

    @app.post("/curve/samples", summary="Curve Samples", tags=[curve_tag])
    def samples(body: SamplesBody):
        """
        Return a representation of the curve which can be plotted by the caller
        """
        params = _resolve_params(body)
        points = [
            {
                "coins_sold": str(s.coins_sold),
                "percent_sold": str(s.percent_sold),
                "marginal_price": str(s.marginal_price),
                "cumulative_cost": str(s.cumulative_cost),
            }
            for s in CurveSampler.iter_samples(params, body.sample_count)
        ]
        return jsonify({"divisor": str(params.divisor), "samples": points})

    @app.post("/curve/validate", summary="Validate Curve", tags=[curve_tag])
    def validate(body: CurveBody):
        """
        Run parameter, boundary and scenario checks on a curve
        """
        params = _resolve_params(body)
        return jsonify(ZCurveValidator.run_all_validations(params, body.target_raise))

    @app.post("/market/projection", summary="Market Projection", tags=[market_tag])
    def projection(body: ProjectionBody):
        """
        Implied market cap and effective fee for a sale snapshot
        """
        projector = MarketStateProjector(
            average_price_threshold_bps=app.config["AVERAGE_PRICE_THRESHOLD_BPS"],
            default_swap_fee_bps=app.config["DEFAULT_SWAP_FEE_BPS"],
            total_nominal_supply=app.config["TOTAL_NOMINAL_SUPPLY"],
        )
        result = projector.project(
            SaleStatus.from_str(body.status.value),
            body.sale_cap,
            body.net_sold,
            body.eth_escrow,
            body.current_price,
            total_nominal_supply=body.total_nominal_supply,
            reserve_eth=body.reserve_eth,
            reserve_token=body.reserve_token,
            circulating_supply=body.circulating_supply,
            eth_usd_rate=body.eth_usd_rate,
            fee_or_hook=body.fee_or_hook,
            eth_target=body.eth_target,
        )
        return jsonify(_projection_to_dict(result))

    return app


app = create_app()


if __name__ == "__main__":
    app.run(debug=True)
