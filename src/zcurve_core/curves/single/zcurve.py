import logging
from datetime import datetime
from typing import Iterable, Optional

from zcurve_core.common.enums import OrderSide, SaleStatus
from zcurve_core.common.errors import InsufficientSupply, SaleClosed
from zcurve_core.common.model import (
    CurveParameters,
    SaleTelemetry,
    SimulationResult,
    TransactionRequest,
    TransactionResult,
)
from zcurve_core.curves.helpers.zcurve import ZCurveHelper as helper
from zcurve_core.curves.single.base import BondingCurve
from zcurve_core.quote.engine import QuoteEngine


logger = logging.getLogger(__name__)


class ZCurveBondingCurve(BondingCurve):
    """
    A simulated quadratic-then-linear sale, for replaying trade sequences
    offline. Buys and sells settle at the same prices the contract charges:

      - buy(n)  pays cost(net_sold + n) - cost(net_sold)
      - sell(n) refunds cost(net_sold) - cost(net_sold - n)

    Options:
      - pro_rata: fill what is left instead of reverting when a buy exceeds the cap
      - allow_buy / allow_sell toggles
      - finalize_when_sold_out: flip status to FINALIZED at the sale cap
    """

    def __init__(self, params: CurveParameters, state: Optional[SaleTelemetry] = None, **kwargs):
        super().__init__(params, state)

        self.options = {
            "pro_rata": False,
            "allow_buy": True,
            "allow_sell": True,
            "finalize_when_sold_out": True,
        }

        for k, v in kwargs.items():
            if k in self.options:
                self.options[k] = v
            else:
                if "custom" not in self.options:
                    self.options["custom"] = {}
                self.options["custom"][k] = v

        if self._state.current_price == 0:
            self._state.current_price = self.get_spot_price(self._state.net_sold)

    def _require_active(self):
        if self._state.status != SaleStatus.ACTIVE:
            raise SaleClosed("Sale is finalized; the curve no longer trades.")

    def _empty_result(self) -> TransactionResult:
        return TransactionResult(
            executed_amount=0,
            total_cost=0,
            average_price=0,
            new_net_sold=self._state.net_sold,
            timestamp=datetime.now(),
        )

    def get_spot_price(self, net_sold: int) -> int:
        return helper.marginal_price(net_sold, self._params)

    def calculate_purchase_cost(self, amount: int) -> int:
        return QuoteEngine.eth_for_exact_coins(self._state, self._params, amount)

    def calculate_sale_return(self, amount: int) -> int:
        if amount > self._state.net_sold:
            raise InsufficientSupply("Cannot sell more coins than have been sold.")
        return QuoteEngine.eth_for_coins_sold(self._state, self._params, amount)

    def buy(self, request: TransactionRequest) -> TransactionResult:
        """
        Buys 'request.amount' coins, respecting allow_buy and pro_rata.
        Updates net_sold, escrow and marginal price, returns a TransactionResult.
        """
        self._require_active()
        if not self.options["allow_buy"]:
            raise ValueError("Buys are disabled for this bonding curve.")

        amount = request.amount
        remaining = self._state.remaining(self._params)
        if amount > remaining:
            if not self.options["pro_rata"]:
                raise InsufficientSupply(
                    f"Requested {amount} coins but only {remaining} remain. Reverting."
                )
            amount = remaining

        if amount <= 0:
            return self._empty_result()

        total_cost = self.calculate_purchase_cost(amount)
        self._update_state_after_buy(amount, total_cost)

        if self.options["finalize_when_sold_out"] and self._state.net_sold == self._params.sale_cap:
            logger.info("Sale sold out at %d wei escrowed", self._state.eth_escrow)
            self._state.status = SaleStatus.FINALIZED

        return TransactionResult(
            executed_amount=amount,
            total_cost=total_cost,
            average_price=QuoteEngine.average_price(total_cost, amount),
            new_net_sold=self._state.net_sold,
            timestamp=datetime.now(),
        )

    def buy_with_eth(self, eth_budget: int) -> TransactionResult:
        """Spends at most ``eth_budget``; the unspent remainder stays with the buyer."""
        coins = QuoteEngine.coins_for_eth_budget(self._state, self._params, eth_budget)
        return self.buy(TransactionRequest(order_type=OrderSide.BUY, amount=coins))

    def sell(self, request: TransactionRequest) -> TransactionResult:
        """
        Sells 'request.amount' coins back into the curve, respecting allow_sell.
        Refunds are paid from escrow and cannot exceed it.
        """
        self._require_active()
        if not self.options["allow_sell"]:
            raise ValueError("Sells are disabled for this bonding curve.")

        amount = request.amount
        if amount <= 0:
            return self._empty_result()

        refund = self.calculate_sale_return(amount)
        if refund > self._state.eth_escrow:
            raise InsufficientSupply(
                f"Refund of {refund} wei exceeds the {self._state.eth_escrow} wei held in escrow."
            )
        self._update_state_after_sell(amount, refund)

        return TransactionResult(
            executed_amount=amount,
            total_cost=refund,
            average_price=QuoteEngine.average_price(refund, amount),
            new_net_sold=self._state.net_sold,
            timestamp=datetime.now(),
        )

    def simulate(self, requests: Iterable[TransactionRequest]) -> SimulationResult:
        """Replays a sequence of buys and sells and aggregates the outcome."""
        result = SimulationResult()
        for request in requests:
            if request.order_type == OrderSide.BUY:
                result.transactions.append(self.buy(request))
            else:
                result.transactions.append(self.sell(request))

        result.final_net_sold = self._state.net_sold
        result.final_eth_escrow = self._state.eth_escrow
        result.final_price = self._state.current_price
        result.metadata["status"] = str(self._state.status)
        return result
