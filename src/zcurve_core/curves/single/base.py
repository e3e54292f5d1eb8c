from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Optional

from zcurve_core.common.model import (
    CurveParameters,
    SaleTelemetry,
    TransactionRequest,
    TransactionResult,
)


class BondingCurve(ABC):
    """Abstract base class defining the interface for a simulated sale curve."""
    def __init__(self, params: 'CurveParameters', state: Optional['SaleTelemetry'] = None):
        """
        Initializes the bonding curve with parameters and an optional existing state.

        :param params: CurveParameters - calibrated curve shape
        :param state: SaleTelemetry - optional starting snapshot, fresh sale if omitted.
            The curve trades on its own copy; the caller's snapshot is left untouched.
        """
        self._params = params
        self._state = replace(state) if state is not None else SaleTelemetry()
        self._state.check_against(params)

    @property
    def params(self) -> 'CurveParameters':
        """Returns the curve parameters."""
        return self._params

    @property
    def state(self) -> 'SaleTelemetry':
        return self._state

    @property
    def net_sold(self) -> int:
        """Returns the coins sold so far."""
        return self._state.net_sold

    @abstractmethod
    def get_spot_price(self, net_sold: int) -> int:
        """
        Returns the marginal price (wei per whole coin) at a given amount sold.

        :param net_sold: int - coins sold, in base units.
        :return: int: the price at that point.
        """
        pass

    @abstractmethod
    def calculate_purchase_cost(self, amount: int) -> int:
        """
        Calculates how much ETH it costs to buy 'amount' coins from the current state.

        :param amount: int - coins the user wants to purchase.
        :return: total cost in wei.
        """
        pass

    @abstractmethod
    def calculate_sale_return(self, amount: int) -> int:
        """
        Calculates how much ETH is refunded if 'amount' coins are sold back into the curve.

        :param amount: int - coins the user wants to sell.
        :return: total refund in wei.
        """
        pass

    @abstractmethod
    def buy(self, request: 'TransactionRequest') -> 'TransactionResult':
        """
        Executes a buy along the curve, updating net_sold and escrow.

        :param request: TransactionRequest
        :return: A TransactionResult detailing executed amount, total cost, new net_sold.
        """
        pass

    @abstractmethod
    def sell(self, request: 'TransactionRequest') -> 'TransactionResult':
        """
        Executes a sell back into the curve, updating net_sold and escrow.

        :param request: TransactionRequest
        :return: A TransactionResult detailing executed amount, refund, new net_sold.
        """
        pass

    def _update_state_after_buy(self, amount: int, total_cost: int):
        self._state.net_sold += amount
        self._state.eth_escrow += total_cost
        self._state.current_price = self.get_spot_price(self._state.net_sold)

    def _update_state_after_sell(self, amount: int, total_return: int):
        self._state.net_sold -= amount
        self._state.eth_escrow -= total_return
        self._state.current_price = self.get_spot_price(self._state.net_sold)
