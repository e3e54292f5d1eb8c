from enum import Enum


class SaleStatus(Enum):
    ACTIVE = "ACTIVE"
    FINALIZED = "FINALIZED"

    @classmethod
    def from_str(cls, status_str: str) -> "SaleStatus":
        """
        Convert a string to a SaleStatus enum.
        :param status_str: str
        :return: SaleStatus or NotImplementedError
        """
        if status_str.upper() == SaleStatus.ACTIVE.name:
            return SaleStatus.ACTIVE
        elif status_str.upper() == SaleStatus.FINALIZED.name:
            return SaleStatus.FINALIZED
        else:
            raise NotImplementedError(f"No sale status enum for {status_str}")

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.__str__()


class OrderSide(Enum):
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def from_str(cls, side_str):
        if side_str.upper() == OrderSide.BUY.name:
            return OrderSide.BUY
        elif side_str.upper() == OrderSide.SELL.name:
            return OrderSide.SELL
        else:
            raise NotImplementedError(f"No order side enum for {side_str}")

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.__str__()


class SlippageBound(Enum):
    """Which side of a quote the slippage tolerance protects."""
    MIN_OUT = "MIN_OUT"
    MAX_IN = "MAX_IN"

    @classmethod
    def from_str(cls, bound_str):
        if bound_str.upper() == SlippageBound.MIN_OUT.name:
            return SlippageBound.MIN_OUT
        elif bound_str.upper() == SlippageBound.MAX_IN.name:
            return SlippageBound.MAX_IN
        else:
            raise NotImplementedError(f"No slippage bound enum for {bound_str}")

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.__str__()


class QuoteMode(Enum):
    """Buys spend exact ETH or take exact coins; sells burn exact coins."""
    EXACT_ETH_IN = "EXACT_ETH_IN"
    EXACT_COINS_OUT = "EXACT_COINS_OUT"
    EXACT_COINS_IN = "EXACT_COINS_IN"

    @classmethod
    def from_str(cls, mode_str):
        if mode_str.upper() == QuoteMode.EXACT_ETH_IN.name:
            return QuoteMode.EXACT_ETH_IN
        elif mode_str.upper() == QuoteMode.EXACT_COINS_OUT.name:
            return QuoteMode.EXACT_COINS_OUT
        elif mode_str.upper() == QuoteMode.EXACT_COINS_IN.name:
            return QuoteMode.EXACT_COINS_IN
        else:
            raise NotImplementedError(f"No quote mode enum for {mode_str}")

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.__str__()


class PricingBasis(Enum):
    AVERAGE = "AVERAGE"
    MARGINAL = "MARGINAL"
    RESERVES = "RESERVES"
    NONE = "NONE"

    def __str__(self):
        return self.name

    def __repr__(self):
        return self.__str__()
