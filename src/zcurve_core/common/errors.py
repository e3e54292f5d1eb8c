class ZCurveError(ValueError):
    """Base class for every error the pricing engine reports."""
    kind = "ZCurveError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class InvalidCurveConfig(ZCurveError):
    """Non-positive or inconsistent sale cap, quad cap, target raise or divisor."""
    kind = "InvalidCurveConfig"


class InsufficientSupply(ZCurveError):
    """The requested coins exceed what the sale (or the escrow) can cover."""
    kind = "InsufficientSupply"


class ArithmeticOverflow(ZCurveError):
    """An intermediate value does not fit the contract's uint256 words."""
    kind = "ArithmeticOverflow"


class StaleTelemetry(ZCurveError):
    """A telemetry snapshot contradicts its own invariants."""
    kind = "StaleTelemetry"


class SaleClosed(ZCurveError):
    """The sale is finalized or past its deadline and accepts no purchases."""
    kind = "SaleClosed"
