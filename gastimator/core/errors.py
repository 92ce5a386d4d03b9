# /gastimator/core/errors.py
# Every error the estimation engine can raise. Only normalization errors,
# BothEstimatorsFailed and GasExceedsLimit ever reach a caller; estimator
# errors are folded into Failure outcomes by the adapters.


class GastimatorError(Exception):
    """Base class, carries the HTTP status the transport should answer with."""

    status_code = 500

    def to_dict(self) -> dict:
        return {"type": type(self).__name__, "message": str(self)}


# --- Normalizer (client errors) ---

class NormalizationError(GastimatorError):
    status_code = 400


class MalformedEncoding(NormalizationError):
    def __init__(self, reason: str, length: int, position: int | None = None):
        self.reason = reason
        self.length = length
        self.position = position
        where = f" at position {position}" if position is not None else ""
        super().__init__(f"Malformed transaction encoding{where} (input length {length}): {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "length": self.length, "position": self.position}


class InvalidAddress(NormalizationError):
    def __init__(self, field: str, value):
        self.field = field
        self.value = value
        super().__init__(f"Field `{field}` is not a 20 byte address: {value!r}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


class InvalidField(NormalizationError):
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid field `{field}`: {reason}")

    def to_dict(self) -> dict:
        return {**super().to_dict(), "field": self.field}


# --- Estimators (never surfaced on their own) ---

class EstimatorError(GastimatorError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class SimulationError(EstimatorError):
    """Local transaction simulation failed."""


class RpcError(EstimatorError):
    """Remote gas estimate failed."""


# --- Terminal request errors ---

class BothEstimatorsFailed(GastimatorError):
    status_code = 502

    def __init__(self, local_reason: str, remote_reason: str):
        self.local_reason = local_reason
        self.remote_reason = remote_reason
        super().__init__(
            f"Failed to calculate gas estimate, local: `{local_reason}`, remote: `{remote_reason}`"
        )

    def to_dict(self) -> dict:
        return {**super().to_dict(), "local_reason": self.local_reason, "remote_reason": self.remote_reason}


class GasExceedsLimit(GastimatorError):
    """Policy rejection: the estimate is above the caller supplied ceiling."""

    status_code = 422

    def __init__(self, estimated_cost: int, gas_limit: int):
        self.estimated_cost = estimated_cost
        self.gas_limit = gas_limit
        super().__init__(f"Gas exceeds limit, estimated cost: {estimated_cost}, gas limit: {gas_limit}")

    def __eq__(self, other):
        if not isinstance(other, GasExceedsLimit):
            return NotImplemented
        return (self.estimated_cost, self.gas_limit) == (other.estimated_cost, other.gas_limit)

    __hash__ = GastimatorError.__hash__

    def to_dict(self) -> dict:
        return {**super().to_dict(), "estimated_cost": self.estimated_cost, "gas_limit": self.gas_limit}
