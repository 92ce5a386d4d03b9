# /gastimator/core/gas.py
# Gas constants and the result shapes handed back to callers.
from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field

from gastimator.core.transaction import CanonicalTransaction, TransactionKind

# Fixed cost of a plain native token transfer
NATIVE_TOKEN_TRANSFER_GAS = 21_000
# EIP-2 raised contract creation from 21_000
MIN_CONTRACT_CREATION_GAS = 32_000
# EIP-150 CALL cost
BASE_CONTRACT_CALL_GAS = 700
# Yellow Paper appendix G, CALL with value
CALL_STIPEND_GAS = 900
NON_ZERO_VALUE_TRANSFER_GAS = 1_000


def min_contract_call_gas(with_native_token_transfer: bool) -> int:
    if with_native_token_transfer:
        return BASE_CONTRACT_CALL_GAS + CALL_STIPEND_GAS + NON_ZERO_VALUE_TRANSFER_GAS
    return BASE_CONTRACT_CALL_GAS


def gas_floor(kind: TransactionKind) -> int:
    """Protocol level lower bound for ``kind``, known without simulating."""
    if kind is TransactionKind.CONTRACT_CREATION:
        return MIN_CONTRACT_CREATION_GAS
    if kind is TransactionKind.CONTRACT_CALL:
        return min_contract_call_gas(False)
    if kind is TransactionKind.CONTRACT_CALL_WITH_NATIVE_TOKEN_TRANSFER:
        return min_contract_call_gas(True)
    return NATIVE_TOKEN_TRANSFER_GAS


class ExactGasUsage(BaseModel):
    """The gas usage is known exactly."""
    type: Literal["exact"] = "exact"
    kind: TransactionKind
    gas: int

    model_config = ConfigDict(frozen=True)


class AtLeastWithEstimate(BaseModel):
    """
    A protocol floor known independently of simulation, together with the
    merged estimate. The actual usage is NOT guaranteed to match the estimate.
    """
    type: Literal["at_least_with_estimate"] = "at_least_with_estimate"
    kind: TransactionKind
    at_least: int
    estimate: int

    model_config = ConfigDict(frozen=True)


GasUsage = Annotated[Union[ExactGasUsage, AtLeastWithEstimate], Field(discriminator="type")]


def classify(tx: CanonicalTransaction, estimate: int) -> ExactGasUsage | AtLeastWithEstimate:
    kind = tx.kind()
    if kind.is_native_token_transfer:
        return ExactGasUsage(kind=kind, gas=NATIVE_TOKEN_TRANSFER_GAS)
    return AtLeastWithEstimate(kind=kind, at_least=gas_floor(kind), estimate=estimate)


# --- Estimator outcomes ---

class Success(BaseModel):
    source: str
    gas: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class Failure(BaseModel):
    source: str
    reason: str

    model_config = ConfigDict(frozen=True)


EstimateOutcome = Union[Success, Failure]


class MergedEstimate(BaseModel):
    """Best known answer so far for one request."""
    gas: int
    is_final: bool
    elapsed_ms: int

    model_config = ConfigDict(frozen=True)


class GasEstimateResponse(BaseModel):
    gas_usage: GasUsage
    is_final: bool = True
    time_elapsed_in_millis: int
