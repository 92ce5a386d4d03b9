# /gastimator/core/transaction.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

U64_MAX = 2**64 - 1
U256_MAX = 2**256 - 1


class TransactionKind(str, Enum):
    """Classification of a transaction, derived from its fields only."""

    # Fixed gas usage of 21_000
    NATIVE_TOKEN_TRANSFER = "native_token_transfer"
    # At least 32_000 (EIP-2), plus init code execution and code deposit
    CONTRACT_CREATION = "contract_creation"
    CONTRACT_CALL = "contract_call"
    CONTRACT_CALL_WITH_NATIVE_TOKEN_TRANSFER = "contract_call_with_native_token_transfer"
    # Creation without init code
    UNKNOWN = "unknown"

    @property
    def is_native_token_transfer(self) -> bool:
        return self is TransactionKind.NATIVE_TOKEN_TRANSFER


class CanonicalTransaction(BaseModel):
    """
    The normalized, immutable unit of estimation.

    Equality and hashing cover every field, ``gas_limit`` included, which
    makes the value itself usable as an identity cache key.
    """
    nonce: int | None = Field(default=None, ge=0, le=U64_MAX)
    from_: str | None = Field(default=None, alias="from")
    # None means contract creation
    to: str | None = None
    value: int = Field(default=0, ge=0, le=U256_MAX)
    # Caller supplied ceiling, never forwarded to the estimators
    gas_limit: int | None = Field(default=None, ge=0, le=U64_MAX)
    input: bytes = b""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def is_contract_creation(self) -> bool:
        return self.to is None

    def is_cacheable(self) -> bool:
        """Only (nonce, sender) pinned transactions are worth remembering."""
        return self.nonce is not None and self.from_ is not None

    def kind(self) -> TransactionKind:
        has_value = self.value != 0
        has_input = len(self.input) > 0

        if not self.is_contract_creation and has_value and not has_input:
            return TransactionKind.NATIVE_TOKEN_TRANSFER
        if self.is_contract_creation and has_input:
            return TransactionKind.CONTRACT_CREATION
        if not self.is_contract_creation:
            if has_value:
                return TransactionKind.CONTRACT_CALL_WITH_NATIVE_TOKEN_TRANSFER
            return TransactionKind.CONTRACT_CALL
        return TransactionKind.UNKNOWN

    def log_fields(self) -> dict:
        return {
            "nonce": self.nonce,
            "from": self.from_,
            "to": self.to,
            "value": str(self.value),
            "gas_limit": self.gas_limit,
            "input_len": len(self.input),
        }
