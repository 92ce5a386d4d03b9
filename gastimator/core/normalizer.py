# /gastimator/core/normalizer.py
# Turns the two accepted request shapes, a structured transaction object or a
# hex encoded EIP-1559 RLP payload, into the same CanonicalTransaction.
import re
import string
from typing import Any, Mapping

import rlp
from rlp.exceptions import RLPException
from rlp.sedes import big_endian_int
from eth_account import Account
from eth_utils import remove_0x_prefix, to_checksum_address
from pydantic import ValidationError

from gastimator.core.errors import InvalidAddress, InvalidField, MalformedEncoding
from gastimator.core.logger import get_logger
from gastimator.core.transaction import CanonicalTransaction

log = get_logger(__name__)

EIP1559_TX_TYPE = 0x02
# chain_id, nonce, max_priority_fee, max_fee, gas_limit, to, value, data, access_list
UNSIGNED_FIELD_COUNT = 9
# ... + y_parity, r, s
SIGNED_FIELD_COUNT = 12

GAS_LIMIT_KEYS = ("gas_limit", "gasLimit", "gas")
INPUT_KEYS = ("input", "data")

# ASCII only, no sign, underscores or inner whitespace
HEX_QUANTITY = re.compile(r"0[xX][0-9a-fA-F]+")
DECIMAL_QUANTITY = re.compile(r"[0-9]+")


def parse_quantity(value: Any, field: str) -> int:
    """Accepts an int, a ``0x`` hex string or a decimal string."""
    if isinstance(value, bool):
        raise InvalidField(field, "expected a number, got a boolean")
    if isinstance(value, int):
        if value < 0:
            raise InvalidField(field, f"must be unsigned, got {value}")
        return value
    if isinstance(value, str):
        text = value.strip()
        if HEX_QUANTITY.fullmatch(text):
            return int(text[2:], 16)
        if DECIMAL_QUANTITY.fullmatch(text):
            return int(text)
        raise InvalidField(field, f"not a hex or decimal quantity: {value!r}")
    raise InvalidField(field, f"unsupported type {type(value).__name__}")


def parse_hex_bytes(value: Any, field: str) -> bytes:
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise InvalidField(field, f"expected a hex string, got {type(value).__name__}")
    body = remove_0x_prefix(value.strip())
    if len(body) % 2 or any(char not in string.hexdigits for char in body):
        raise InvalidField(field, "not valid hex")
    return bytes.fromhex(body)


def parse_address(value: Any, field: str) -> str:
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        try:
            raw = parse_hex_bytes(value, field)
        except InvalidField:
            raise InvalidAddress(field, value)
    if len(raw) != 20:
        raise InvalidAddress(field, value)
    return to_checksum_address(raw)


def _build(**fields) -> CanonicalTransaction:
    try:
        return CanonicalTransaction(**fields)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "transaction"
        raise InvalidField(field, error["msg"]) from e


def _first_present(payload: Mapping, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


def from_structured(payload: Mapping) -> CanonicalTransaction:
    """Normalizes a JSON style transaction object."""
    if not isinstance(payload, Mapping):
        raise InvalidField("transaction", f"expected an object, got {type(payload).__name__}")

    nonce = payload.get("nonce")
    sender = payload.get("from")
    to = payload.get("to")
    value = payload.get("value")
    gas_limit = _first_present(payload, GAS_LIMIT_KEYS)

    return _build(
        nonce=parse_quantity(nonce, "nonce") if nonce is not None else None,
        from_=parse_address(sender, "from") if sender is not None else None,
        to=parse_address(to, "to") if to is not None else None,
        value=parse_quantity(value, "value") if value is not None else 0,
        gas_limit=parse_quantity(gas_limit, "gas_limit") if gas_limit is not None else None,
        input=parse_hex_bytes(_first_present(payload, INPUT_KEYS), "input"),
    )


def _decode_hex(rlp_hex: str) -> bytes:
    if not isinstance(rlp_hex, str):
        raise MalformedEncoding("expected a hex string", length=0)
    body = remove_0x_prefix(rlp_hex.strip())
    for position, char in enumerate(body):
        if char not in string.hexdigits:
            raise MalformedEncoding(f"non hex character {char!r}", length=len(body), position=position)
    if len(body) % 2:
        raise MalformedEncoding("odd number of hex digits", length=len(body), position=len(body))
    if not body:
        raise MalformedEncoding("empty input", length=0, position=0)
    return bytes.fromhex(body)


def _decode_int(item, name: str, length: int) -> int:
    if not isinstance(item, bytes):
        raise MalformedEncoding(f"`{name}` is not an RLP string", length=length)
    try:
        return big_endian_int.deserialize(item)
    except RLPException as e:
        raise MalformedEncoding(f"`{name}`: {e}", length=length) from e


def from_raw(rlp_hex: str) -> CanonicalTransaction:
    """
    Decodes a hex encoded EIP-1559 transaction, signed or unsigned, with or
    without the leading ``0x02`` type byte.

    The sender of a signed transaction is recovered from its signature.
    A zero gas limit means the transaction carries no limit.
    """
    raw = _decode_hex(rlp_hex)
    payload = raw[1:] if raw[0] == EIP1559_TX_TYPE else raw
    if not payload:
        raise MalformedEncoding("missing transaction payload", length=len(raw), position=len(raw))

    try:
        fields = rlp.decode(payload, strict=True)
    except RLPException as e:
        raise MalformedEncoding(str(e), length=len(raw)) from e

    if not isinstance(fields, list) or len(fields) not in (UNSIGNED_FIELD_COUNT, SIGNED_FIELD_COUNT):
        count = len(fields) if isinstance(fields, list) else "a string"
        raise MalformedEncoding(
            f"expected {UNSIGNED_FIELD_COUNT} or {SIGNED_FIELD_COUNT} EIP-1559 fields, got {count}",
            length=len(raw),
        )

    _chain_id, nonce, _priority_fee, _max_fee, gas_limit, to, value, data, access_list = fields[:9]
    if not isinstance(to, bytes) or not isinstance(data, bytes) or not isinstance(access_list, list):
        raise MalformedEncoding("unexpected list in EIP-1559 field", length=len(raw))

    sender = None
    if len(fields) == SIGNED_FIELD_COUNT:
        try:
            sender = Account.recover_transaction(bytes([EIP1559_TX_TYPE]) + payload)
        except Exception as e:
            raise MalformedEncoding(f"unrecoverable signature: {e}", length=len(raw)) from e

    gas_limit = _decode_int(gas_limit, "gas_limit", len(raw))
    tx = _build(
        nonce=_decode_int(nonce, "nonce", len(raw)),
        from_=parse_address(sender, "from") if sender is not None else None,
        to=parse_address(to, "to") if to else None,
        value=_decode_int(value, "value", len(raw)),
        gas_limit=gas_limit or None,
        input=data,
    )
    log.debug("RLP_TRANSACTION_DECODED", length=len(raw), signed=sender is not None)
    return tx


def normalize(payload: Any) -> CanonicalTransaction:
    """Dispatches ``{"rlp": "..."}`` to the raw route, anything else to the structured one."""
    if isinstance(payload, Mapping) and "rlp" in payload:
        return from_raw(payload["rlp"])
    return from_structured(payload)
