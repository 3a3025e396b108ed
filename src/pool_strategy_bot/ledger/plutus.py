"""
Plutus data encoding over CBOR.

Plutus data is a small algebra: constructors (tagged alternatives with
fields), lists, maps, integers and byte strings. On the wire it is CBOR with
a few conventions that must be matched byte for byte, because the relay and
the on-chain validator check signatures over the encoded bytes:

- Constructor i in 0..6 is tag 121+i, 7..127 is tag 1280+(i-7), anything
  else is tag 102 wrapping [i, fields].
- Non-empty lists (including constructor fields) use indefinite-length
  arrays; empty lists use the definite empty array 0x80.
- Byte strings longer than 64 bytes are split into 64-byte chunks inside an
  indefinite-length byte string.

cbor2 does the primitive encoding; this module only adds the conventions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import cbor2

CHUNK_SIZE = 64

_SMALL_CONSTR_BASE = 121
_LARGE_CONSTR_BASE = 1280
_GENERAL_CONSTR_TAG = 102


class PlutusDecodeError(ValueError):
    """Raised when CBOR does not describe valid Plutus data."""

    pass


@dataclass(frozen=True)
class Constr:
    """A constructor application: alternative index plus positional fields."""

    index: int
    fields: list[Any] = field(default_factory=list)


PlutusData = Union[Constr, int, bytes, list, dict]


class _IndefiniteList:
    """Marker so the cbor2 default hook writes an indefinite-length array."""

    def __init__(self, items: list[Any]) -> None:
        self.items = items


class _ChunkedBytes:
    """Marker so the cbor2 default hook writes a chunked byte string."""

    def __init__(self, value: bytes) -> None:
        self.value = value


def _prepare(data: Any) -> Any:
    """Convert Plutus data into objects cbor2 can encode with our hook."""
    if isinstance(data, Constr):
        fields = _prepare_list(data.fields)
        if 0 <= data.index <= 6:
            return cbor2.CBORTag(_SMALL_CONSTR_BASE + data.index, fields)
        if 7 <= data.index <= 127:
            return cbor2.CBORTag(_LARGE_CONSTR_BASE + data.index - 7, fields)
        return cbor2.CBORTag(_GENERAL_CONSTR_TAG, [data.index, fields])
    if isinstance(data, bool):
        raise TypeError("Booleans are not Plutus data; encode them as Constr")
    if isinstance(data, int):
        return data
    if isinstance(data, (bytes, bytearray)):
        value = bytes(data)
        if len(value) > CHUNK_SIZE:
            return _ChunkedBytes(value)
        return value
    if isinstance(data, (list, tuple)):
        return _prepare_list(list(data))
    if isinstance(data, dict):
        return {_prepare(k): _prepare(v) for k, v in data.items()}
    raise TypeError(f"Cannot encode {type(data).__name__} as Plutus data")


def _prepare_list(items: list[Any]) -> Any:
    prepared = [_prepare(item) for item in items]
    if not prepared:
        return []
    return _IndefiniteList(prepared)


def _default_encoder(encoder: cbor2.CBOREncoder, value: Any) -> None:
    if isinstance(value, _IndefiniteList):
        encoder.write(b"\x9f")
        for item in value.items:
            encoder.encode(item)
        encoder.write(b"\xff")
    elif isinstance(value, _ChunkedBytes):
        encoder.write(b"\x5f")
        for start in range(0, len(value.value), CHUNK_SIZE):
            encoder.encode(value.value[start:start + CHUNK_SIZE])
        encoder.write(b"\xff")
    else:
        raise cbor2.CBOREncodeError(f"Cannot serialize {type(value).__name__}")


def encode(data: PlutusData) -> bytes:
    """Encode Plutus data to canonical CBOR bytes."""
    return cbor2.dumps(_prepare(data), default=_default_encoder)


def _from_cbor(value: Any) -> PlutusData:
    if isinstance(value, cbor2.CBORTag):
        tag = value.tag
        if _SMALL_CONSTR_BASE <= tag <= _SMALL_CONSTR_BASE + 6:
            return Constr(tag - _SMALL_CONSTR_BASE, _fields(value.value))
        if _LARGE_CONSTR_BASE <= tag <= _LARGE_CONSTR_BASE + 120:
            return Constr(tag - _LARGE_CONSTR_BASE + 7, _fields(value.value))
        if tag == _GENERAL_CONSTR_TAG:
            if not isinstance(value.value, (list, tuple)) or len(value.value) != 2:
                raise PlutusDecodeError("Tag 102 must wrap [index, fields]")
            index, fields = value.value
            if not isinstance(index, int):
                raise PlutusDecodeError("Constructor index must be an integer")
            return Constr(index, _fields(fields))
        raise PlutusDecodeError(f"Unexpected CBOR tag {tag}")
    if isinstance(value, bool) or value is None:
        raise PlutusDecodeError(f"Unexpected CBOR simple value {value!r}")
    if isinstance(value, (int, bytes)):
        return value
    if isinstance(value, (list, tuple)):
        return [_from_cbor(item) for item in value]
    if isinstance(value, dict):
        return {_from_cbor(k): _from_cbor(v) for k, v in value.items()}
    raise PlutusDecodeError(f"Unexpected CBOR value of type {type(value).__name__}")


def _fields(value: Any) -> list[PlutusData]:
    if not isinstance(value, (list, tuple)):
        raise PlutusDecodeError("Constructor fields must be a list")
    return [_from_cbor(item) for item in value]


def decode(raw: bytes) -> PlutusData:
    """
    Decode CBOR bytes into Plutus data.

    Raises:
        PlutusDecodeError: If the bytes are not valid CBOR Plutus data
    """
    try:
        value = cbor2.loads(raw)
    except (cbor2.CBORDecodeError, ValueError, TypeError, EOFError) as e:
        raise PlutusDecodeError(f"Invalid CBOR: {e}") from e
    return _from_cbor(value)
