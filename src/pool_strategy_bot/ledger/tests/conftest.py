"""Fixtures for ledger tests."""
from unittest.mock import patch

import cbor2
import pytest


def _as_tuples(value):
    """Reshape decoded arrays the way cbor2 6.x returns them."""
    if isinstance(value, cbor2.CBORTag):
        return cbor2.CBORTag(value.tag, _as_tuples(value.value))
    if isinstance(value, list):
        return tuple(_as_tuples(item) for item in value)
    if isinstance(value, dict):
        return {k: _as_tuples(v) for k, v in value.items()}
    return value


@pytest.fixture
def tuple_arrays():
    """Make cbor2.loads hand back arrays as tuples."""
    real_loads = cbor2.loads
    with patch.object(cbor2, "loads", side_effect=lambda raw: _as_tuples(real_loads(raw))):
        yield
