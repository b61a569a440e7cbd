from __future__ import annotations

import pytest
from pydantic import ValidationError

from cabstore.values import FloatValue, IntValue, MapValue, StringValue, to_value


def test_to_value_converts_plain_python():
    v = to_value({"s": "x", "i": 3, "f": 2.5, "m": {"k": "v"}})
    assert v == MapValue(
        entries={
            "s": StringValue(value="x"),
            "i": IntValue(value=3),
            "f": FloatValue(value=2.5),
            "m": MapValue(entries={"k": StringValue(value="v")}),
        }
    )
    assert v.to_python() == {"s": "x", "i": 3, "f": 2.5, "m": {"k": "v"}}


def test_to_value_passes_models_through():
    s = StringValue(value="x")
    assert to_value(s) is s


@pytest.mark.parametrize("bad", [True, None, [1, 2], b"bytes", {1: "non-str key"}])
def test_to_value_rejects_unsupported(bad):
    with pytest.raises(TypeError):
        to_value(bad)


def test_values_are_frozen():
    v = IntValue(value=1)
    with pytest.raises(ValidationError):
        v.value = 2  # type: ignore[misc]


def test_strict_value_types():
    with pytest.raises(ValidationError):
        IntValue(value="1")  # type: ignore[arg-type]
    with pytest.raises(ValidationError):
        StringValue(value=1)  # type: ignore[arg-type]
