from __future__ import annotations

from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr


class _ValueBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class StringValue(_ValueBase):
    kind: Literal["string"] = "string"
    value: StrictStr

    def to_python(self) -> str:
        return self.value


class IntValue(_ValueBase):
    kind: Literal["int"] = "int"
    value: StrictInt

    def to_python(self) -> int:
        return self.value


class FloatValue(_ValueBase):
    kind: Literal["float"] = "float"
    value: StrictFloat

    def to_python(self) -> float:
        return self.value


class MapValue(_ValueBase):
    """
    A nested mapping. Each MapValue exclusively owns its entries: the value
    tree has no shared sub-structure and no cycles.
    """

    kind: Literal["map"] = "map"
    entries: dict[str, Value] = Field(default_factory=dict)

    def to_python(self) -> dict[str, Any]:
        return {k: v.to_python() for k, v in self.entries.items()}


Value = Annotated[
    Union[StringValue, IntValue, FloatValue, MapValue],
    Field(discriminator="kind"),
]

# The in-memory dictionary mirrored to disk.
Entries = dict[str, Value]

MapValue.model_rebuild()


def to_value(obj: Any) -> Value:
    """
    Convert a plain Python object into a Value.

    Accepts str, int, float and string-keyed mappings of those (recursively).
    Values that are already Value models pass through unchanged.
    """
    if isinstance(obj, (StringValue, IntValue, FloatValue, MapValue)):
        return obj
    # bool is an int subclass; it has no place in the variant
    if isinstance(obj, bool):
        raise TypeError("bool is not a storable value")
    if isinstance(obj, str):
        return StringValue(value=obj)
    if isinstance(obj, int):
        return IntValue(value=obj)
    if isinstance(obj, float):
        return FloatValue(value=obj)
    if isinstance(obj, Mapping):
        entries: dict[str, Value] = {}
        for k, v in obj.items():
            if not isinstance(k, str):
                raise TypeError(f"map keys must be str, got {type(k).__name__}")
            entries[k] = to_value(v)
        return MapValue(entries=entries)
    raise TypeError(f"{type(obj).__name__} is not a storable value")
