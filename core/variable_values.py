# core/variable_values.py
"""
Typed parsing for manifest variables.

Every kind has one parse function that turns an editor-supplied value into a
typed result (or raises VariableParseError), and every result knows its
canonical string encoding, which is what ends up in the live config document.
"""
import json
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Union
from model.variable import VariableConfig, VariableType
from util.errors import VariableParseError

_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_INT_RE = re.compile(r"^[+-]?\d+$")
# Runtime side parses with int.TryParse, i.e. a signed 32-bit range
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


@dataclass(frozen=True)
class IntValue:
    value: int

    def encode(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class FloatValue:
    value: float

    def encode(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class BoolValue:
    value: bool

    def encode(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class StringValue:
    value: str

    def encode(self) -> str:
        return self.value


@dataclass(frozen=True)
class EnumValue:
    value: str

    def encode(self) -> str:
        return self.value


@dataclass(frozen=True)
class Vector3Value:
    x: float
    y: float
    z: float

    def encode(self) -> str:
        # Same shape the runtime's JsonUtility.FromJson<Vector3> expects
        return json.dumps({"x": self.x, "y": self.y, "z": self.z}, separators=(",", ":"))


@dataclass(frozen=True)
class ColorValue:
    hex: str  # "#RRGGBB" or "#RRGGBBAA", uppercase

    def encode(self) -> str:
        return self.hex


VariableValue = Union[
    IntValue, FloatValue, BoolValue, StringValue, EnumValue, Vector3Value, ColorValue
]


def _fail(var: VariableConfig, raw: Any, reason: str) -> VariableParseError:
    return VariableParseError(var.name, var.type.value, raw, reason)


def _check_bounds(var: VariableConfig, raw: Any, n: float) -> None:
    if var.min is not None and n < var.min:
        raise _fail(var, raw, f"below min {var.min:g}")
    if var.max is not None and n > var.max:
        raise _fail(var, raw, f"above max {var.max:g}")


def _parse_int(var: VariableConfig, raw: Any) -> IntValue:
    if isinstance(raw, bool):
        raise _fail(var, raw, "expected an integer")
    if isinstance(raw, int):
        n = raw
    elif isinstance(raw, float) and raw.is_integer():
        n = int(raw)
    elif isinstance(raw, str) and _INT_RE.match(raw.strip()):
        n = int(raw.strip())
    else:
        raise _fail(var, raw, "expected an integer")
    if not INT32_MIN <= n <= INT32_MAX:
        raise _fail(var, raw, "outside the 32-bit integer range")
    _check_bounds(var, raw, n)
    return IntValue(n)


def _parse_float(var: VariableConfig, raw: Any) -> FloatValue:
    if isinstance(raw, bool):
        raise _fail(var, raw, "expected a number")
    try:
        n = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        raise _fail(var, raw, "expected a number")
    if not math.isfinite(n):
        raise _fail(var, raw, "expected a finite number")
    _check_bounds(var, raw, n)
    return FloatValue(n)


def _parse_bool(var: VariableConfig, raw: Any) -> BoolValue:
    if isinstance(raw, bool):
        return BoolValue(raw)
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return BoolValue(raw.strip().lower() == "true")
    raise _fail(var, raw, "expected true or false")


def _parse_string(var: VariableConfig, raw: Any) -> StringValue:
    if not isinstance(raw, str):
        raise _fail(var, raw, "expected a string")
    return StringValue(raw)


def _parse_enum(var: VariableConfig, raw: Any) -> EnumValue:
    if not isinstance(raw, str):
        raise _fail(var, raw, "expected an option name")
    if var.options and raw not in var.options:
        raise _fail(var, raw, "not one of " + ", ".join(var.options))
    return EnumValue(raw)


def _parse_vector3(var: VariableConfig, raw: Any) -> Vector3Value:
    obj = raw
    if isinstance(raw, str):
        try:
            obj = json.loads(raw)
        except json.JSONDecodeError:
            raise _fail(var, raw, 'expected {"x":..,"y":..,"z":..}')
    if not isinstance(obj, dict):
        raise _fail(var, raw, 'expected {"x":..,"y":..,"z":..}')
    coords = []
    for axis in ("x", "y", "z"):
        c = obj.get(axis, 0)
        if isinstance(c, bool) or not isinstance(c, (int, float)):
            raise _fail(var, raw, f"component {axis} is not a number")
        coords.append(float(c))
    return Vector3Value(*coords)


def _parse_color(var: VariableConfig, raw: Any) -> ColorValue:
    if not isinstance(raw, str) or not _COLOR_RE.match(raw.strip()):
        raise _fail(var, raw, "expected #RGB, #RRGGBB or #RRGGBBAA")
    digits = raw.strip()[1:].upper()
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return ColorValue("#" + digits)


_PARSERS: Dict[VariableType, Callable[[VariableConfig, Any], VariableValue]] = {
    VariableType.int: _parse_int,
    VariableType.float: _parse_float,
    VariableType.bool: _parse_bool,
    VariableType.string: _parse_string,
    VariableType.enum: _parse_enum,
    VariableType.vector3: _parse_vector3,
    VariableType.color: _parse_color,
}


def parse_variable_value(var: VariableConfig, raw: Any) -> VariableValue:
    return _PARSERS[var.type](var, raw)


def encode_values(
    variables: Dict[str, VariableConfig], values: Dict[str, Any]
) -> Dict[str, str]:
    """
    Validate a {name: value} map against the declared variables and return the
    canonical wire strings. Unknown names are rejected.
    """
    out: Dict[str, str] = {}
    for name, raw in values.items():
        var = variables.get(name)
        if var is None:
            raise VariableParseError(name, "unknown", raw, "no such variable")
        out[name] = parse_variable_value(var, raw).encode()
    return out
