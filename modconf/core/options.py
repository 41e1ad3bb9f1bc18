"""
Option schema and runtime settings.

Options are the configurable knobs a mod exposes. Scalar options (rgb, rgba,
grayscale, opacity, mask) carry a stable ``id`` that user settings are keyed
by. Grouping options (single, multi) offer alternative suboption bundles and
are identified by the chosen suboption instead of an id.

A :data:`ConfSetting` is the value currently selected for a scalar option. Its
``kind`` always equals the ``type`` of the option it came from.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    PlainSerializer,
    PlainValidator,
    model_validator,
)

from .errors import SchemaError
from .file_override import FileOverride, decode_file_override, encode_file_override

__all__ = [
    "Rgb",
    "Rgba",
    "Grayscale",
    "Opacity",
    "Mask",
    "ConfSetting",
    "RgbOption",
    "RgbaOption",
    "GrayscaleOption",
    "OpacityOption",
    "MaskOption",
    "SingleOption",
    "MultiOption",
    "Suboption",
    "ConfOption",
    "GROUP_KINDS",
    "setting_from_value",
    "setting_to_value",
    "ensure_setting_matches",
]

GROUP_KINDS = ("single", "multi")


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rgb:
    value: Tuple[float, float, float]
    kind: ClassVar[str] = "rgb"


@dataclass(frozen=True)
class Rgba:
    value: Tuple[float, float, float, float]
    kind: ClassVar[str] = "rgba"


@dataclass(frozen=True)
class Grayscale:
    value: float
    kind: ClassVar[str] = "grayscale"


@dataclass(frozen=True)
class Opacity:
    value: float
    kind: ClassVar[str] = "opacity"


@dataclass(frozen=True)
class Mask:
    value: float
    kind: ClassVar[str] = "mask"


ConfSetting = Union[Rgb, Rgba, Grayscale, Opacity, Mask]


# ---------------------------------------------------------------------------
# Persisted option schema
# ---------------------------------------------------------------------------

FileOverrideField = Annotated[
    FileOverride,
    PlainValidator(decode_file_override),
    PlainSerializer(encode_file_override),
]

ManipulationCode = Annotated[int, Field(ge=0, le=0xFFFFFFFF)]


class _ScalarOption(BaseModel):
    id: str = Field(..., description="Stable key for persisted user settings")
    name: str
    description: str = ""

    @property
    def option_id(self) -> Optional[str]:
        return self.id


class RgbOption(_ScalarOption):
    type: Literal["rgb"] = "rgb"
    default: Tuple[float, float, float]

    def default_setting(self) -> Rgb:
        return Rgb(tuple(self.default))


class RgbaOption(_ScalarOption):
    type: Literal["rgba"] = "rgba"
    default: Tuple[float, float, float, float]

    def default_setting(self) -> Rgba:
        return Rgba(tuple(self.default))


class GrayscaleOption(_ScalarOption):
    type: Literal["grayscale"] = "grayscale"
    default: float

    def default_setting(self) -> Grayscale:
        return Grayscale(self.default)


class OpacityOption(_ScalarOption):
    type: Literal["opacity"] = "opacity"
    default: float

    def default_setting(self) -> Opacity:
        return Opacity(self.default)


class MaskOption(_ScalarOption):
    type: Literal["mask"] = "mask"
    default: float

    def default_setting(self) -> Mask:
        return Mask(self.default)


class Suboption(BaseModel):
    """A named bundle of overrides offered by a grouping option."""

    name: str
    files: Dict[str, FileOverrideField] = Field(default_factory=dict)
    swaps: Dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("swaps", "FileSwaps"),
    )
    manipulations: List[ManipulationCode] = Field(default_factory=list)


class _GroupOption(BaseModel):
    name: str
    description: str = ""
    options: List[Suboption] = Field(default_factory=list)

    @property
    def option_id(self) -> Optional[str]:
        return None

    def default_setting(self) -> None:
        return None

    def suboption(self, name: str) -> Optional[Suboption]:
        for sub in self.options:
            if sub.name == name:
                return sub
        return None

    @model_validator(mode="after")
    def check_unique_suboption_names(self):
        seen = set()
        for sub in self.options:
            if sub.name in seen:
                raise ValueError(f"duplicate suboption name {sub.name!r} in {self.name!r}")
            seen.add(sub.name)
        return self


class SingleOption(_GroupOption):
    type: Literal["single"] = "single"


class MultiOption(_GroupOption):
    type: Literal["multi"] = "multi"


ConfOption = Annotated[
    Union[
        RgbOption,
        RgbaOption,
        GrayscaleOption,
        OpacityOption,
        MaskOption,
        SingleOption,
        MultiOption,
    ],
    Field(discriminator="type"),
]

_SETTING_TYPES = {
    "rgb": Rgb,
    "rgba": Rgba,
    "grayscale": Grayscale,
    "opacity": Opacity,
    "mask": Mask,
}


# ---------------------------------------------------------------------------
# Setting <-> persisted value
# ---------------------------------------------------------------------------


def _as_float(raw: Any, what: str) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        raise SchemaError(f"{what}: expected a number, got {raw!r}")
    return float(raw)


def _as_floats(raw: Any, count: int, what: str) -> Tuple[float, ...]:
    if not isinstance(raw, (list, tuple)) or len(raw) != count:
        raise SchemaError(f"{what}: expected a list of {count} numbers, got {raw!r}")
    return tuple(_as_float(v, what) for v in raw)


def setting_from_value(option: Any, raw: Any) -> ConfSetting:
    """Parse a persisted user value for *option* into a :data:`ConfSetting`."""
    kind = option.type
    if kind not in _SETTING_TYPES:
        raise TypeError(f"option {option.name!r} of type {kind!r} has no setting value")
    what = f"setting for {option.name!r}"
    if kind == "rgb":
        return Rgb(_as_floats(raw, 3, what))
    if kind == "rgba":
        return Rgba(_as_floats(raw, 4, what))
    return _SETTING_TYPES[kind](_as_float(raw, what))


def setting_to_value(setting: ConfSetting) -> Union[float, List[float]]:
    if isinstance(setting.value, tuple):
        return list(setting.value)
    return setting.value


def ensure_setting_matches(option: Any, setting: ConfSetting) -> None:
    """Raise ``TypeError`` when *setting* was not produced for an option of this type."""
    if setting.kind != option.type:
        raise TypeError(
            f"setting of kind {setting.kind!r} does not belong to {option.type!r} option {option.name!r}"
        )

