"""
Layer compositor.

Turns a resolved :class:`RuntimeLayer` (a setting plus its source paths) into
an RGBA8 pixel buffer. Source bytes come from a caller supplied loader and are
decoded by an injectable decoder (Pillow by default), so nothing in here
touches the filesystem or network.

Channel arithmetic runs in float32 over the 0-255 byte domain and is truncated
toward zero on the way back to bytes. Out of range results saturate.
"""

from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, NamedTuple, Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DimensionMismatch, SchemaError, SourceUnavailable
from .file_override import FileOverride
from .logger import get_logger
from .options import (
    ConfSetting,
    Grayscale,
    Mask,
    Opacity,
    Rgb,
    Rgba,
    ensure_setting_matches,
)

log = get_logger(__name__)

__all__ = [
    "PixelBuffer",
    "RuntimeLayer",
    "Loader",
    "Decoder",
    "decode_image",
    "encode_png",
    "resolve_layer",
    "try_resolve_layer",
    "build_runtime_layers",
    "composite_layers",
    "directory_loader",
]

R, G, B, A = 0, 1, 2, 3


class PixelBuffer(NamedTuple):
    """Decoded image: ``width * height`` RGBA8 pixels, row-major."""

    width: int
    height: int
    data: bytes

    @property
    def size(self):
        return (self.width, self.height)

    def to_array(self) -> np.ndarray:
        return np.frombuffer(self.data, dtype=np.uint8).reshape(self.height, self.width, 4).copy()

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "PixelBuffer":
        height, width = pixels.shape[:2]
        return cls(width, height, np.ascontiguousarray(pixels, dtype=np.uint8).tobytes())

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGBA", self.size, self.data)

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        img = img.convert("RGBA")
        return cls(img.width, img.height, img.tobytes())


class RuntimeLayer(NamedTuple):
    value: Optional[ConfSetting]
    files: List[str]


Loader = Callable[[str], Optional[bytes]]
Decoder = Callable[[bytes], PixelBuffer]


def decode_image(data: bytes) -> PixelBuffer:
    """Decode any Pillow-readable image into RGBA8."""
    try:
        with Image.open(BytesIO(data)) as img:
            return PixelBuffer.from_image(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise SchemaError(f"could not decode image data: {exc}") from exc


def encode_png(buffer: PixelBuffer) -> bytes:
    buf = BytesIO()
    buffer.to_image().save(buf, format="PNG")
    return buf.getvalue()


def _scale(channel: np.ndarray, factor: float) -> np.ndarray:
    """Multiply a uint8 channel by *factor* in float32, truncating back to uint8."""
    out = channel.astype(np.float32) * np.float32(factor)
    # Saturating float -> u8: NaN and negatives become 0, overflow becomes 255.
    out = np.nan_to_num(out, nan=0.0, posinf=255.0, neginf=0.0)
    return np.clip(out, 0, 255).astype(np.uint8)


def _mask_threshold(value: float) -> int:
    t = np.float32(value) * np.float32(255)
    if np.isnan(t) or t <= 0:
        return 0
    return int(min(t, 255))


def _required_paths(setting: Optional[ConfSetting]) -> int:
    return 2 if isinstance(setting, Mask) else 1


def _load(path: str, load: Loader, decode: Decoder) -> PixelBuffer:
    data = load(path)
    if data is None:
        raise SourceUnavailable(path)
    return decode(data)


def resolve_layer(
    layer: RuntimeLayer,
    load: Loader,
    decode: Decoder = decode_image,
) -> PixelBuffer:
    """Load the layer's source image(s) and apply its setting.

    Raises :class:`SourceUnavailable` when the loader has nothing for a path,
    :class:`DimensionMismatch` when a mask does not match its primary image and
    :class:`SchemaError` when the layer lists too few paths for its setting.
    """
    setting = layer.value
    needed = _required_paths(setting)
    if len(layer.files) < needed:
        kind = setting.kind if setting is not None else "plain"
        raise SchemaError(
            f"{kind} layer needs {needed} path(s), got {len(layer.files)}"
        )

    primary = _load(layer.files[0], load, decode)
    if setting is None:
        return primary

    pixels = primary.to_array()

    if isinstance(setting, (Rgb, Rgba)):
        pixels[..., B] = _scale(pixels[..., B], setting.value[2])
        pixels[..., G] = _scale(pixels[..., G], setting.value[1])
        pixels[..., R] = _scale(pixels[..., R], setting.value[0])
        if isinstance(setting, Rgba):
            # Alpha derives from the already tinted red channel, not the source alpha.
            pixels[..., A] = _scale(pixels[..., R], setting.value[3])
    elif isinstance(setting, Grayscale):
        for channel in (B, G, R):
            pixels[..., channel] = _scale(pixels[..., channel], setting.value)
    elif isinstance(setting, Opacity):
        pixels[..., A] = _scale(pixels[..., A], setting.value)
    elif isinstance(setting, Mask):
        threshold = _mask_threshold(setting.value)
        mask = _load(layer.files[1], load, decode)
        if mask.size != primary.size:
            raise DimensionMismatch(primary.size, mask.size)
        mask_red = mask.to_array()[..., R]
        pixels[..., A] = np.where(mask_red <= threshold, pixels[..., A], 0)
    else:
        raise TypeError(f"unsupported setting {setting!r}")

    log.debug(f"[COMPOSITE] {setting.kind} applied to {layer.files[0]} ({primary.width}x{primary.height})")
    return PixelBuffer.from_array(pixels)


def try_resolve_layer(
    layer: RuntimeLayer,
    load: Loader,
    decode: Decoder = decode_image,
) -> Optional[PixelBuffer]:
    """Like :func:`resolve_layer` but returns ``None`` for unavailable sources."""
    try:
        return resolve_layer(layer, load, decode)
    except SourceUnavailable as exc:
        log.debug(f"[COMPOSITE] {exc}")
        return None


def build_runtime_layers(
    config,
    override: FileOverride,
    settings: Optional[Mapping[str, ConfSetting]] = None,
) -> List[RuntimeLayer]:
    """Pair each layer of *override* with the setting of the option its id names.

    Layers whose id does not name a scalar option in *config* resolve with no
    setting. Missing user settings fall back to the option default.
    """
    settings = settings or {}
    layers: List[RuntimeLayer] = []
    for file_layer in override.layers:
        value: Optional[ConfSetting] = None
        opt = config.option_by_id(file_layer.id) if file_layer.id is not None else None
        if opt is not None:
            if file_layer.id in settings:
                value = settings[file_layer.id]
                ensure_setting_matches(opt, value)
            else:
                value = opt.default_setting()
        layers.append(RuntimeLayer(value, list(file_layer.paths)))
    return layers


def composite_layers(
    layers: Iterable[RuntimeLayer],
    load: Loader,
    decode: Decoder = decode_image,
) -> PixelBuffer:
    """Resolve *layers* in order and stack them bottom-up with alpha compositing.

    Unavailable layers are skipped. Every resolved layer must have the same
    dimensions as the first one.
    """
    base: Optional[Image.Image] = None
    for index, layer in enumerate(layers):
        resolved = try_resolve_layer(layer, load, decode)
        if resolved is None:
            log.warning(f"[COMPOSITE] skipping layer {index}: source unavailable ({', '.join(layer.files)})")
            continue
        img = resolved.to_image()
        if base is None:
            base = img
            continue
        if img.size != base.size:
            raise DimensionMismatch(base.size, img.size)
        base = Image.alpha_composite(base, img)

    if base is None:
        raise SourceUnavailable("no layer could be resolved")
    return PixelBuffer.from_image(base)


def directory_loader(root: Union[str, Path]) -> Loader:
    """Build a loader that reads game paths relative to *root*.

    Paths that do not exist or that point outside *root* load as ``None``.
    """
    root_path = Path(root).resolve()

    def load(path: str) -> Optional[bytes]:
        target = (root_path / path).resolve()
        if root_path not in target.parents or not target.is_file():
            return None
        return target.read_bytes()

    return load
