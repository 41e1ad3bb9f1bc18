"""
modconf

Resolves user-editable mod configurations into file overrides and composited
texture output.
"""

from .core.compositor import (
    PixelBuffer,
    RuntimeLayer,
    build_runtime_layers,
    composite_layers,
    resolve_layer,
    try_resolve_layer,
)
from .core.errors import (
    ConfigLookupError,
    DimensionMismatch,
    ModConfError,
    SchemaError,
    SourceUnavailable,
)
from .core.file_override import FileLayer, FileOverride, decode_file_override, encode_file_override
from .core.mod_config import Config, ModConfig, dump_config, load_config, load_settings
from .core.options import Grayscale, Mask, Opacity, Rgb, Rgba

__all__ = [
    "PixelBuffer",
    "RuntimeLayer",
    "build_runtime_layers",
    "composite_layers",
    "resolve_layer",
    "try_resolve_layer",
    "ConfigLookupError",
    "DimensionMismatch",
    "ModConfError",
    "SchemaError",
    "SourceUnavailable",
    "FileLayer",
    "FileOverride",
    "decode_file_override",
    "encode_file_override",
    "Config",
    "ModConfig",
    "dump_config",
    "load_config",
    "load_settings",
    "Grayscale",
    "Mask",
    "Opacity",
    "Rgb",
    "Rgba",
]
