"""
File override codec.

A file override maps one logical game path to an ordered stack of layers.
Each layer lists one or more source paths and may carry an id that ties it
to a configurable option.

Two wire shapes are accepted on decode:

- Simple:  ``"mod/a.tex"`` (one layer, no id, one path)
- Complex: ``[["baseId", "a.tex"], [null, "b.tex", "c.tex"]]``

Encoding always emits the complex shape, so a simple value is upgraded the
first time it is written back.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .errors import SchemaError

__all__ = [
    "FileLayer",
    "FileOverride",
    "decode_file_override",
    "encode_file_override",
]


@dataclass
class FileLayer:
    """One step of an override stack."""

    id: Optional[str] = None
    paths: List[str] = field(default_factory=list)


@dataclass
class FileOverride:
    """Ordered stack of :class:`FileLayer` entries for a single game path."""

    layers: List[FileLayer] = field(default_factory=list)

    @classmethod
    def single(cls, path: str, *, layer_id: Optional[str] = None) -> "FileOverride":
        return cls([FileLayer(id=layer_id, paths=[path])])

    def __iter__(self):
        return iter(self.layers)

    def __len__(self) -> int:
        return len(self.layers)


def _decode_layer(entry: Any, index: int) -> FileLayer:
    if not isinstance(entry, list):
        raise SchemaError(f"layer {index}: expected a list, got {type(entry).__name__}")
    if not entry:
        raise SchemaError(f"layer {index}: empty layer entry")

    layer_id = entry[0]
    if layer_id is not None and not isinstance(layer_id, str):
        raise SchemaError(f"layer {index}: id must be a string or null")

    paths: List[str] = []
    for pos, path in enumerate(entry[1:], start=1):
        if not isinstance(path, str):
            raise SchemaError(f"layer {index}: path at position {pos} must be a string")
        paths.append(path)
    return FileLayer(id=layer_id, paths=paths)


def decode_file_override(raw: Any) -> FileOverride:
    """Decode either wire shape into a :class:`FileOverride`."""
    if isinstance(raw, FileOverride):
        return raw
    if isinstance(raw, str):
        return FileOverride([FileLayer(id=None, paths=[raw])])
    if isinstance(raw, list):
        return FileOverride([_decode_layer(entry, i) for i, entry in enumerate(raw)])
    raise SchemaError(
        f"file override must be a string or a list of lists, got {type(raw).__name__}"
    )


def encode_file_override(value: FileOverride) -> List[List[Optional[str]]]:
    """Encode to the complex wire shape, one ``[id, path, ...]`` list per layer."""
    out: List[List[Optional[str]]] = []
    for layer in value.layers:
        entry: List[Optional[str]] = [layer.id]
        entry.extend(layer.paths)
        out.append(entry)
    return out
