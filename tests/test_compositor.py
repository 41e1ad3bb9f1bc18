"""Tests for layer resolution and compositing."""

from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image

from modconf.core.compositor import (
    PixelBuffer,
    RuntimeLayer,
    build_runtime_layers,
    composite_layers,
    decode_image,
    directory_loader,
    encode_png,
    resolve_layer,
    try_resolve_layer,
)
from modconf.core.errors import DimensionMismatch, SchemaError, SourceUnavailable
from modconf.core.file_override import decode_file_override
from modconf.core.mod_config import load_config
from modconf.core.options import Grayscale, Mask, Opacity, Rgb, Rgba


def png(pixels, width=None, height=1):
    """Encode a row (or ``width`` x ``height`` grid) of RGBA tuples as PNG bytes."""
    width = width or len(pixels)
    img = Image.new("RGBA", (width, height))
    img.putdata(pixels)
    buf = BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def pixels_of(buffer: PixelBuffer):
    data = buffer.data
    return [tuple(data[i:i + 4]) for i in range(0, len(data), 4)]


def loader(files):
    return files.get


class TestResolveLayer:
    def test_no_setting_returns_source_unmodified(self):
        files = {"a.png": png([(1, 2, 3, 4), (250, 128, 0, 255)])}
        result = resolve_layer(RuntimeLayer(None, ["a.png"]), loader(files))
        assert (result.width, result.height) == (2, 1)
        assert pixels_of(result) == [(1, 2, 3, 4), (250, 128, 0, 255)]

    def test_opacity_truncates_alpha_only(self):
        files = {"a.png": png([(255, 255, 255, 200)])}
        result = resolve_layer(RuntimeLayer(Opacity(0.5), ["a.png"]), loader(files))
        assert pixels_of(result) == [(255, 255, 255, 100)]

    def test_rgb_truncates_instead_of_rounding(self):
        files = {"a.png": png([(10, 20, 200, 77)])}
        result = resolve_layer(RuntimeLayer(Rgb((1.0, 1.0, 0.503)), ["a.png"]), loader(files))
        assert pixels_of(result) == [(10, 20, 100, 77)]

    def test_rgb_scales_each_channel(self):
        files = {"a.png": png([(200, 100, 50, 33)])}
        result = resolve_layer(RuntimeLayer(Rgb((0.5, 0.25, 0.1)), ["a.png"]), loader(files))
        assert pixels_of(result) == [(100, 25, 5, 33)]

    def test_rgba_alpha_comes_from_tinted_red(self):
        files = {"a.png": png([(200, 10, 20, 255)])}
        layer = RuntimeLayer(Rgba((0.5, 1.0, 1.0, 0.5)), ["a.png"])
        result = resolve_layer(layer, loader(files))
        assert pixels_of(result) == [(100, 10, 20, 50)]

    def test_grayscale_scales_colour_channels(self):
        files = {"a.png": png([(101, 51, 11, 77)])}
        result = resolve_layer(RuntimeLayer(Grayscale(0.5), ["a.png"]), loader(files))
        assert pixels_of(result) == [(50, 25, 5, 77)]

    def test_results_saturate(self):
        files = {"a.png": png([(100, 100, 100, 200)])}
        boosted = resolve_layer(RuntimeLayer(Opacity(2.0), ["a.png"]), loader(files))
        assert pixels_of(boosted) == [(100, 100, 100, 255)]
        negative = resolve_layer(RuntimeLayer(Grayscale(-1.0), ["a.png"]), loader(files))
        assert pixels_of(negative) == [(0, 0, 0, 200)]

    def test_mask_threshold_is_a_hard_cutoff(self):
        files = {
            "base.png": png([(9, 9, 9, 200), (9, 9, 9, 200), (9, 9, 9, 200)]),
            "mask.png": png([(100, 0, 0, 255), (200, 0, 0, 255), (127, 0, 0, 255)]),
        }
        layer = RuntimeLayer(Mask(0.5), ["base.png", "mask.png"])
        result = resolve_layer(layer, loader(files))
        assert pixels_of(result) == [(9, 9, 9, 200), (9, 9, 9, 0), (9, 9, 9, 200)]

    def test_mask_dimension_mismatch(self):
        files = {
            "base.png": png([(0, 0, 0, 255)] * 4, width=2, height=2),
            "mask.png": png([(0, 0, 0, 255)]),
        }
        layer = RuntimeLayer(Mask(0.5), ["base.png", "mask.png"])
        with pytest.raises(DimensionMismatch) as exc_info:
            resolve_layer(layer, loader(files))
        assert exc_info.value.expected == (2, 2)
        assert exc_info.value.actual == (1, 1)

    def test_mask_same_pixel_count_different_shape(self):
        files = {
            "base.png": png([(0, 0, 0, 255)] * 16, width=4, height=4),
            "mask.png": png([(0, 0, 0, 255)] * 16, width=2, height=8),
        }
        layer = RuntimeLayer(Mask(0.5), ["base.png", "mask.png"])
        with pytest.raises(DimensionMismatch) as exc_info:
            resolve_layer(layer, loader(files))
        assert exc_info.value.expected == (4, 4)
        assert exc_info.value.actual == (2, 8)

    def test_mask_needs_two_paths(self):
        files = {"base.png": png([(0, 0, 0, 255)])}
        with pytest.raises(SchemaError):
            resolve_layer(RuntimeLayer(Mask(0.5), ["base.png"]), loader(files))

    def test_missing_primary_is_source_unavailable(self):
        with pytest.raises(SourceUnavailable) as exc_info:
            resolve_layer(RuntimeLayer(Opacity(0.5), ["gone.png"]), loader({}))
        assert exc_info.value.path == "gone.png"

    def test_missing_mask_is_source_unavailable(self):
        files = {"base.png": png([(0, 0, 0, 255)])}
        with pytest.raises(SourceUnavailable):
            resolve_layer(RuntimeLayer(Mask(1.0), ["base.png", "mask.png"]), loader(files))

    def test_try_resolve_returns_none_when_unavailable(self):
        assert try_resolve_layer(RuntimeLayer(None, ["gone.png"]), loader({})) is None

    def test_custom_decoder_is_used(self):
        def decode(data: bytes) -> PixelBuffer:
            return PixelBuffer(1, 1, bytes([10, 20, 30, 40]))

        result = resolve_layer(RuntimeLayer(Opacity(0.5), ["raw.tex"]), loader({"raw.tex": b"x"}), decode)
        assert pixels_of(result) == [(10, 20, 30, 20)]


def test_decode_rejects_garbage():
    with pytest.raises(SchemaError):
        decode_image(b"definitely not an image")


def test_decode_rejects_oversized_image(monkeypatch):
    data = png([(0, 0, 0, 255)] * 100, width=10, height=10)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    with pytest.raises(SchemaError):
        decode_image(data)


def test_encode_png_decodes_back():
    buffer = PixelBuffer(2, 1, bytes([1, 2, 3, 4, 5, 6, 7, 8]))
    assert decode_image(encode_png(buffer)) == buffer


class TestRuntimeLayers:
    def _config(self):
        return load_config(
            {
                "options": [
                    {"type": "opacity", "id": "fade", "name": "Fade", "default": 0.5},
                    {"type": "rgb", "id": "tint", "name": "Tint", "default": [1, 1, 1]},
                ]
            }
        )

    def test_layers_pick_up_settings_and_defaults(self):
        override = decode_file_override(
            [["fade", "a.png"], ["tint", "b.png"], [None, "c.png", "d.png"], ["unknown", "e.png"]]
        )
        layers = build_runtime_layers(self._config(), override, {"tint": Rgb((0.5, 0.5, 0.5))})
        assert layers == [
            RuntimeLayer(Opacity(0.5), ["a.png"]),
            RuntimeLayer(Rgb((0.5, 0.5, 0.5)), ["b.png"]),
            RuntimeLayer(None, ["c.png", "d.png"]),
            RuntimeLayer(None, ["e.png"]),
        ]

    def test_mismatched_setting_is_rejected(self):
        override = decode_file_override([["fade", "a.png"]])
        with pytest.raises(TypeError):
            build_runtime_layers(self._config(), override, {"fade": Rgb((1, 1, 1))})


class TestCompositeLayers:
    def test_layers_stack_bottom_up(self):
        files = {
            "bottom.png": png([(255, 0, 0, 255), (255, 0, 0, 255)]),
            "top.png": png([(0, 0, 255, 255), (0, 0, 255, 0)]),
        }
        layers = [RuntimeLayer(None, ["bottom.png"]), RuntimeLayer(None, ["top.png"])]
        result = composite_layers(layers, loader(files))
        assert pixels_of(result) == [(0, 0, 255, 255), (255, 0, 0, 255)]

    def test_unavailable_layers_are_skipped(self):
        files = {"bottom.png": png([(1, 2, 3, 255)])}
        layers = [RuntimeLayer(None, ["bottom.png"]), RuntimeLayer(Opacity(1.0), ["gone.png"])]
        result = composite_layers(layers, loader(files))
        assert pixels_of(result) == [(1, 2, 3, 255)]

    def test_nothing_available(self):
        with pytest.raises(SourceUnavailable):
            composite_layers([RuntimeLayer(None, ["gone.png"])], loader({}))

    def test_size_mismatch_between_layers(self):
        files = {
            "a.png": png([(0, 0, 0, 255)]),
            "b.png": png([(0, 0, 0, 255)] * 2),
        }
        layers = [RuntimeLayer(None, ["a.png"]), RuntimeLayer(None, ["b.png"])]
        with pytest.raises(DimensionMismatch):
            composite_layers(layers, loader(files))


def test_directory_loader(tmp_path: Path):
    root = tmp_path / "mod"
    (root / "tex").mkdir(parents=True)
    (root / "tex" / "a.png").write_bytes(b"abc")
    (tmp_path / "secret.png").write_bytes(b"nope")

    load = directory_loader(root)
    assert load("tex/a.png") == b"abc"
    assert load("tex/missing.png") is None
    assert load("../secret.png") is None
    assert load("tex") is None
