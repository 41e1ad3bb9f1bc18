from __future__ import annotations
import json
from pathlib import Path

from ...core.compositor import (
    build_runtime_layers,
    composite_layers,
    directory_loader,
    encode_png,
)
from ...core.errors import SchemaError
from ...core.logger import get_logger
from ...core.mod_config import ModConfig, load_settings

log = get_logger(__name__)


def run(args) -> None:
    config = ModConfig(Path(args.config)).load()
    override = config.get_file(args.option, args.suboption, args.path)

    settings = {}
    if args.settings:
        settings_path = Path(args.settings)
        try:
            raw = json.loads(settings_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SchemaError(f"{settings_path}: not valid UTF-8 JSON ({exc})") from exc
        if not isinstance(raw, dict):
            raise SchemaError(f"{settings_path}: expected an object of option ids")
        settings = load_settings(config, raw)

    layers = build_runtime_layers(config, override, settings)
    log.info(f"Resolving {args.path}: {len(layers)} layer(s)")
    result = composite_layers(layers, directory_loader(args.root))

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_bytes(encode_png(result))
    log.info(f"Wrote {result.width}x{result.height} texture: {out_path}")
