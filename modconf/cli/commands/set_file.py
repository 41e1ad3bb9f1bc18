from __future__ import annotations
import json
from pathlib import Path

from ...core.errors import SchemaError
from ...core.file_override import FileLayer, FileOverride, decode_file_override
from ...core.logger import get_logger
from ...core.mod_config import ModConfig

log = get_logger(__name__)


def _override_from_args(args):
    if args.remove:
        return None
    if args.file:
        return FileOverride([FileLayer(id=None, paths=list(args.file))])
    try:
        raw = json.loads(args.layers)
    except json.JSONDecodeError as exc:
        raise SchemaError(f"--layers is not valid JSON: {exc}") from exc
    return decode_file_override(raw)


def run(args) -> None:
    store = ModConfig(Path(args.config))
    config = store.load()
    override = _override_from_args(args)
    config.update_file(args.option, args.suboption, args.path, override)
    store.save()
    action = "Removed" if override is None else "Updated"
    log.info(f"{action} override for {args.path}")
