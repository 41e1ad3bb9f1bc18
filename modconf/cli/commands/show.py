from __future__ import annotations
from pathlib import Path

from ...core.logger import get_logger
from ...core.mod_config import ModConfig

log = get_logger(__name__)


def run(args) -> None:
    config = ModConfig(Path(args.config)).load()
    log.info(f"{len(config.files)} top-level override(s), {len(config.swaps)} swap(s)")
    for opt in config.options:
        if opt.option_id is not None:
            log.info(f"  [{opt.type}] {opt.name} (id={opt.option_id}, default={opt.default})")
            continue
        log.info(f"  [{opt.type}] {opt.name}")
        for sub in opt.options:
            log.info(f"    - {sub.name}: {len(sub.files)} override(s), {len(sub.swaps)} swap(s)")
