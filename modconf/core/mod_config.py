from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigLookupError, SchemaError
from .file_override import FileOverride
from .logger import get_logger
from .options import (
    GROUP_KINDS,
    ConfOption,
    ConfSetting,
    FileOverrideField,
    ManipulationCode,
    setting_from_value,
)

log = get_logger(__name__)

__all__ = [
    "Config",
    "ModConfig",
    "load_config",
    "dump_config",
    "load_settings",
]


class Config(BaseModel):
    """Top-level mod descriptor.

    ``files``/``swaps``/``manipulations`` at this level apply when no option is
    selected. Grouping options hold their own per-suboption copies.
    """

    options: List[ConfOption] = Field(default_factory=list)
    files: Dict[str, FileOverrideField] = Field(default_factory=dict)
    swaps: Dict[str, str] = Field(default_factory=dict)
    manipulations: List[ManipulationCode] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_option_names(self):
        seen = set()
        for opt in self.options:
            if opt.name in seen:
                raise ValueError(f"duplicate option name {opt.name!r}")
            seen.add(opt.name)
        return self

    def option(self, name: str):
        for opt in self.options:
            if opt.name == name:
                return opt
        raise ConfigLookupError(f"unknown option {name!r}")

    def option_by_id(self, option_id: str):
        for opt in self.options:
            if opt.option_id is not None and opt.option_id == option_id:
                return opt
        return None

    def files_for(self, option_name: str, suboption_name: str) -> Dict[str, FileOverride]:
        """Return the path->override mapping addressed by an option/suboption pair.

        An empty option name addresses the top-level ``files``. Anything else
        must name a single/multi option and one of its suboptions.
        """
        if option_name == "":
            return self.files

        opt = self.option(option_name)
        if opt.type not in GROUP_KINDS:
            raise ConfigLookupError(
                f"option {option_name!r} is a {opt.type} option and has no suboptions"
            )
        sub = opt.suboption(suboption_name)
        if sub is None:
            raise ConfigLookupError(
                f"unknown suboption {suboption_name!r} in option {option_name!r}"
            )
        return sub.files

    def get_file(self, option_name: str, suboption_name: str, path: str) -> FileOverride:
        files = self.files_for(option_name, suboption_name)
        try:
            return files[path]
        except KeyError:
            raise ConfigLookupError(f"no override for {path!r}") from None

    def update_file(
        self,
        option_name: str,
        suboption_name: str,
        path: str,
        new_override: Optional[FileOverride],
    ) -> None:
        """Insert, replace or remove the override for *path* in the addressed scope."""
        files = self.files_for(option_name, suboption_name)
        scope = f"{option_name}/{suboption_name}" if option_name else "<root>"
        if new_override is not None:
            files[path] = new_override
            log.debug(f"[CONFIG] set {path} in {scope} ({len(new_override)} layer(s))")
        elif files.pop(path, None) is not None:
            log.debug(f"[CONFIG] removed {path} from {scope}")


def load_config(data: Mapping[str, Any]) -> Config:
    """Validate a descriptor mapping, reporting malformed data as :class:`SchemaError`."""
    try:
        return Config.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(f"invalid mod config: {exc}") from exc


def dump_config(config: Config) -> Dict[str, Any]:
    return config.model_dump(mode="json")


def load_settings(config: Config, values: Mapping[str, Any]) -> Dict[str, ConfSetting]:
    """Parse persisted ``{option_id: value}`` user settings against *config*."""
    settings: Dict[str, ConfSetting] = {}
    for option_id, raw in values.items():
        opt = config.option_by_id(option_id)
        if opt is None:
            raise ConfigLookupError(f"no option with id {option_id!r}")
        settings[option_id] = setting_from_value(opt, raw)
    return settings


class ModConfig:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.model: Optional[Config] = None

    def load(self) -> Config:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise SchemaError(f"{self.path}: not valid UTF-8 JSON ({exc})") from exc
        self.model = load_config(data)
        log.debug(f"Loaded {len(self.model.options)} option(s) from {self.path}")
        return self.model

    def save(self, model: Optional[Config] = None) -> Path:
        if model is not None:
            self.model = model
        if self.model is None:
            raise ValueError("nothing to save; call load() first or pass a model")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(dump_config(self.model), indent=2), encoding="utf-8"
        )
        log.info(f"Saved mod config: {self.path}")
        return self.path
