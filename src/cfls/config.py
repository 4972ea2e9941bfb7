from __future__ import annotations

from datetime import date, datetime, time
from pathlib import Path
from typing import Mapping, TypeAlias
import tomllib

from lsprotocol.types import ClientCapabilities
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from cfls.exceptions import ConfigUpdateError

DEFAULT_CONFIG_NAME = "cfls.toml"
CONFIG_SECTION = "cfls"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


class CompletionSettings(BaseModel):
    # Only camelCase keys are accepted; ``max_items`` is an unknown key here.
    model_config = ConfigDict(alias_generator=to_camel, frozen=True, extra="forbid")

    enable_keywords: bool = True
    enable_document_words: bool = True
    max_items: int = Field(default=200, ge=1)
    trigger_characters: tuple[str, ...] = (".",)


class DynamicOptions(BaseModel):
    """Client supplied settings; keys use the client's camelCase spelling.

    Unknown top-level keys are kept so free-form settings survive a round
    trip; the typed sections below reject keys they do not define.
    """

    model_config = ConfigDict(alias_generator=to_camel, frozen=True, extra="allow")

    completion: CompletionSettings = CompletionSettings()


class Configuration(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    root_path: Path
    workspace_roots: tuple[Path, ...]
    capabilities: ClientCapabilities
    options: DynamicOptions = DynamicOptions()

    @model_validator(mode="after")
    def _check_paths(self) -> Configuration:
        if not self.root_path.is_absolute():
            raise ValueError(f"root path must be absolute: {self.root_path}")
        if not self.workspace_roots:
            raise ValueError("workspace roots must not be empty")
        for root in self.workspace_roots:
            if not root.is_absolute():
                raise ValueError(f"workspace root must be absolute: {root}")
        return self

    @classmethod
    def new(
        cls,
        root_path: Path,
        capabilities: ClientCapabilities,
        workspace_roots: list[Path] | tuple[Path, ...] = (),
    ) -> Configuration:
        roots = tuple(workspace_roots) or (root_path,)
        try:
            return cls(root_path=root_path, workspace_roots=roots, capabilities=capabilities)
        except ValidationError as exc:
            raise ValueError(render_validation_error(exc)) from exc

    def update(self, payload: object) -> Configuration:
        """Return a new snapshot with ``payload`` merged into the options.

        The receiver is never modified; a payload that does not validate
        raises ConfigUpdateError.
        """
        if not isinstance(payload, Mapping):
            raise ConfigUpdateError(
                f"expected a JSON object, got {type(payload).__name__}"
            )
        current = self.options.model_dump(by_alias=True)
        merged = merge_payload(dict(payload), current)
        try:
            options = DynamicOptions.model_validate(merged)
        except ValidationError as exc:
            raise ConfigUpdateError(render_validation_error(exc)) from exc
        return self.model_copy(update={"options": options})


def render_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)


def merge_payload(payload: Mapping[str, object], defaults: Mapping[str, object]) -> dict[str, object]:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        previous = merged.get(key)
        if isinstance(value, Mapping) and isinstance(previous, Mapping):
            merged[key] = merge_payload(value, previous)
        else:
            merged[key] = value
    return merged


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_project_options(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    section = _load_toml(config_path).get(CONFIG_SECTION, {})
    return section if isinstance(section, dict) else {}
