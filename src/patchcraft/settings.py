from __future__ import annotations

import codecs
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import json5  # type: ignore
import yaml
from pydantic import BaseModel, Field, field_validator

# ${env:NAME} placeholders inside string values; '$${...}' escapes a literal.
ENV_VAR_PATTERN = re.compile(r"(?<!\$)\$\{env:([A-Za-z_][A-Za-z0-9_]*)\}")


class LogLevel(str, Enum):
    debug = "debug"
    info = "info"
    warning = "warning"
    error = "error"
    critical = "critical"


class Settings(BaseModel):
    log_level: LogLevel = LogLevel.warning
    # Write logs to this file instead of stderr.
    log_file: Optional[str] = None
    encoding: str = "utf-8"
    # Reject patches whose whitespace fuzz exceeds this. The EOF fallback
    # penalty is not counted.
    max_fuzz: Optional[int] = Field(default=None, ge=0)
    # Render a diff of each applied file in the CLI.
    show_diff: bool = True

    @field_validator("encoding")
    @classmethod
    def _validate_encoding(cls, v: str) -> str:
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown encoding: {v}")
        return v


def _apply_env(value: Any) -> Any:
    if isinstance(value, str):

        def repl(m: re.Match[str]) -> str:
            name = m.group(1)
            env = os.getenv(name)
            if env is None:
                raise ValueError(f"Environment variable {name} is not set")
            return env

        return ENV_VAR_PATTERN.sub(repl, value).replace("$${", "${")
    if isinstance(value, dict):
        return {k: _apply_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_apply_env(v) for v in value]
    return value


def _load_raw_file(path: Path) -> Any:
    ext = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    data: Any = None
    if ext in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    elif ext in {".json5", ".jsonc", ".json"}:
        data = json5.loads(text)
    else:
        raise ValueError(f"Unsupported config file extension: {ext}")
    if data is None:
        return {}
    return data


def load_settings(path: Union[str, Path]) -> Settings:
    data = _load_raw_file(Path(path))
    if not isinstance(data, dict):
        raise ValueError("Root configuration must be a mapping/object")
    return Settings.model_validate(_apply_env(data))
