"""Key/value configuration loading for dotf.

The file format is a small subset of TOML::

    # comment
    syncdir = "~/dotfiles"
    dotfilesdir = "~/dotfiles/distros/laptop"
    userspacedir = "~/"
    syncinterval = 3600
    autosync = true

Keys are case-insensitive and surrounding whitespace is trimmed. Quoted
values are TOML basic strings, so ``\\"`` and ``\\\\`` escapes are decoded.
``autosync`` is enabled by its presence alone.
"""

from __future__ import annotations

import io
import os
import re
import socket
from pathlib import Path
from typing import Dict, Mapping

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigMalformedError, ConfigMissingKeyError, ConfigNotFoundError
from .paths import expand_tilde

CONFIG_ENV_VAR = "DOTF_CONFIG"
DEFAULT_SYNC_INTERVAL = 3600

# Accepted spellings -> field name. The underscored forms are kept for older files.
KEY_ALIASES: Dict[str, str] = {
    "syncdir": "sync_dir",
    "sync_dir": "sync_dir",
    "dotfilesdir": "dotfiles_dir",
    "dotfiles_dir": "dotfiles_dir",
    "userspacedir": "userspace_dir",
    "userspace_dir": "userspace_dir",
    "syncinterval": "sync_interval_secs",
    "sync_interval_secs": "sync_interval_secs",
    "autosync": "auto_sync",
    "auto_sync": "auto_sync",
}

REQUIRED_FIELDS = {
    "sync_dir": "syncdir",
    "dotfiles_dir": "dotfilesdir",
    "userspace_dir": "userspacedir",
    "sync_interval_secs": "syncinterval",
}

_TRIM = " \t\r\n\""

# Escapes tomli_w writes inside basic strings.
_ESCAPES = {"b": "\b", "t": "\t", "n": "\n", "f": "\f", "r": "\r", "\"": "\"", "\\": "\\"}
_ESCAPE_RE = re.compile(r"\\(u[0-9A-Fa-f]{4}|U[0-9A-Fa-f]{8}|.)")


def default_config_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/dotf/config``, falling back to ``~/.config``."""

    base = os.environ.get("XDG_CONFIG_HOME")
    config_home = Path(base) if base else Path.home() / ".config"
    return config_home / "dotf" / "config"


def _expand_path(raw: str, *, base_dir: Path) -> Path:
    """Return an absolute path, expanding ``~/`` and anchoring relative paths at ``base_dir``.

    Symlinks are not resolved.
    """

    expanded = expand_tilde(raw)
    if not expanded.is_absolute():
        expanded = base_dir / expanded
    return Path(os.path.normpath(expanded))


class Config(BaseModel):
    """Fully parsed configuration file. Immutable after load."""

    model_config = ConfigDict(frozen=True)

    sync_dir: Path
    dotfiles_dir: Path
    userspace_dir: Path
    sync_interval_secs: int = Field(default=DEFAULT_SYNC_INTERVAL, gt=0)
    auto_sync: bool = False
    config_path: Path | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, str], *, base_dir: Path, config_path: Path | None = None) -> "Config":
        fields: dict[str, object] = {}
        for key, value in raw.items():
            field_name = KEY_ALIASES.get(key)
            if field_name is None:
                raise ConfigMalformedError(f"malformed or unknown key encountered: {key}")
            fields[field_name] = value

        for field_name, key in REQUIRED_FIELDS.items():
            if field_name not in fields:
                raise ConfigMissingKeyError(f"missing key in configuration: {key}")

        try:
            interval = int(str(fields["sync_interval_secs"]))
        except ValueError as exc:
            raise ConfigMalformedError(
                f"syncinterval must be a whole number of seconds, got '{fields['sync_interval_secs']}'"
            ) from exc

        try:
            return cls(
                sync_dir=_expand_path(str(fields["sync_dir"]), base_dir=base_dir),
                dotfiles_dir=_expand_path(str(fields["dotfiles_dir"]), base_dir=base_dir),
                userspace_dir=_expand_path(str(fields["userspace_dir"]), base_dir=base_dir),
                sync_interval_secs=interval,
                auto_sync="auto_sync" in fields,
                config_path=config_path,
            )
        except ValidationError as exc:
            raise ConfigMalformedError(f"invalid configuration: {exc.errors()[0]['msg']}") from exc

    @classmethod
    def default(cls) -> "Config":
        """Sensible defaults used by ``dotf setup``."""

        home = Path.home()
        sync_dir = home / "dotfiles"
        return cls(
            sync_dir=sync_dir,
            dotfiles_dir=sync_dir / "distros" / socket.gethostname(),
            userspace_dir=home,
            sync_interval_secs=DEFAULT_SYNC_INTERVAL,
            auto_sync=False,
            config_path=default_config_path(),
        )


def _unescape(match: re.Match[str]) -> str:
    escape = match.group(1)
    if escape[0] in "uU" and len(escape) > 1:
        return chr(int(escape[1:], 16))
    return _ESCAPES.get(escape, match.group(0))


def _parse_value(raw: str) -> str:
    """Strip surrounding quotes, decoding escapes when the value is a quoted string."""

    value = raw.strip()
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return _ESCAPE_RE.sub(_unescape, value[1:-1])
    return value.strip(_TRIM)


def parse_config_text(text: str) -> Dict[str, str]:
    """Parse ``key = value`` lines into a dict with lower-cased keys."""

    values: Dict[str, str] = {}
    for line_number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        key, separator, value = stripped.partition("=")
        if not separator:
            raise ConfigMalformedError(f"malformed key in configuration on line number {line_number}: {stripped}")

        key = key.strip(_TRIM).lower()
        if not key:
            raise ConfigMalformedError(f"missing key in configuration on line number {line_number}")
        values[key] = _parse_value(value)

    return values


def load_config(path: Path | str | None = None) -> Config:
    """Load and validate a configuration file.

    Args:
        path: Optional path to the file. Defaults to ``$DOTF_CONFIG`` and then
            to ``~/.config/dotf/config``.
    """

    config_path = _resolve_config_path(path)
    values = parse_config_text(config_path.read_text())
    return Config.from_raw(values, base_dir=config_path.parent, config_path=config_path)


def render_config(config: Config) -> str:
    """Serialize ``config`` into the key/value file format."""

    data: dict[str, object] = {
        "syncdir": str(config.sync_dir),
        "dotfilesdir": str(config.dotfiles_dir),
        "userspacedir": str(config.userspace_dir),
        "syncinterval": config.sync_interval_secs,
    }
    if config.auto_sync:
        data["autosync"] = True

    buffer = io.StringIO()
    buffer.write("# dotf configuration\n\n")
    buffer.write(tomli_w.dumps(data))
    return buffer.getvalue()


def _resolve_config_path(path: Path | str | None) -> Path:
    if path is None or str(path) == "":
        env_path = os.environ.get(CONFIG_ENV_VAR)
        candidate = expand_tilde(env_path) if env_path else default_config_path()
    else:
        candidate = expand_tilde(str(path))

    candidate = Path(os.path.abspath(candidate))
    if not candidate.exists():
        raise ConfigNotFoundError(f"Configuration file '{candidate}' does not exist", path=candidate)
    if candidate.is_dir():
        raise ConfigNotFoundError(f"Expected a configuration file but '{candidate}' is a directory", path=candidate)
    return candidate
