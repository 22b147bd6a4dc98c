"""Typed, layered configuration loader with precedence handling.

Precedence (lowest to highest):
    embedded defaults -> defaults.ini -> DOCFLOW_<SECTION>__<KEY> env vars
    -> machine config (DOCFLOW_CONFIG or ./docflow.ini) -> user config
"""
from __future__ import annotations

import configparser
import os
from dataclasses import dataclass, fields
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, get_type_hints

# --------------------------------------------------------------------------- #
#  Paths & default definitions
# --------------------------------------------------------------------------- #

CONFIG_DIR = Path(__file__).resolve().parent
DEFAULTS_INI = CONFIG_DIR / "defaults.ini"
ENV_PREFIX = "DOCFLOW_"


_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "General": {
        "app_name": "docflow",
        "log_level": "INFO",
    },
    "Storage": {
        "blob_dir": "data/blobs",
        "database": "data/docflow.db",
    },
    "Render": {
        "libreoffice_path": "",
        "gotenberg_url": "",
        "connect_timeout": "30",
        "read_timeout": "60",
        "render_timeout": "20",
        "enable_local": "true",
        "enable_remote": "true",
    },
    "Signature": {
        "date_format": "%d/%m/%Y",
        "time_format": "%H:%M",
        "label_font_size": "7",
        "signer_font_size": "6",
        "label_color": "333333",
        "secondary_color": "666666",
        "display_timezone": "UTC",
        "final_suffix": "-firmado",
    },
}


# --------------------------------------------------------------------------- #
#  Datamodels
# --------------------------------------------------------------------------- #

@dataclass
class GeneralConfig:
    app_name: str = "docflow"
    log_level: str = "INFO"


@dataclass
class StorageConfig:
    blob_dir: Path = Path("data/blobs")
    database: Path = Path("data/docflow.db")


@dataclass
class RenderConfig:
    libreoffice_path: str = ""
    gotenberg_url: str = ""
    connect_timeout: float = 30.0
    read_timeout: float = 60.0
    render_timeout: float = 20.0
    enable_local: bool = True
    enable_remote: bool = True


@dataclass
class SignatureConfig:
    date_format: str = "%d/%m/%Y"
    time_format: str = "%H:%M"
    label_font_size: int = 7
    signer_font_size: int = 6
    label_color: str = "333333"
    secondary_color: str = "666666"
    display_timezone: str = "UTC"
    final_suffix: str = "-firmado"


# --------------------------------------------------------------------------- #
#  Helpers
# --------------------------------------------------------------------------- #

def _read_ini(path: Path) -> Dict[str, Dict[str, Any]]:
    cp = configparser.ConfigParser(interpolation=None)
    cp.read(path, encoding="utf-8")
    return {section: dict(cp.items(section)) for section in cp.sections()}


def _apply(target: Dict[str, Dict[str, Any]], source: Mapping[str, Mapping[str, Any]],
           layer: str, origin: str,
           sources: Dict[Tuple[str, str], Dict[str, str]]) -> None:
    for section, items in source.items():
        sec = target.setdefault(section, {})
        for key, value in items.items():
            sec[key] = value
            sources[(section, key)] = {"layer": layer, "source": origin}


def _cast(value: Any, typ: Any) -> Any:
    if typ is Path:
        return Path(str(value)).expanduser()
    if typ is bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in {"1", "true", "yes", "on"}
    if typ is int:
        return int(value)
    if typ is float:
        return float(value)
    return typ(value)


def _build_dataclass(cls: type, data: Mapping[str, Any]) -> Any:
    hints = get_type_hints(cls)
    kwargs = {}
    for field in fields(cls):
        val = data.get(field.name, field.default)
        kwargs[field.name] = _cast(val, hints[field.name])
    return cls(**kwargs)


def _env_overlays(environ: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
    result: Dict[str, Dict[str, Any]] = {}
    for env_key, value in environ.items():
        if not env_key.startswith(ENV_PREFIX):
            continue
        remainder = env_key[len(ENV_PREFIX):]
        parts = remainder.split("__", 1)
        if len(parts) != 2:
            continue
        section, key = parts
        result.setdefault(section.title(), {})[key.lower()] = value
    return result


def _machine_config_path(environ: Mapping[str, str]) -> Path:
    explicit = environ.get("DOCFLOW_CONFIG")
    if explicit:
        return Path(explicit).expanduser()
    return Path.cwd() / "docflow.ini"


def _user_config_path(environ: Mapping[str, str]) -> Path:
    if os.name == "nt":
        appdata = environ.get("APPDATA") or (Path.home() / "AppData" / "Roaming")
        return Path(appdata) / "docflow" / "config.ini"
    return Path(environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "docflow" / "config.ini"


# --------------------------------------------------------------------------- #
#  ConfigService
# --------------------------------------------------------------------------- #


class ConfigService:
    """Facade merging layered configuration with type safety."""

    def __init__(
        self,
        *,
        defaults_ini: Optional[Path] = DEFAULTS_INI,
        machine_ini: Optional[Path] = None,
        user_ini: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self._lock = RLock()
        self._environ = os.environ if environ is None else environ
        self._defaults_ini = defaults_ini
        self._machine_ini = machine_ini or _machine_config_path(self._environ)
        self._user_ini = user_ini or _user_config_path(self._environ)
        self.reload()

    # ------------------------------------------------------------------ #
    def reload(self) -> None:
        with self._lock:
            merged: Dict[str, Dict[str, Any]] = {}
            sources: Dict[Tuple[str, str], Dict[str, str]] = {}

            # Layer 0: embedded defaults
            _apply(merged, _DEFAULTS, "code", "embedded", sources)

            # Layer 1: defaults.ini
            if self._defaults_ini and self._defaults_ini.exists():
                _apply(merged, _read_ini(self._defaults_ini), "defaults.ini",
                       str(self._defaults_ini), sources)

            # Layer 2: environment variables
            _apply(merged, _env_overlays(self._environ), "env", "os.environ", sources)

            # Layer 3: machine config
            if self._machine_ini.exists():
                _apply(merged, _read_ini(self._machine_ini), "machine", str(self._machine_ini), sources)

            # Layer 4: user overrides
            if self._user_ini.exists():
                _apply(merged, _read_ini(self._user_ini), "user", str(self._user_ini), sources)

            self._merged = merged
            self._sources = sources

            self.general = _build_dataclass(GeneralConfig, merged.get("General", {}))
            self.storage = _build_dataclass(StorageConfig, merged.get("Storage", {}))
            self.render = _build_dataclass(RenderConfig, merged.get("Render", {}))
            self.signature = _build_dataclass(SignatureConfig, merged.get("Signature", {}))

    # ------------------------------------------------------------------ #
    def get(self, section: str, key: str, *, cast: Callable[[Any], Any] | type = str) -> Any:
        val = self._merged.get(section, {}).get(key)
        if val is None:
            return None
        if isinstance(cast, type):
            return _cast(val, cast)
        return cast(val)

    def meta_source(self, section: str, key: str) -> Dict[str, str] | None:
        return self._sources.get((section, key))


_service: Optional[ConfigService] = None
_service_lock = RLock()


def get_config_service() -> ConfigService:
    """Return the process-wide ConfigService, created on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = ConfigService()
        return _service
