import configparser
import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union, get_args, get_origin

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings


class GEODOC_DIR_PATHS(BaseModel):
    ROOT: str
    LOGGER_DIR: str
    STRUCT_LOGGER_DIR: str


class GEODOC_LOGGER(BaseModel):
    USE_STRUCTLOG: bool = False


class GEODOC_MONGO(BaseModel):
    DB_URI: SecretStr
    DB_NAME: str


def load_ini_as_dict(ini_path: Path) -> Dict[str, Any]:
    """
    Load and parse an INI file into a nested dictionary with normalized keys.

    Sections and keys are converted to uppercase for uniform access. A leading tilde (`~`) in values is expanded to
    the user home directory.

    Args:
        ini_path (Path): Path to the `.ini` configuration file.

    Returns:
        Dict[str, Any]: A dictionary where each section is a key mapped to another dictionary of key-value pairs from
        that section. An empty dictionary if the file does not exist.

    Example:
        .. code-block:: ini

            [GEODOC_MONGO]
            db_name = parcels

        .. code-block:: python

            config = load_ini_as_dict(Path("config.ini"))
            print(config["GEODOC_MONGO"]["DB_NAME"])
    """
    if not ini_path.exists():
        return {}

    parser = configparser.ConfigParser(interpolation=configparser.ExtendedInterpolation())
    parser.optionxform = str
    parser.read(ini_path)

    return {
        section.upper(): {
            key.upper(): os.path.expanduser(value) if value.startswith("~") else value
            for key, value in parser[section].items()
        }
        for section in parser.sections()
    }


def load_ini_settings() -> Dict[str, Any]:
    return load_ini_as_dict(Path(__file__).parent / "config.ini")


def _expand_tilde(obj):
    if isinstance(obj, str):
        return os.path.expanduser(obj) if obj.startswith("~") else obj
    if isinstance(obj, dict):
        return {k: _expand_tilde(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return type(obj)(_expand_tilde(v) for v in obj)
    return obj


class CoreSettings(BaseSettings):
    GEODOC_DIR_PATHS: GEODOC_DIR_PATHS
    GEODOC_LOGGER: GEODOC_LOGGER
    GEODOC_MONGO: GEODOC_MONGO

    model_config = {
        "env_nested_delimiter": "__",
        "case_sensitive": True,
    }

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        def env_settings_expanded():
            return _expand_tilde(env_settings())

        return (
            init_settings,
            env_settings_expanded,
            dotenv_settings,
            load_ini_settings,  # lowest precedence
            file_secret_settings,
        )


SettingsLike = Union[
    Dict[str, Any],
    List[Union[Dict[str, Any], BaseSettings, BaseModel]],
    BaseSettings,
    BaseModel,
    None,
]


class _AttrView:
    """Attribute-access wrapper around a nested mapping, enabling ``cfg.SECTION.KEY``."""

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    def __getattr__(self, name: str):
        if name in self._data:
            return _wrap(self._data[name])
        raise AttributeError(f"No such attribute: {name}")

    def __getitem__(self, key: str):
        return _wrap(self._data[key])

    def __repr__(self) -> str:
        return f"_AttrView({self._data!r})"


def _wrap(value: Any) -> Any:
    if isinstance(value, dict):
        return _AttrView(value)
    if isinstance(value, list):
        return [_AttrView(v) if isinstance(v, dict) else v for v in value]
    return value


class Config(dict):
    """
    Unified configuration manager for geodoc components.

    Consolidates configuration from dictionaries and pydantic ``BaseSettings`` / ``BaseModel`` objects into a single
    nested dictionary of strings. Later sources override earlier ones, and environment variables
    (``SECTION__KEY``) are overlaid last unless ``apply_env`` is False.

    Fields declared as ``SecretStr`` are masked in the dictionary itself; use :meth:`get_secret` for the real value.

    Args:
        extra_settings: Configuration sources. A `dict`, `BaseSettings`, `BaseModel`, or a list of any of these.
        apply_env: Whether to overlay environment variables.

    Example:
        >>> from geodoc.core.config import Config, CoreSettings
        >>> config = Config(CoreSettings())
        >>> config.GEODOC_MONGO.DB_URI  # '********'
        >>> config.get_secret("GEODOC_MONGO", "DB_URI")  # 'mongodb://localhost:27017'
    """

    MASK = "********"

    def __init__(self, extra_settings: SettingsLike = None, *, apply_env: bool = True):
        self._secret_paths: set[Tuple[str, ...]] = set()
        self._secrets: Dict[Tuple[str, ...], str] = {}

        if extra_settings is None:
            sources: List[Any] = []
        elif isinstance(extra_settings, list):
            sources = extra_settings
        else:
            sources = [extra_settings]

        merged: Dict[str, Any] = {}
        for source in sources:
            if isinstance(source, (BaseSettings, BaseModel)):
                self._secret_paths.update(self._collect_secret_paths(type(source)))
                source = source.model_dump()
            if isinstance(source, dict):
                merged = self._deep_update(merged, deepcopy(source))

        if apply_env:
            merged = self._apply_env_overrides(merged)

        super().__init__(self._stringify_and_mask(merged))

    def __getattr__(self, name: str):
        if name in self:
            return _wrap(self[name])
        raise AttributeError(f"No such attribute: {name}")

    @classmethod
    def load_json(cls, path: str | Path) -> "Config":
        """Load a Config from a JSON file, with environment variables applied on top."""
        with open(path, "r") as f:
            return cls([json.load(f)])

    def save_json(self, path: str | Path, *, reveal_secrets: bool = False, indent: int = 4) -> None:
        """Save to JSON; secrets stay masked unless ``reveal_secrets`` is True."""
        data = deepcopy(dict(self))
        if reveal_secrets:
            for secret_path, value in self._secrets.items():
                node = data
                for key in secret_path[:-1]:
                    node = node[key]
                node[secret_path[-1]] = value
        with open(path, "w") as f:
            json.dump(data, f, indent=indent)

    def clone_with_overrides(self, *overrides: SettingsLike) -> "Config":
        """Return a new Config with the given overrides applied; the original is unchanged."""
        base = deepcopy(dict(self))
        for secret_path, value in self._secrets.items():
            node = base
            for key in secret_path[:-1]:
                node = node[key]
            node[secret_path[-1]] = SecretStr(value)
        items: List[Any] = [base]
        for override in overrides:
            if isinstance(override, list):
                items.extend(override)
            elif override is not None:
                items.append(override)
        clone = Config(items, apply_env=False)
        clone._secret_paths.update(self._secret_paths)
        return clone

    def get_secret(self, *path: str) -> Optional[str]:
        """Retrieve a secret by path components, e.g. ``get_secret("GEODOC_MONGO", "DB_URI")``."""
        return self._secrets.get(tuple(path))

    def secret_paths(self) -> List[str]:
        """Return dotted paths of fields considered secrets."""
        return sorted(".".join(p) for p in self._secret_paths)

    @staticmethod
    def _deep_update(base: dict, override: dict) -> dict:
        for k, v in override.items():
            if isinstance(v, dict) and isinstance(base.get(k), dict):
                base[k] = Config._deep_update(base[k], v)
            else:
                base[k] = v
        return base

    @staticmethod
    def _apply_env_overrides(base: dict, delimiter: str = "__") -> dict:
        result = deepcopy(base)
        for env_key, env_value in os.environ.items():
            if delimiter not in env_key:
                continue
            parts = [p.strip().upper() for p in env_key.split(delimiter) if p.strip()]
            if not parts:
                continue
            node = result
            for key in parts[:-1]:
                if not isinstance(node.get(key), dict):
                    node[key] = {}
                node = node[key]
            node[parts[-1]] = env_value
        return result

    def _stringify_and_mask(self, data: Dict[str, Any]) -> Dict[str, Any]:
        def convert(v: Any, path: Tuple[str, ...]) -> Any:
            if isinstance(v, dict):
                return {k: convert(x, path + (k,)) for k, x in v.items()}
            if isinstance(v, (list, tuple, set)):
                return [convert(x, path) for x in v]
            if isinstance(v, SecretStr):
                self._secrets[path] = v.get_secret_value()
                return self.MASK
            sval = str(v)
            if path in self._secret_paths:
                self._secrets[path] = sval
                return self.MASK
            return os.path.expanduser(sval) if sval.startswith("~") else sval

        return convert(data, ())

    def _collect_secret_paths(self, model_cls: type[BaseModel], prefix: Tuple[str, ...] = ()) -> set[Tuple[str, ...]]:
        paths: set[Tuple[str, ...]] = set()
        for name, field in model_cls.model_fields.items():
            annotation = field.annotation
            candidates = get_args(annotation) if get_origin(annotation) is Union else (annotation,)
            if SecretStr in candidates:
                paths.add(prefix + (name,))
                continue
            for candidate in candidates:
                if isinstance(candidate, type) and issubclass(candidate, BaseModel):
                    paths.update(self._collect_secret_paths(candidate, prefix + (name,)))
                    break
        return paths


class CoreConfig(Config):
    """
    ``Config`` that always starts from ``CoreSettings``.

    Usage:
        from geodoc.core.config import CoreConfig
        cfg = CoreConfig()  # CoreSettings from env, .env and the bundled config.ini
        cfg = CoreConfig({"GEODOC_MONGO": {"DB_NAME": "parcels"}})  # overrides win

    Environment variables are not re-applied at the Config layer, since ``CoreSettings`` already read them and the
    provided overrides must keep the highest precedence.
    """

    def __init__(self, extra_settings: SettingsLike = None):
        if extra_settings is None:
            extras: List[Any] = [CoreSettings()]
        elif isinstance(extra_settings, list):
            extras = [CoreSettings()] + extra_settings
        else:
            extras = [CoreSettings(), extra_settings]
        super().__init__(extras, apply_env=False)


def get_config(extra_settings: SettingsLike = None) -> CoreConfig:
    """Return a ``CoreConfig`` with the given overrides applied."""
    return CoreConfig(extra_settings)
