import copy
import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


def _merge(base, override):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class _Config:
    def __init__(self, path=None, **overrides):
        with open(DEFAULT_CONFIG_PATH) as f:
            self.config = yaml.full_load(f)

        if path is not None:
            logger.info("Loading config from %s", path)
            with open(path) as f:
                user = yaml.full_load(f) or {}
            unknown = set(user) - set(self.config)
            if unknown:
                raise ValueError(f"unknown config keys in {path}: {sorted(unknown)}")
            _merge(self.config, user)

        unknown = set(overrides) - set(self.config)
        if unknown:
            raise ValueError(f"unknown config overrides: {sorted(unknown)}")
        _merge(self.config, {k: v for k, v in overrides.items() if v is not None})

    def __getattr__(self, name):
        # only reached for names not set on the instance
        if name == "config":
            raise AttributeError(name)
        try:
            return self.config[name]
        except KeyError:
            raise AttributeError(name) from None

    def as_dict(self):
        return copy.deepcopy(self.config)


def load_config(path=None, **overrides):
    return _Config(path, **overrides)
