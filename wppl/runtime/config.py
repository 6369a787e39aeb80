# ==========================================
# CONFIGURATION
# ==========================================
"""
Runtime settings, read from wppl.json in the working directory or from
~/.wppl/config.json. Missing files mean defaults.
"""

import json
import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

CONFIG_FILE = "wppl.json"


def config_paths():
    return [CONFIG_FILE, os.path.expanduser("~/.wppl/config.json")]


class RuntimeConfig(BaseModel):
    """Inference defaults used when a program does not say otherwise."""
    particles: int = Field(default=100, ge=1)
    resampling: Literal["multinomial", "systematic"] = "multinomial"
    samples: int = Field(default=1000, ge=1)
    seed: Optional[int] = None
    max_steps: Optional[int] = Field(default=None, ge=1)


def load_config(path=None):
    """Load configuration from `path`, or from the first default path that exists."""
    paths = [path] if path else config_paths()
    for p in paths:
        if os.path.exists(p):
            with open(p, "r") as f:
                return RuntimeConfig(**json.load(f))
    return RuntimeConfig()


_active_config = None


def get_config():
    """The configuration in effect, loaded on first use."""
    global _active_config
    if _active_config is None:
        _active_config = load_config()
    return _active_config


def set_config(config):
    """Replace the configuration in effect; None reloads from disk on next use."""
    global _active_config
    _active_config = config
