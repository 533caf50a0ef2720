"""Deployment discovery.

A deployment is the nearest directory at or above the working directory
that holds ``cmdbctl.toml`` or a ``.cmdbctl/`` state directory (left by
``cmdbctl init --no-config``). ``CMDBCTL_CONFIG`` names a config file
directly and disables the walk.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import NamedTuple

CONFIG_FILENAME = "cmdbctl.toml"
CONFIG_ENV_VAR = "CMDBCTL_CONFIG"
STATE_DIRNAME = ".cmdbctl"


class Deployment(NamedTuple):
    root: Path
    config_path: Path | None


def find_deployment(start: Path | None = None) -> Deployment | None:
    """Locate the deployment enclosing *start* (default: cwd).

    A config file wins over a bare state directory in the same folder.
    Returns None when ``CMDBCTL_CONFIG`` points at a missing file or the
    walk reaches the filesystem root.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        config = Path(env_path)
        return Deployment(config.parent, config) if config.is_file() else None

    origin = (start or Path.cwd()).resolve()
    for directory in (origin, *origin.parents):
        config = directory / CONFIG_FILENAME
        if config.is_file():
            return Deployment(directory, config)
        if (directory / STATE_DIRNAME).is_dir():
            return Deployment(directory, None)
    return None
