# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/config/loader.py

import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from .models import DeploymentRequest

log = logging.getLogger("brokerctl")


def _merge_overrides(base: dict, override: dict) -> dict:
    """
    Merge *override* into *base* (mutates base).
    Only overwrites when the override value is non-empty.
    """
    for key, value in override.items():
        if value not in (None, "", [], ()):
            base[key] = value
    return base


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping in {path}, got {type(data).__name__}")
    return data


def load_request(
    path: Optional[str | Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> DeploymentRequest:
    """
    Build a DeploymentRequest from an optional YAML file and CLI overrides.

    The file may use ``${ENV_VAR}`` placeholders; ``os.path.expandvars``
    resolves them at load time. Overrides win over file values, but empty
    overrides (unset CLI flags) leave the file value in place.
    """
    data: dict = {}
    if path is not None:
        path = Path(path)
        log.debug("Loading deployment request from %s", path)
        data = _load_yaml(path)

    if overrides:
        _merge_overrides(data, overrides)

    return DeploymentRequest.model_validate(data)
