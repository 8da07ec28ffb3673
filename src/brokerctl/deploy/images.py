# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/deploy/images.py

"""
Central image resolver for the operator.
"""

from __future__ import annotations

import re
from typing import Mapping, Optional

from ..errors import OperatorImageResolutionError

OPERATOR_IMAGE_NAME = "submariner-operator"
DEFAULT_REPOSITORY = "quay.io/submariner"
DEFAULT_VERSION = "devel"

_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


def resolve_operator_image(
    version: Optional[str],
    repository: Optional[str],
    default_override: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Return ``<repository>/submariner-operator:<version>``.

    An entry for ``submariner-operator`` in *default_override* replaces the
    computed reference entirely. A version that already carries a digest
    (``@sha256:...``) is used as such.
    """
    if default_override and default_override.get(OPERATOR_IMAGE_NAME):
        return default_override[OPERATOR_IMAGE_NAME]

    repository = (repository or DEFAULT_REPOSITORY).rstrip("/")
    version = version or DEFAULT_VERSION

    if not repository or any(c.isspace() for c in repository):
        raise OperatorImageResolutionError(f"invalid image repository {repository!r}")

    if version.startswith("@"):
        return f"{repository}/{OPERATOR_IMAGE_NAME}{version}"

    if not _TAG_RE.match(version):
        raise OperatorImageResolutionError(f"invalid image version {version!r}")

    return f"{repository}/{OPERATOR_IMAGE_NAME}:{version}"
