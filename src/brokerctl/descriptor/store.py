# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/descriptor/store.py
"""
On-disk lifecycle of the broker descriptor (``broker-info.subm``).

The file holds the base64 encoding of the descriptor's JSON document. A
previous file is always renamed aside before a new one is written, and the
new one replaces the target in a single rename, so the target is never left
half written.
"""

from __future__ import annotations

import base64
import binascii
import logging
import os
import secrets
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Tuple

from pydantic import ValidationError

from ..errors import DescriptorBuildError, DescriptorIOError
from .models import IPSEC_PSK_SECRET_NAME, BrokerDescriptor, SecretMaterial

log = logging.getLogger("brokerctl")

BROKER_DETAILS_FILENAME = "broker-info.subm"
BROKER_CLIENT_SERVICE_ACCOUNT = "submariner-k8s-broker-client"
PSK_LENGTH = 64


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_psk(length: int = PSK_LENGTH) -> SecretMaterial:
    return SecretMaterial.from_bytes(IPSEC_PSK_SECRET_NAME, {"psk": secrets.token_bytes(length)})


def encode(descriptor: BrokerDescriptor) -> bytes:
    return base64.b64encode(descriptor.to_json().encode("utf-8"))


def decode(raw: bytes) -> BrokerDescriptor:
    try:
        doc = base64.b64decode(raw.strip(), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"not base64 encoded: {exc}") from exc
    return BrokerDescriptor.model_validate_json(doc)


class DescriptorStore:
    def __init__(self, *, clock: Callable[[], datetime] = _utcnow):
        self.clock = clock

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self, path: str | Path) -> BrokerDescriptor:
        path = Path(path)
        try:
            return decode(path.read_bytes())
        except OSError as exc:
            raise DescriptorIOError(f"error reading {path}: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise DescriptorIOError(f"{path} is not a valid broker descriptor: {exc}") from exc

    def load_if_exists(self, path: str | Path) -> Tuple[Optional[BrokerDescriptor], bool]:
        """Returns (descriptor, True) when *path* exists, (None, False) otherwise."""
        path = Path(path)
        if not path.exists():
            return None, False
        return self.load(path), True

    # ------------------------------------------------------------------
    # Rotate
    # ------------------------------------------------------------------

    def _backup_name(self, path: Path) -> Path:
        stamp = self.clock().strftime("%Y-%m-%dT%H_%M_%SZ")
        candidate = path.with_name(f"{path.name}.{stamp}")
        n = 0
        while candidate.exists():
            n += 1
            candidate = path.with_name(f"{path.name}.{stamp}.{n}")
        return candidate

    def backup_if_exists(self, path: str | Path) -> str:
        """Rename an existing *path* aside. Returns the new name, or "" if there was nothing."""
        path = Path(path)
        if not path.exists():
            return ""

        target = self._backup_name(path)
        try:
            os.rename(path, target)
        except OSError as exc:
            raise DescriptorIOError(f"error backing up {path} to {target}: {exc}") from exc

        log.debug("backed up %s to %s", path, target)
        return str(target)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build_from_cluster(
        self,
        connection,
        namespace: str,
        reused_psk: Optional[SecretMaterial] = None,
    ) -> BrokerDescriptor:
        """
        Assemble a descriptor from the live cluster.

        *connection* must expose ``server`` and
        ``get_service_account_token(namespace, service_account)``.
        """
        try:
            token = connection.get_service_account_token(namespace, BROKER_CLIENT_SERVICE_ACCOUNT)
        except Exception as exc:
            raise DescriptorBuildError(
                f"error retrieving the broker client token from namespace {namespace}: {exc}"
            ) from exc

        if reused_psk is None:
            log.debug("generating a new IPsec PSK")
            psk = generate_psk()
        else:
            psk = reused_psk

        try:
            return BrokerDescriptor(
                broker_url=_strip_scheme(connection.server),
                client_token=SecretMaterial(name=BROKER_CLIENT_SERVICE_ACCOUNT, namespace=namespace, data=token),
                ipsec_psk=psk,
            )
        except ValidationError as exc:
            raise DescriptorBuildError(f"error assembling the broker descriptor: {exc}") from exc

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def persist(self, descriptor: BrokerDescriptor, path: str | Path) -> None:
        path = Path(path)
        payload = encode(descriptor)

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            with os.fdopen(fd, "wb") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
        except OSError as exc:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise DescriptorIOError(f"error writing {path}: {exc}") from exc

        log.debug("wrote broker descriptor to %s", path)


def _strip_scheme(server: str) -> str:
    for scheme in ("https://", "http://"):
        if server.startswith(scheme):
            return server[len(scheme):]
    return server
