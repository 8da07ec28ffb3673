# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/k8s/connection.py
from __future__ import annotations

import logging
from typing import Dict, Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from ..errors import InvalidKubeconfig
from ..utils.retry import retry

log = logging.getLogger("brokerctl")

TOKEN_KEYS = ("token", "ca.crt", "namespace")


class TokenNotReady(RuntimeError):
    pass


def token_secret_name(service_account: str) -> str:
    return f"{service_account}-token"


class KubeConnection:
    """A live handle on one cluster."""

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client

    @property
    def server(self) -> str:
        return self.api_client.configuration.host

    @retry(retries=15, delay=2, retry_on=(TokenNotReady,))
    def get_service_account_token(self, namespace: str, service_account: str) -> Dict[str, str]:
        """
        Base64 data of the service account's token secret.

        The token controller fills the secret asynchronously, so an empty
        secret is retried for a short while.
        """
        core = client.CoreV1Api(self.api_client)
        secret = core.read_namespaced_secret(token_secret_name(service_account), namespace)
        data = secret.data or {}
        if not data.get("token"):
            raise TokenNotReady(f"token for service account {namespace}/{service_account} is not populated yet")
        return {k: data[k] for k in TOKEN_KEYS if k in data}


class KubeConnectionProducer:
    def __init__(self, kubeconfig: Optional[str] = None, context: Optional[str] = None):
        self.kubeconfig = kubeconfig
        self.context = context

    def for_cluster(self) -> KubeConnection:
        log.debug("loading kubeconfig=%s context=%s", self.kubeconfig or "<default>", self.context or "<current>")
        try:
            api_client = config.new_client_from_config(config_file=self.kubeconfig, context=self.context)
        except (ConfigException, OSError, TypeError, ValueError) as exc:
            raise InvalidKubeconfig(f"the provided kubeconfig is invalid: {exc}") from exc
        return KubeConnection(api_client)
