# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/k8s/provisioner.py
"""
Cluster-side provisioning for the broker.

Every call is create-or-update, so a deployment can simply be run again after
a failure.
"""

from __future__ import annotations

import ipaddress
import json
import logging
from itertools import combinations
from typing import Dict, Iterable, List, Protocol

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..config.models import BrokerSpec
from ..deploy.components import CONNECTIVITY, SERVICE_DISCOVERY
from ..deploy.validation import parse_globalnet_cidr
from ..descriptor.store import BROKER_CLIENT_SERVICE_ACCOUNT
from ..errors import AddressingConfigError, InvalidCIDR
from .connection import token_secret_name

log = logging.getLogger("brokerctl")

BROKER_CLIENT_SA = BROKER_CLIENT_SERVICE_ACCOUNT
BROKER_ROLE = "submariner-k8s-broker-cluster"
OPERATOR_NAME = "submariner-operator"
BROKER_CR_NAME = "submariner-broker"
GLOBALNET_CONFIGMAP = "submariner-globalnet-info"

CR_GROUP = "submariner.io"
CR_VERSION = "v1alpha1"
CR_PLURAL = "brokers"

_BASE_RULES = [
    {"apiGroups": ["submariner.io"], "resources": ["clusters", "endpoints"],
     "verbs": ["create", "get", "list", "watch", "patch", "update", "delete"]},
    {"apiGroups": [""], "resources": ["configmaps"], "verbs": ["get", "list", "watch", "update"]},
]

_COMPONENT_RULES: Dict[str, List[dict]] = {
    CONNECTIVITY: [
        {"apiGroups": ["submariner.io"], "resources": ["gateways"], "verbs": ["get", "list", "watch"]},
    ],
    SERVICE_DISCOVERY: [
        {"apiGroups": ["multicluster.x-k8s.io"], "resources": ["serviceimports"],
         "verbs": ["create", "get", "list", "watch", "patch", "update", "delete"]},
        {"apiGroups": ["discovery.k8s.io"], "resources": ["endpointslices"],
         "verbs": ["create", "get", "list", "watch", "patch", "update", "delete"]},
    ],
}


class ClusterProvisioner(Protocol):
    def ensure_rbac(self, components: Iterable[str], allow_disable: bool, namespace: str) -> None: ...

    def ensure_operator(self, namespace: str, image: str, debug: bool) -> None: ...

    def ensure_broker_resource(self, namespace: str, spec: BrokerSpec) -> None: ...

    def create_addressing_config(self, enabled: bool, cidr: str, cluster_size: int, namespace: str) -> None: ...

    def validate_no_existing_addressing_config(self, namespace: str, cidr: str) -> None: ...


def _exists(exc: ApiException) -> bool:
    return exc.status == 409


def _metadata(name: str, namespace: str | None = None, **extra) -> dict:
    meta = {"name": name}
    if namespace:
        meta["namespace"] = namespace
    meta.update(extra)
    return meta


def role_rules(components: Iterable[str]) -> List[dict]:
    rules = [dict(r) for r in _BASE_RULES]
    for component in sorted(set(components)):
        rules.extend(dict(r) for r in _COMPONENT_RULES.get(component, []))
    return rules


def _rule_dict(rule) -> dict:
    if isinstance(rule, dict):
        return rule
    return client.ApiClient().sanitize_for_serialization(rule)


def _merge_rules(existing: List[dict], wanted: List[dict]) -> List[dict]:
    merged = list(existing)
    for rule in wanted:
        if rule not in merged:
            merged.append(rule)
    return merged


class KubeProvisioner:
    def __init__(self, connection, *, core=None, rbac=None, apps=None, custom=None):
        api_client = getattr(connection, "api_client", None)
        self.core = core or client.CoreV1Api(api_client)
        self.rbac = rbac or client.RbacAuthorizationV1Api(api_client)
        self.apps = apps or client.AppsV1Api(api_client)
        self.custom = custom or client.CustomObjectsApi(api_client)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _ensure_namespace(self, namespace: str) -> None:
        try:
            self.core.create_namespace({"metadata": _metadata(namespace)})
            log.debug("created namespace %s", namespace)
        except ApiException as exc:
            if not _exists(exc):
                raise

    def _create_or_ignore(self, create, namespace: str, body: dict) -> None:
        try:
            create(namespace, body)
        except ApiException as exc:
            if not _exists(exc):
                raise
            log.debug("%s %s already exists", body.get("kind"), body["metadata"]["name"])

    # ------------------------------------------------------------------
    # RBAC
    # ------------------------------------------------------------------

    def ensure_rbac(self, components: Iterable[str], allow_disable: bool, namespace: str) -> None:
        """
        Namespace, client service account, role, binding and token secret.

        With ``allow_disable`` the role is reset to exactly the requested
        components; otherwise rules are only ever added to an existing role.
        """
        self._ensure_namespace(namespace)

        self._create_or_ignore(
            self.core.create_namespaced_service_account,
            namespace,
            {"apiVersion": "v1", "kind": "ServiceAccount", "metadata": _metadata(BROKER_CLIENT_SA, namespace)},
        )

        wanted = role_rules(components)
        role = {
            "apiVersion": "rbac.authorization.k8s.io/v1",
            "kind": "Role",
            "metadata": _metadata(BROKER_ROLE, namespace),
            "rules": wanted,
        }
        try:
            self.rbac.create_namespaced_role(namespace, role)
        except ApiException as exc:
            if not _exists(exc):
                raise
            if not allow_disable:
                current = self.rbac.read_namespaced_role(BROKER_ROLE, namespace)
                existing = [_rule_dict(r) for r in (current.rules or [])]
                role["rules"] = _merge_rules(existing, wanted)
            self.rbac.replace_namespaced_role(BROKER_ROLE, namespace, role)

        self._create_or_ignore(
            self.rbac.create_namespaced_role_binding,
            namespace,
            {
                "apiVersion": "rbac.authorization.k8s.io/v1",
                "kind": "RoleBinding",
                "metadata": _metadata(BROKER_ROLE, namespace),
                "roleRef": {"apiGroup": "rbac.authorization.k8s.io", "kind": "Role", "name": BROKER_ROLE},
                "subjects": [{"kind": "ServiceAccount", "name": BROKER_CLIENT_SA, "namespace": namespace}],
            },
        )

        self._create_or_ignore(
            self.core.create_namespaced_secret,
            namespace,
            {
                "apiVersion": "v1",
                "kind": "Secret",
                "type": "kubernetes.io/service-account-token",
                "metadata": _metadata(
                    token_secret_name(BROKER_CLIENT_SA),
                    namespace,
                    annotations={"kubernetes.io/service-account.name": BROKER_CLIENT_SA},
                ),
            },
        )

    # ------------------------------------------------------------------
    # Operator
    # ------------------------------------------------------------------

    def ensure_operator(self, namespace: str, image: str, debug: bool) -> None:
        self._ensure_namespace(namespace)

        self._create_or_ignore(
            self.core.create_namespaced_service_account,
            namespace,
            {"apiVersion": "v1", "kind": "ServiceAccount", "metadata": _metadata(OPERATOR_NAME, namespace)},
        )

        labels = {"name": OPERATOR_NAME}
        deployment = {
            "apiVersion": "apps/v1",
            "kind": "Deployment",
            "metadata": _metadata(OPERATOR_NAME, namespace, labels=labels),
            "spec": {
                "replicas": 1,
                "selector": {"matchLabels": labels},
                "template": {
                    "metadata": {"labels": labels},
                    "spec": {
                        "serviceAccountName": OPERATOR_NAME,
                        "containers": [
                            {
                                "name": OPERATOR_NAME,
                                "image": image,
                                "imagePullPolicy": "IfNotPresent",
                                "command": [OPERATOR_NAME],
                                "args": [f"-v={3 if debug else 1}"],
                                "env": [
                                    {"name": "WATCH_NAMESPACE", "value": namespace},
                                    {"name": "OPERATOR_NAME", "value": OPERATOR_NAME},
                                ],
                            }
                        ],
                    },
                },
            },
        }

        try:
            self.apps.create_namespaced_deployment(namespace, deployment)
            log.debug("created operator deployment with image %s", image)
        except ApiException as exc:
            if not _exists(exc):
                raise
            self.apps.replace_namespaced_deployment(OPERATOR_NAME, namespace, deployment)
            log.debug("updated operator deployment with image %s", image)

    # ------------------------------------------------------------------
    # Broker CR
    # ------------------------------------------------------------------

    def ensure_broker_resource(self, namespace: str, spec: BrokerSpec) -> None:
        body = {
            "apiVersion": f"{CR_GROUP}/{CR_VERSION}",
            "kind": "Broker",
            "metadata": _metadata(BROKER_CR_NAME, namespace),
            "spec": spec.to_crd(),
        }
        try:
            self.custom.create_namespaced_custom_object(CR_GROUP, CR_VERSION, namespace, CR_PLURAL, body)
        except ApiException as exc:
            if not _exists(exc):
                raise
            self.custom.patch_namespaced_custom_object(
                CR_GROUP, CR_VERSION, namespace, CR_PLURAL, BROKER_CR_NAME, {"spec": body["spec"]}
            )

    # ------------------------------------------------------------------
    # Globalnet
    # ------------------------------------------------------------------

    def create_addressing_config(self, enabled: bool, cidr: str, cluster_size: int, namespace: str) -> None:
        """
        Create the globalnet ConfigMap, or replace an existing one that records
        the opposite ``globalnetEnabled`` setting.
        """
        body = {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "metadata": _metadata(GLOBALNET_CONFIGMAP, namespace, labels={"component": "submariner-globalnet"}),
            "data": {
                "globalnetEnabled": "true" if enabled else "false",
                "globalnetCidrRange": cidr or "",
                "globalnetClusterSize": str(cluster_size),
                "clusterinfo": "[]",
            },
        }
        try:
            self.core.create_namespaced_config_map(namespace, body)
            return
        except ApiException as exc:
            if not _exists(exc):
                raise

        current = self.core.read_namespaced_config_map(GLOBALNET_CONFIGMAP, namespace)
        if (current.data or {}).get("globalnetEnabled") == body["data"]["globalnetEnabled"]:
            log.debug("ConfigMap %s already exists", GLOBALNET_CONFIGMAP)
            return
        self.core.replace_namespaced_config_map(GLOBALNET_CONFIGMAP, namespace, body)
        log.debug("replaced ConfigMap %s (globalnetEnabled=%s)", GLOBALNET_CONFIGMAP, enabled)

    def validate_no_existing_addressing_config(self, namespace: str, cidr: str) -> None:
        """
        Check an existing globalnet ConfigMap, if any: its range must be valid,
        must match *cidr*, and the global CIDRs already handed to clusters must
        not overlap.
        """
        try:
            cm = self.core.read_namespaced_config_map(GLOBALNET_CONFIGMAP, namespace)
        except ApiException as exc:
            if exc.status == 404:
                return
            raise

        data = cm.data or {}
        if data.get("globalnetEnabled") != "true":
            return

        try:
            existing = parse_globalnet_cidr(data.get("globalnetCidrRange", ""))
        except InvalidCIDR as exc:
            raise AddressingConfigError(f"invalid GlobalnetCidrRange: {exc}") from exc

        requested = parse_globalnet_cidr(cidr)
        if existing != requested:
            raise AddressingConfigError(
                f"{GLOBALNET_CONFIGMAP} already records GlobalnetCidrRange {existing}, requested {requested}"
            )

        try:
            clusters = json.loads(data.get("clusterinfo") or "[]")
        except ValueError as exc:
            raise AddressingConfigError(f"invalid clusterinfo in {GLOBALNET_CONFIGMAP}: {exc}") from exc

        check_overlapping_clusters(clusters)


def check_overlapping_clusters(clusters: List[dict]) -> None:
    networks = []
    for info in clusters:
        cluster_id = info.get("cluster_id", "?")
        for cidr in info.get("global_cidr") or []:
            try:
                networks.append((cluster_id, ipaddress.ip_network(cidr, strict=False)))
            except ValueError as exc:
                raise AddressingConfigError(f"cluster {cluster_id} has invalid global CIDR {cidr}: {exc}") from exc

    for (a_id, a_net), (b_id, b_net) in combinations(networks, 2):
        if a_id != b_id and a_net.overlaps(b_net):
            raise AddressingConfigError(
                f"global CIDR {a_net} of cluster {a_id} overlaps with {b_net} of cluster {b_id}"
            )
