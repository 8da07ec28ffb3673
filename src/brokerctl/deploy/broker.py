# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/deploy/broker.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import AbstractSet, Callable, List, Optional

from ..config.models import BrokerSpec, DeploymentRequest
from ..descriptor.models import BrokerDescriptor, SecretMaterial
from ..descriptor.store import BROKER_DETAILS_FILENAME, DescriptorStore
from ..errors import (
    AddressingConfigError,
    BrokerError,
    BrokerResourceError,
    DescriptorBuildError,
    DescriptorIOError,
    InvalidCIDR,
    InvalidClusterSize,
    InvalidComponents,
    InvalidKubeconfig,
    OperatorDeploymentError,
    OperatorImageResolutionError,
    RBACProvisioningError,
)
from ..k8s.provisioner import ClusterProvisioner, KubeProvisioner
from ..reporter.interface import Phase, Reporter
from .components import SERVICE_DISCOVERY, VALID_COMPONENTS, final_components
from .images import resolve_operator_image
from .validation import validate_components, validate_globalnet_config

log = logging.getLogger("brokerctl")

OPERATOR_NAMESPACE = "submariner-operator"


def deploy_broker(
    request: DeploymentRequest,
    connection_producer,
    reporter: Reporter,
    *,
    provisioner_factory: Callable[..., ClusterProvisioner] = KubeProvisioner,
    image_resolver: Callable[..., str] = resolve_operator_image,
    store: Optional[DescriptorStore] = None,
    descriptor_path: str | Path = BROKER_DETAILS_FILENAME,
    valid_components: AbstractSet[str] = VALID_COMPONENTS,
) -> BrokerDescriptor:
    """
    Deploy the broker and write its descriptor.

    Phases run strictly in order and stop at the first failure. Nothing is
    rolled back: every phase tolerates objects left by an earlier attempt, so
    the caller retries by calling this again. Validation failures are raised
    before the reporter sees anything.
    """
    store = store or DescriptorStore()

    try:
        validate_components(request.components, valid_components)
    except InvalidComponents as exc:
        raise InvalidComponents(f"invalid components parameter: {exc}") from exc

    try:
        cluster_size = validate_globalnet_config(request)
    except (InvalidCIDR, InvalidClusterSize) as exc:
        raise type(exc)(f"invalid GlobalCIDR configuration: {exc}") from exc

    components = final_components(request.components, request.globalnet_enabled)

    try:
        connection = connection_producer.for_cluster()
    except Exception as exc:
        raise InvalidKubeconfig(f"the provided kubeconfig is invalid: {exc}") from exc

    provisioner = provisioner_factory(connection)

    spec = BrokerSpec(
        components=components,
        globalnet_enabled=request.globalnet_enabled,
        globalnet_cidr_range=request.globalnet_cidr_range if request.globalnet_enabled else None,
        default_globalnet_cluster_size=cluster_size,
        default_custom_domains=request.custom_domains,
    )

    _deploy(request, spec, provisioner, image_resolver, reporter)

    return _write_descriptor(
        request,
        components=components,
        cluster_size=cluster_size,
        connection=connection,
        provisioner=provisioner,
        store=store,
        path=Path(descriptor_path),
        reporter=reporter,
    )


def _deploy(
    request: DeploymentRequest,
    spec: BrokerSpec,
    provisioner: ClusterProvisioner,
    image_resolver: Callable[..., str],
    reporter: Reporter,
) -> None:
    namespace = request.broker_namespace

    # 1) RBAC
    phase = reporter.started("Setting up broker RBAC")
    try:
        provisioner.ensure_rbac(request.components, False, namespace)
    except Exception as exc:
        err = RBACProvisioningError(f"error setting up broker RBAC: {exc}")
        reporter.ended_with(phase, err)
        raise err from exc
    reporter.ended_with(phase, None)

    # 2) Operator
    phase = reporter.started("Deploying the Submariner operator")
    try:
        image = image_resolver(request.image_version, request.repository, None)
    except Exception as exc:
        err = OperatorImageResolutionError(f"error getting Operator image: {exc}")
        reporter.ended_with(phase, err)
        raise err from exc

    log.debug("operator image resolved to %s", image)
    try:
        provisioner.ensure_operator(OPERATOR_NAMESPACE, image, request.operator_debug)
    except Exception as exc:
        err = OperatorDeploymentError(f"error deploying the operator: {exc}")
        reporter.ended_with(phase, err)
        raise err from exc
    reporter.ended_with(phase, None)

    # 3) Broker resource
    phase = reporter.started("Deploying the broker")
    try:
        provisioner.ensure_broker_resource(namespace, spec)
    except Exception as exc:
        err = BrokerResourceError(f"error deploying the broker: {exc}")
        reporter.failed(phase, "Broker deployment failed")
        reporter.ended_with(phase, err)
        raise err from exc

    reporter.succeeded(phase, "The broker has been deployed")
    reporter.ended_with(phase, None)


def _resolve_psk(
    request: DeploymentRequest,
    store: DescriptorStore,
    path: Path,
    reporter: Reporter,
    phase: Phase,
) -> Optional[SecretMaterial]:
    if request.ipsec_psk_from:
        # An explicitly requested source must be readable.
        try:
            pinned = store.load(request.ipsec_psk_from)
        except DescriptorIOError as exc:
            raise DescriptorIOError(f"error reading the IPsec PSK source: {exc}") from exc
        reporter.succeeded(phase, f"Using IPsec PSK from {request.ipsec_psk_from}")
        return pinned.ipsec_psk

    try:
        existing, found = store.load_if_exists(path)
    except DescriptorIOError as exc:
        # Treated as absent; the unreadable file is still rotated aside below.
        log.warning("ignoring unreadable %s: %s", path, exc)
        reporter.warned(phase, f"Ignoring unreadable {path}")
        existing, found = None, False

    if found:
        reporter.warned(phase, f"Reusing IPsec PSK from existing {path}")
        return existing.ipsec_psk

    reporter.succeeded(phase, f"A new IPsec PSK will be generated for {path}")
    return None


def _write_descriptor(
    request: DeploymentRequest,
    *,
    components: List[str],
    cluster_size: int,
    connection,
    provisioner: ClusterProvisioner,
    store: DescriptorStore,
    path: Path,
    reporter: Reporter,
) -> BrokerDescriptor:
    namespace = request.broker_namespace
    phase = reporter.started(f"Creating {path} file")

    try:
        psk = _resolve_psk(request, store, path, reporter, phase)

        try:
            descriptor = store.build_from_cluster(connection, namespace, psk)
        except Exception as exc:
            raise DescriptorBuildError(f"error preparing the {path} data file: {exc}") from exc

        descriptor.service_discovery = SERVICE_DISCOVERY in components
        descriptor.set_components(components)
        if request.custom_domains:
            descriptor.custom_domains = list(request.custom_domains)

        # The previous file is only rotated aside once every cluster-side step has succeeded.
        if request.globalnet_enabled:
            try:
                provisioner.validate_no_existing_addressing_config(namespace, request.globalnet_cidr_range)
            except Exception as exc:
                raise AddressingConfigError(f"error validating existing globalCIDR configmap: {exc}") from exc

        try:
            provisioner.create_addressing_config(
                request.globalnet_enabled,
                request.globalnet_cidr_range if request.globalnet_enabled else "",
                cluster_size,
                namespace,
            )
        except Exception as exc:
            raise AddressingConfigError(f"error creating globalCIDR configmap on Broker: {exc}") from exc

        try:
            backup = store.backup_if_exists(path)
        except DescriptorIOError as exc:
            raise DescriptorIOError(f"error backing up the broker file: {exc}") from exc

        if backup:
            reporter.succeeded(phase, f"Backed up previous {path} to {backup}")

        try:
            store.persist(descriptor, path)
        except DescriptorIOError as exc:
            raise DescriptorIOError(f"error writing the broker information: {exc}") from exc

    except BrokerError as err:
        reporter.ended_with(phase, err)
        raise

    reporter.ended_with(phase, None)
    return descriptor
