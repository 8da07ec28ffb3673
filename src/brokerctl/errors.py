# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/errors.py
"""
Error taxonomy for broker deployments.

Validation errors are raised before anything touches the cluster.
Every other error is raised from the failing collaborator's exception and
its message names the phase that failed.
"""


class BrokerError(RuntimeError):
    """Base class for broker deployment failures."""


class InvalidComponents(BrokerError):
    """Raised when the requested component set is empty or unknown."""


class InvalidCIDR(BrokerError):
    """Raised when the globalnet CIDR range is malformed or reserved."""


class InvalidClusterSize(BrokerError):
    """Raised when no per-cluster globalnet size fits the range."""


class InvalidKubeconfig(BrokerError):
    """Raised when no cluster connection can be built from the kubeconfig."""


class RBACProvisioningError(BrokerError):
    pass


class OperatorImageResolutionError(BrokerError):
    pass


class OperatorDeploymentError(BrokerError):
    pass


class BrokerResourceError(BrokerError):
    pass


class AddressingConfigError(BrokerError):
    """Raised when the globalnet configuration cannot be validated or created."""


class DescriptorBuildError(BrokerError):
    pass


class DescriptorIOError(BrokerError):
    """Raised when the broker descriptor file cannot be read, rotated or written."""
