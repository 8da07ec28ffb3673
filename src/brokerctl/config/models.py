# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/config/models.py

from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

DEFAULT_BROKER_NAMESPACE = "submariner-k8s-broker"
DEFAULT_GLOBALNET_CIDR_RANGE = "242.0.0.0/8"


class DeploymentRequest(BaseModel):
    """Input for one broker deployment attempt."""

    components: List[str] = Field(default_factory=lambda: ["service-discovery", "connectivity"])
    globalnet_enabled: bool = False
    globalnet_cidr_range: str = DEFAULT_GLOBALNET_CIDR_RANGE
    globalnet_cluster_size: int = 0          # 0 -> derive from the range
    broker_namespace: str = DEFAULT_BROKER_NAMESPACE
    repository: Optional[str] = None
    image_version: Optional[str] = None
    operator_debug: bool = False
    custom_domains: List[str] = Field(default_factory=list)
    ipsec_psk_from: Optional[str] = None     # descriptor file to take the PSK from

    @field_validator("components", "custom_domains", mode="before")
    @classmethod
    def _split_csv(cls, v):
        # accept "a,b" as well as lists, both from YAML and the CLI
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("globalnet_cluster_size")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("globalnet_cluster_size must be >= 0")
        return v


class BrokerSpec(BaseModel):
    """Spec of the Broker custom resource, serialized with the CRD's camelCase keys."""

    components: List[str]
    globalnet_enabled: bool = Field(False, serialization_alias="globalnetEnabled")
    globalnet_cidr_range: Optional[str] = Field(None, serialization_alias="globalnetCIDRRange")
    default_globalnet_cluster_size: int = Field(0, serialization_alias="defaultGlobalnetClusterSize")
    default_custom_domains: List[str] = Field(default_factory=list, serialization_alias="defaultCustomDomains")

    def to_crd(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
