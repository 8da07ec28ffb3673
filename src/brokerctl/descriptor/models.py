# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/descriptor/models.py

from __future__ import annotations

import base64
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

IPSEC_PSK_SECRET_NAME = "submariner-ipsec-psk"


class SecretMaterial(BaseModel):
    """Secret data in the shape of a Kubernetes Secret (values are base64)."""

    name: str
    namespace: Optional[str] = None
    data: Dict[str, str] = Field(default_factory=dict)

    def value(self, key: str) -> bytes:
        return base64.b64decode(self.data[key])

    @classmethod
    def from_bytes(cls, name: str, values: Dict[str, bytes], namespace: Optional[str] = None) -> "SecretMaterial":
        return cls(
            name=name,
            namespace=namespace,
            data={k: base64.b64encode(v).decode("ascii") for k, v in values.items()},
        )


class BrokerDescriptor(BaseModel):
    """
    What a joining cluster needs to reach the broker.

    Serialized with the camelCase keys the join workflow reads.
    """

    model_config = ConfigDict(populate_by_name=True)

    broker_url: str = Field(alias="brokerURL")
    client_token: Optional[SecretMaterial] = Field(None, alias="clientToken")
    ipsec_psk: SecretMaterial = Field(alias="ipsecPSK")
    service_discovery: bool = Field(False, alias="serviceDiscovery")
    components: List[str] = Field(default_factory=list)
    custom_domains: Optional[List[str]] = Field(None, alias="customDomains")

    def set_components(self, components) -> None:
        self.components = sorted(set(components))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
