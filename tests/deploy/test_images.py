import pytest

from brokerctl.deploy.images import resolve_operator_image
from brokerctl.errors import OperatorImageResolutionError


def test_defaults():
    assert resolve_operator_image(None, None) == "quay.io/submariner/submariner-operator:devel"


def test_repository_and_version():
    assert resolve_operator_image("0.17.0", "registry.local/sub/") == "registry.local/sub/submariner-operator:0.17.0"


def test_digest_version():
    ref = resolve_operator_image("@sha256:abc123", "quay.io/x")
    assert ref == "quay.io/x/submariner-operator@sha256:abc123"


def test_override_wins():
    ref = resolve_operator_image("0.17.0", "quay.io/x", {"submariner-operator": "mirror/op:pinned"})
    assert ref == "mirror/op:pinned"


@pytest.mark.parametrize("version,repository", [("bad tag", None), ("0.1", "has space/repo")])
def test_malformed_coordinates(version, repository):
    with pytest.raises(OperatorImageResolutionError):
        resolve_operator_image(version, repository)
