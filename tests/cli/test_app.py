import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

import brokerctl.cli.app as app_mod
from brokerctl.descriptor.models import BrokerDescriptor
from brokerctl.descriptor.store import DescriptorStore, generate_psk
from brokerctl.errors import BrokerResourceError

runner = CliRunner()


@pytest.fixture(autouse=True)
def _log_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("BROKERCTL_LOG_DIR", str(tmp_path / "logs"))


class SpyDeploy:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, request, producer, reporter, descriptor_path=None, **kw):
        self.calls.append((request, producer, descriptor_path))
        phase = reporter.started("Setting up broker RBAC")
        reporter.ended_with(phase, self.error)
        if self.error:
            raise self.error


def test_deploy_broker_merges_config_and_flags(tmp_path: Path, monkeypatch):
    spy = SpyDeploy()
    monkeypatch.setattr(app_mod, "deploy_broker", spy)

    cfg = tmp_path / "request.yaml"
    cfg.write_text(textwrap.dedent("""
        components: [connectivity]
        repository: quay.io/from-file
        globalnet_enabled: true
    """))
    out = tmp_path / "broker-info.subm"

    result = runner.invoke(app_mod.app, [
        "deploy-broker", "--config", str(cfg), "--repository", "quay.io/from-flag",
        "--globalnet-cluster-size", "1024", "--context", "east", "--output", str(out),
    ])

    assert result.exit_code == 0, result.output
    request, producer, path = spy.calls[0]
    assert request.components == ["connectivity"]
    assert request.repository == "quay.io/from-flag"
    assert request.globalnet_enabled is True
    assert request.globalnet_cluster_size == 1024
    assert producer.context == "east"
    assert path == out
    assert "⚙ Setting up broker RBAC" in result.output
    assert list((tmp_path / "logs").glob("*.jsonl"))


def test_deploy_broker_failure_exits_1(monkeypatch):
    spy = SpyDeploy(error=BrokerResourceError("error deploying the broker: crd missing"))
    monkeypatch.setattr(app_mod, "deploy_broker", spy)

    result = runner.invoke(app_mod.app, ["deploy-broker", "--components", "connectivity"])

    assert result.exit_code == 1
    assert "error deploying the broker: crd missing" in result.output


def test_deploy_broker_bad_parameters_exit_2(monkeypatch):
    spy = SpyDeploy()
    monkeypatch.setattr(app_mod, "deploy_broker", spy)

    result = runner.invoke(app_mod.app, ["deploy-broker", "--globalnet-cluster-size", "-4"])

    assert result.exit_code == 2
    assert spy.calls == []


def test_show_broker_info(tmp_path: Path):
    path = tmp_path / "broker-info.subm"
    DescriptorStore().persist(
        BrokerDescriptor(
            broker_url="api.example:6443",
            ipsec_psk=generate_psk(),
            components=["connectivity", "service-discovery"],
            service_discovery=True,
            custom_domains=["example.org"],
        ),
        path,
    )

    result = runner.invoke(app_mod.app, ["show-broker-info", str(path)])

    assert result.exit_code == 0, result.output
    assert "api.example:6443" in result.output
    assert "connectivity, service-discovery" in result.output
    assert "example.org" in result.output


def test_show_broker_info_missing_file(tmp_path: Path):
    result = runner.invoke(app_mod.app, ["show-broker-info", str(tmp_path / "nope")])
    assert result.exit_code == 1
