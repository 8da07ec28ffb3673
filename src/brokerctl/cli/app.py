# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/brokerctl/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
import yaml

from brokerctl.config.loader import load_request
from brokerctl.deploy.broker import deploy_broker
from brokerctl.descriptor.store import BROKER_DETAILS_FILENAME, DescriptorStore
from brokerctl.errors import BrokerError
from brokerctl.k8s.connection import KubeConnectionProducer
from brokerctl.logging.log import init_logging
from brokerctl.observers.console import ConsoleObserver
from brokerctl.observers.dispatcher import EventBus
from brokerctl.observers.jsonfile import JsonFileObserver
from brokerctl.observers.logger import LoggerObserver
from brokerctl.reporter.event_reporter import EventReporter


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Broker deployment CLI")


@app.command("deploy-broker")
def deploy_broker_cmd(
    config: Optional[Path] = typer.Option(None, "--config", help="YAML file with deployment parameters"),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", envvar="KUBECONFIG", help="Path to kubeconfig"),
    context: Optional[str] = typer.Option(None, "--context", help="Kubeconfig context to use"),
    components: Optional[str] = typer.Option(
        None, "--components", help="Comma separated components: service-discovery,connectivity"
    ),
    globalnet: Optional[bool] = typer.Option(None, "--globalnet/--no-globalnet", help="Enable globalnet"),
    globalnet_cidr_range: Optional[str] = typer.Option(None, "--globalnet-cidr-range", help="GlobalCIDR range"),
    globalnet_cluster_size: Optional[int] = typer.Option(
        None, "--globalnet-cluster-size", help="Global IPs per cluster (power of 2)"
    ),
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Broker namespace"),
    repository: Optional[str] = typer.Option(None, "--repository", help="Image repository"),
    version: Optional[str] = typer.Option(None, "--version", help="Image version"),
    operator_debug: Optional[bool] = typer.Option(None, "--operator-debug", help="Verbose operator logs"),
    ipsec_psk_from: Optional[str] = typer.Option(
        None, "--ipsec-psk-from", help="Import the IPsec PSK from this broker-info file"
    ),
    custom_domains: Optional[str] = typer.Option(None, "--custom-domains", help="Comma separated custom domains"),
    output: Path = typer.Option(Path(BROKER_DETAILS_FILENAME), "--output", help="Where to write the broker info"),
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logs on the console"),
):
    """
    Set up the broker on the cluster and write the broker-info file.
    """
    logger, run_id, log_path = init_logging(verbose=verbose)

    overrides = {
        "components": components,
        "globalnet_enabled": globalnet,
        "globalnet_cidr_range": globalnet_cidr_range,
        "globalnet_cluster_size": globalnet_cluster_size,
        "broker_namespace": namespace,
        "repository": repository,
        "image_version": version,
        "operator_debug": operator_debug,
        "ipsec_psk_from": ipsec_psk_from,
        "custom_domains": custom_domains,
    }

    try:
        request = load_request(config, overrides)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        typer.echo(f"Error: invalid deployment parameters: {exc}", err=True)
        raise typer.Exit(code=2)

    bus = EventBus(
        observers=[
            ConsoleObserver(),
            LoggerObserver(logger),
            JsonFileObserver(log_path.with_suffix(".jsonl")),
        ]
    )
    reporter = EventReporter(bus, namespace=request.broker_namespace, context=context, run_id=run_id)

    try:
        deploy_broker(
            request,
            KubeConnectionProducer(kubeconfig=kubeconfig, context=context),
            reporter,
            descriptor_path=output,
        )
    except BrokerError as exc:
        logger.error("deploy-broker failed: %s", exc, exc_info=True)
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Broker deployed; join clusters with {output}")


@app.command("show-broker-info")
def show_broker_info(
    path: Path = typer.Argument(Path(BROKER_DETAILS_FILENAME), help="broker-info file to inspect"),
):
    """
    Print the non-secret parts of a broker-info file.
    """
    try:
        descriptor = DescriptorStore().load(path)
    except BrokerError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Broker URL:        {descriptor.broker_url}")
    typer.echo(f"Components:        {', '.join(descriptor.components)}")
    typer.echo(f"Service discovery: {'yes' if descriptor.service_discovery else 'no'}")
    if descriptor.custom_domains:
        typer.echo(f"Custom domains:    {', '.join(descriptor.custom_domains)}")
    typer.echo(f"IPsec PSK:         {descriptor.ipsec_psk.name} (present)")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
