#!/usr/bin/python3

from itertools import groupby
from pathlib import Path
from typing import Optional

import click
from ape import networks

from dx_deployment.approvals import ApprovalBatch, BatchApprovalWorkflow
from dx_deployment.backends import ApeBackend
from dx_deployment.caller import ConfigurationCaller
from dx_deployment.constants import DEFAULT_DEPLOYMENT_FILEPATH
from dx_deployment.errors import DeploymentError, NetworkConfigurationError
from dx_deployment.networks import (
    IndexRange,
    NetworkProfile,
    get_profile,
    resolve_operator,
)
from dx_deployment.options import (
    account_option,
    autosign_option,
    endpoint_option,
    network_option,
    registry_option,
    start_option,
    stop_option,
)
from dx_deployment.params import load_deployment
from dx_deployment.pipeline import Pipeline
from dx_deployment.registry import ArtifactRegistry, read_registry, write_registry
from dx_deployment.utils import check_plugins, is_local_network, verify_contracts


def _subset_override(start: Optional[int], stop: Optional[int]) -> Optional[IndexRange]:
    if start is None and stop is None:
        return None
    if start is None or stop is None:
        raise click.UsageError("--start and --stop must be given together.")
    return IndexRange(start=start, stop=stop)


def _check_chain_id(expected_chain_id: int) -> None:
    provider_chain_id = networks.provider.chain_id
    if expected_chain_id != provider_chain_id and not is_local_network():
        raise NetworkConfigurationError(
            f"chain_id in params file ({expected_chain_id}) does not match "
            f"chain_id of current network ({provider_chain_id})."
        )


def _print_connection_info(profile: NetworkProfile, caller: ConfigurationCaller) -> None:
    print(
        f"Network: {profile.id}",
        f"Endpoint: {profile.endpoint}",
        f"Chain ID: {networks.provider.chain_id}",
        f"Account: {caller.operator.address}",
        sep="\n",
    )


def _report_batch(batch: ApprovalBatch) -> None:
    verb = "approved" if batch.approved else "revoked"
    click.secho(f"\nTokens {verb} on {batch.network}:", fg="green")
    for index, address in enumerate(batch.token_addresses, start=1):
        status = batch.statuses.get(address)
        color = "cyan" if status == batch.approved else "red"
        click.secho(f"    {index}. {address} approved={status}", fg=color)


@click.group()
def cli():
    """DutchExchange deployment and token approval."""


@cli.command()
@network_option
@endpoint_option
@account_option
@autosign_option
@click.option(
    "--params",
    "params_filepath",
    help="Filepath of the deployment params YAML.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=DEFAULT_DEPLOYMENT_FILEPATH,
    show_default=True,
)
@click.option("--verify", help="Publish contracts to the block explorer.", is_flag=True)
def deploy(network_id, endpoint, account, autosign, params_filepath, verify):
    """Deploy and configure the contracts in the params file, in order."""
    try:
        profile = get_profile(network_id, endpoint=endpoint, account=account)
        plan = load_deployment(params_filepath)
        with networks.parse_network_choice(profile.endpoint):
            check_plugins(verify=verify)
            _check_chain_id(plan.chain_id)
            caller = ConfigurationCaller(operator=resolve_operator(profile), autosign=autosign)
            _print_connection_info(profile, caller)

            backend = ApeBackend()
            pipeline = Pipeline(plan.steps, backend=backend, caller=caller)
            try:
                pipeline.run()
            except DeploymentError:
                click.secho("\nDeployment halted. Artifacts deployed so far:", fg="red")
                for name, address in pipeline.registry.list():
                    click.secho(f"    {name} {address}", fg="yellow")
                raise

            registry_filepath = write_registry(
                entries=pipeline.registry.entries(chain_id=plan.chain_id),
                filepath=plan.registry_filepath,
            )
            print(f"(i) Registry written to {registry_filepath}!")
            if verify:
                verify_contracts(contracts=list(backend.deployments.values()))
    except DeploymentError as e:
        raise click.ClickException(str(e))


@cli.command(name="approve-tokens")
@network_option
@endpoint_option
@account_option
@autosign_option
@registry_option
@click.option(
    "--addresses",
    "address_filepath",
    help=(
        "Comma or newline separated token addresses. "
        "Not used on rinkeby, which approves the deployed test tokens."
    ),
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    default=None,
)
@start_option
@stop_option
@click.option("--revoke", help="Revoke approval instead of granting it.", is_flag=True)
def approve_tokens(
    network_id,
    endpoint,
    account,
    autosign,
    registry_filepath,
    address_filepath,
    start,
    stop,
    revoke,
):
    """Approve a batch of tokens on the DutchExchange."""
    try:
        profile = get_profile(
            network_id,
            endpoint=endpoint,
            account=account,
            subset_rule=_subset_override(start, stop),
        )
        with networks.parse_network_choice(profile.endpoint):
            check_plugins()
            chain_id = profile.chain_id or networks.provider.chain_id
            registry = ArtifactRegistry.from_file(registry_filepath, chain_id=chain_id)
            caller = ConfigurationCaller(operator=resolve_operator(profile), autosign=autosign)
            _print_connection_info(profile, caller)

            workflow = BatchApprovalWorkflow(
                profile=profile,
                registry=registry,
                backend=ApeBackend(),
                caller=caller,
                address_file=address_filepath,
            )
            batch = workflow.run(approved=not revoke)
    except DeploymentError as e:
        raise click.ClickException(str(e))

    _report_batch(batch)
    if not batch.all_verified:
        raise click.ClickException("Approval status could not be verified for every token.")


@cli.command(name="list-artifacts")
@registry_option
def list_artifacts(registry_filepath):
    """List the artifacts recorded in a registry file."""
    entries = read_registry(filepath=registry_filepath)
    for chain_id, chain_entries in groupby(entries, key=lambda e: e.chain_id):
        click.secho(f"Chain {chain_id}", fg="yellow")
        for index, entry in enumerate(chain_entries, start=1):
            click.secho(
                f"    {index}. {entry.name} ({entry.contract_type}) {entry.address}", fg="cyan"
            )


if __name__ == "__main__":
    cli()
