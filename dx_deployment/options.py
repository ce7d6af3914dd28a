from pathlib import Path

import click

from dx_deployment.constants import DEFAULT_NETWORK, SUPPORTED_NETWORKS
from dx_deployment.types import AddressIndex

network_option = click.option(
    "--network",
    "-n",
    "network_id",
    help="Target network profile.",
    type=click.Choice(SUPPORTED_NETWORKS),
    default=DEFAULT_NETWORK,
    show_default=True,
)

endpoint_option = click.option(
    "--endpoint",
    help="ape network choice or provider URI; required for the custom network.",
    default=None,
)

account_option = click.option(
    "--account",
    "-a",
    help="Alias of the ape account to transact with. Defaults to the first available account.",
    default=None,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation.",
    is_flag=True,
    default=False,
)

registry_option = click.option(
    "--registry",
    "-r",
    "registry_filepath",
    help="Filepath of the deployment registry.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=True,
)

start_option = click.option(
    "--start",
    help="First index of the address list to approve (development networks).",
    type=AddressIndex(),
    default=None,
)

stop_option = click.option(
    "--stop",
    help="Index after the last address to approve (development networks).",
    type=AddressIndex(),
    default=None,
)
