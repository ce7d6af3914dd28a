import json
import os
from pathlib import Path
from typing import Iterable, List

import yaml
from ape import networks, project
from ape.contracts import ContractContainer, ContractInstance

from dx_deployment.constants import LOCAL_BLOCKCHAIN_ENVIRONMENTS
from dx_deployment.errors import DeploymentConfigError, NetworkConfigurationError

ETHERSCAN_API_KEY_ENVVAR = "ETHERSCAN_API_KEY"


def _load_yaml(filepath: Path) -> dict:
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    with open(filepath, "r") as file:
        return json.load(file)


def is_local_network() -> bool:
    """True when connected to a development chain; plugin and chain id checks are skipped there."""
    return networks.provider.network.name in LOCAL_BLOCKCHAIN_ENVIRONMENTS


#
# Plugins
#


def _require_plugin(module: str, package: str, purpose: str) -> None:
    try:
        __import__(module)
    except ImportError:
        raise NetworkConfigurationError(f"Install the {package} plugin to {purpose}.")


def _require_envvar(names: Iterable[str], purpose: str) -> None:
    names = list(names)
    if not any(os.environ.get(name) for name in names):
        raise NetworkConfigurationError(f"Set one of {', '.join(names)} to {purpose}.")


def check_etherscan_plugin() -> None:
    _require_plugin("ape_etherscan", "ape-etherscan", "verify deployed contracts")
    _require_envvar([ETHERSCAN_API_KEY_ENVVAR], "verify deployed contracts")


def check_infura_plugin() -> None:
    if networks.provider.name != "infura":
        return
    _require_plugin("ape_infura", "ape-infura", "reach the network through infura")
    from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES

    _require_envvar(_ENVIRONMENT_VARIABLE_NAMES, "reach the network through infura")


def check_plugins(verify: bool = False) -> None:
    """Fails early when a live run is missing a plugin or an API key."""
    if is_local_network():
        return
    print("Checking plugins...")
    check_infura_plugin()
    if verify:
        check_etherscan_plugin()


def verify_contracts(contracts: List[ContractInstance]) -> None:
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Publishing {instance.contract_type.name} at {instance.address}...")
        explorer.publish_contract(instance.address)


#
# Contracts
#


def get_contract_container(contract_type: str) -> ContractContainer:
    """Looks up a contract type in the project sources, then in its installed dependencies."""
    try:
        return getattr(project, contract_type)
    except AttributeError:
        pass

    matches = list()
    for dependency in project.dependencies.specified:
        try:
            matches.append(getattr(dependency.project, contract_type))
        except AttributeError:
            continue
    if len(matches) > 1:
        raise DeploymentConfigError(
            f"Contract type '{contract_type}' is ambiguous across dependencies"
        )
    if not matches:
        raise DeploymentConfigError(f"No contract type named '{contract_type}' in the project")
    return matches[0]
