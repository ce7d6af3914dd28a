from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional, Sequence

from ape import accounts
from ape.api import AccountAPI
from ape.exceptions import AccountsError

from dx_deployment.constants import (
    CUSTOM,
    KOVAN,
    LOCAL,
    MAINNET,
    NETWORK_CHAIN_IDS,
    NETWORK_ENDPOINTS,
    RINKEBY,
    SUPPORTED_NETWORKS,
    TEST_TOKEN_ARTIFACTS,
)
from dx_deployment.errors import NetworkConfigurationError

#
# Address subset rules
#


class AddressSubsetRule(ABC):
    """Selects the addresses submitted in an approval batch."""

    # True when the addresses come from registered artifacts rather than an address list
    uses_registry = False

    @abstractmethod
    def select(self, addresses: List[str]) -> List[str]:
        raise NotImplementedError

    def __eq__(self, other) -> bool:
        return type(self) is type(other) and vars(self) == vars(other)

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in vars(self).items())
        return f"{type(self).__name__}({fields})"


class FullList(AddressSubsetRule):
    def select(self, addresses: List[str]) -> List[str]:
        return list(addresses)

    def describe(self) -> str:
        return "all listed addresses"


class IndexRange(AddressSubsetRule):
    def __init__(self, start: int, stop: int):
        if start < 0 or stop < start:
            raise NetworkConfigurationError(f"Invalid address index range [{start}, {stop})")
        self.start = start
        self.stop = stop

    def select(self, addresses: List[str]) -> List[str]:
        if self.stop > len(addresses):
            raise NetworkConfigurationError(
                f"Address index range [{self.start}, {self.stop}) exceeds "
                f"the {len(addresses)} listed addresses"
            )
        return list(addresses[self.start : self.stop])

    def describe(self) -> str:
        return f"listed addresses [{self.start}, {self.stop})"


class NamedArtifacts(AddressSubsetRule):
    uses_registry = True

    def __init__(self, names: Sequence[str]):
        if not names:
            raise NetworkConfigurationError("At least one artifact name is required")
        self.names = tuple(names)

    def select(self, addresses: List[str]) -> List[str]:
        # addresses were already loaded from exactly these artifacts
        return list(addresses)

    def describe(self) -> str:
        return f"artifacts {', '.join(self.names)}"


# The index range used for development networks is configuration,
# not a property of the address list; override it with --start/--stop.
DEFAULT_DEVELOPMENT_RANGE = IndexRange(start=2, stop=7)

ADDRESS_SUBSET_RULES: Dict[str, AddressSubsetRule] = {
    LOCAL: DEFAULT_DEVELOPMENT_RANGE,
    KOVAN: DEFAULT_DEVELOPMENT_RANGE,
    RINKEBY: NamedArtifacts(TEST_TOKEN_ARTIFACTS),
    MAINNET: FullList(),
    CUSTOM: FullList(),
}

#
# Profiles
#


class NetworkProfile(NamedTuple):
    """Immutable per-run network configuration."""

    id: str
    endpoint: str
    chain_id: Optional[int]
    account: Optional[str]
    subset_rule: AddressSubsetRule

    @property
    def is_local(self) -> bool:
        return self.id == LOCAL


def get_profile(
    network_id: str,
    endpoint: Optional[str] = None,
    account: Optional[str] = None,
    subset_rule: Optional[AddressSubsetRule] = None,
) -> NetworkProfile:
    if network_id not in SUPPORTED_NETWORKS:
        raise NetworkConfigurationError(
            f"Unknown network '{network_id}'; expected one of {', '.join(SUPPORTED_NETWORKS)}"
        )
    if network_id == CUSTOM:
        if not endpoint:
            raise NetworkConfigurationError("The custom network requires an endpoint")
    elif endpoint is None:
        endpoint = NETWORK_ENDPOINTS[network_id]

    return NetworkProfile(
        id=network_id,
        endpoint=endpoint,
        chain_id=NETWORK_CHAIN_IDS.get(network_id),
        account=account,
        subset_rule=subset_rule or ADDRESS_SUBSET_RULES[network_id],
    )


def resolve_operator(profile: NetworkProfile) -> AccountAPI:
    """Returns the configured account, or the first available one."""
    if profile.account:
        try:
            return accounts.load(profile.account)
        except (AccountsError, IndexError) as e:
            raise NetworkConfigurationError(f"Cannot load account '{profile.account}': {e}")

    if profile.is_local:
        return accounts.test_accounts[0]

    available = list(accounts)
    if not available:
        raise NetworkConfigurationError(
            f"No accounts available for {profile.id}; import one with 'ape accounts import'"
        )
    return available[0]
