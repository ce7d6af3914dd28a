from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence

import click
from eth_typing import ChecksumAddress

from dx_deployment.addresses import parse_address_list, validate_addresses
from dx_deployment.backends import ContractBackend, ContractHandle
from dx_deployment.caller import ConfigurationCaller
from dx_deployment.constants import (
    APPROVE_TOKENS_METHOD,
    APPROVED_TOKENS_GETTER,
    AUCTIONEER_GETTER,
    EXCHANGE_ARTIFACT,
    EXCHANGE_CONTRACT_TYPE,
)
from dx_deployment.errors import (
    ApprovalCallFailure,
    DeploymentError,
    NetworkConfigurationError,
)
from dx_deployment.networks import NetworkProfile
from dx_deployment.registry import ArtifactRegistry

#
# Address sources
#


class AddressSource(ABC):
    @abstractmethod
    def load(self) -> List[str]:
        """Returns the raw, unvalidated address entries in order."""
        raise NotImplementedError


class FileAddressSource(AddressSource):
    def __init__(self, filepath: Path):
        self.filepath = Path(filepath)

    def load(self) -> List[str]:
        with open(self.filepath, "r") as file:
            return parse_address_list(file.read())

    def __str__(self) -> str:
        return str(self.filepath)


class RegistryAddressSource(AddressSource):
    def __init__(self, registry: ArtifactRegistry, names: Sequence[str]):
        self.registry = registry
        self.names = list(names)

    def load(self) -> List[str]:
        return [self.registry.resolve(name) for name in self.names]

    def __str__(self) -> str:
        return f"registry artifacts {', '.join(self.names)}"


#
# Workflow
#


class ApprovalState(Enum):
    LOAD_ADDRESSES = "load addresses"
    VALIDATE = "validate"
    SELECT_SUBSET = "select subset"
    APPROVE = "approve"
    VERIFY = "verify"
    REPORT = "report"
    FAILED = "failed"


class ApprovalBatch(NamedTuple):
    token_addresses: List[ChecksumAddress]
    network: str
    approved: bool
    statuses: Dict[ChecksumAddress, bool]

    @property
    def all_verified(self) -> bool:
        return all(self.statuses.get(a) == self.approved for a in self.token_addresses)


class BatchApprovalWorkflow:
    """
    Approves (or revokes) a batch of tokens on the exchange in a single call.

    Addresses are loaded, validated and narrowed down by the network profile's
    subset rule before anything is sent; one approval transaction covers the
    whole subset and each token's approval status is read back afterwards.
    """

    def __init__(
        self,
        profile: NetworkProfile,
        registry: ArtifactRegistry,
        backend: ContractBackend,
        caller: ConfigurationCaller,
        address_file: Optional[Path] = None,
        exchange_artifact: str = EXCHANGE_ARTIFACT,
        exchange_contract_type: str = EXCHANGE_CONTRACT_TYPE,
    ):
        self.profile = profile
        self.registry = registry
        self.backend = backend
        self.caller = caller
        self.address_file = address_file
        self.exchange_artifact = exchange_artifact
        self.exchange_contract_type = exchange_contract_type
        self.state = ApprovalState.LOAD_ADDRESSES
        self.failed_at: Optional[ApprovalState] = None

    def _source(self) -> AddressSource:
        rule = self.profile.subset_rule
        if rule.uses_registry:
            return RegistryAddressSource(self.registry, rule.names)
        if self.address_file is None:
            raise NetworkConfigurationError(
                f"An address list file is required for {self.profile.id} "
                f"({rule.describe()})"
            )
        return FileAddressSource(self.address_file)

    def _exchange(self) -> ContractHandle:
        address = self.registry.resolve(self.exchange_artifact)
        return self.backend.at(self.exchange_contract_type, address)

    def load_addresses(self) -> List[str]:
        self.state = ApprovalState.LOAD_ADDRESSES
        source = self._source()
        click.echo(f"Loading token addresses from {source}")
        return source.load()

    def validate(self, entries: List[str]) -> List[ChecksumAddress]:
        self.state = ApprovalState.VALIDATE
        return validate_addresses(entries)

    def select_subset(self, addresses: List[ChecksumAddress]) -> List[ChecksumAddress]:
        self.state = ApprovalState.SELECT_SUBSET
        rule = self.profile.subset_rule
        subset = rule.select(addresses)
        click.echo(f"Selected {len(subset)} of {len(addresses)} tokens ({rule.describe()})")
        return subset

    def approve(
        self, exchange: ContractHandle, subset: List[ChecksumAddress], approved: bool
    ) -> None:
        self.state = ApprovalState.APPROVE
        try:
            auctioneer = exchange.view(AUCTIONEER_GETTER)
            click.echo(f"Exchange {exchange.address} auctioneer: {auctioneer}")
            self.caller.call(exchange, APPROVE_TOKENS_METHOD, [subset, approved])
        except DeploymentError:
            raise
        except Exception as e:
            raise ApprovalCallFailure(subset=subset, cause=e) from e

    def verify(
        self, exchange: ContractHandle, subset: List[ChecksumAddress]
    ) -> Dict[ChecksumAddress, bool]:
        self.state = ApprovalState.VERIFY
        statuses = dict()
        try:
            for address in subset:
                statuses[address] = bool(exchange.view(APPROVED_TOKENS_GETTER, [address]))
        except Exception as e:
            raise ApprovalCallFailure(subset=subset, cause=e) from e
        return statuses

    def run(self, approved: bool = True) -> ApprovalBatch:
        try:
            entries = self.load_addresses()
            addresses = self.validate(entries)
            subset = self.select_subset(addresses)
            statuses = dict()
            if subset:
                exchange = self._exchange()
                self.approve(exchange, subset, approved)
                statuses = self.verify(exchange, subset)
            else:
                click.echo("No tokens selected; nothing to approve.")
        except Exception:
            self.failed_at = self.state
            self.state = ApprovalState.FAILED
            raise

        self.state = ApprovalState.REPORT
        return ApprovalBatch(
            token_addresses=subset,
            network=self.profile.id,
            approved=approved,
            statuses=statuses,
        )
