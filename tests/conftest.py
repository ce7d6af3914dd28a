from typing import Any, Dict, List, Sequence

import pytest

from dx_deployment.backends import ContractBackend, ContractHandle
from dx_deployment.caller import ConfigurationCaller
from dx_deployment.registry import ArtifactRegistry

OPERATOR_ADDRESS = "0x" + "ab" * 20
AUCTIONEER_ADDRESS = OPERATOR_ADDRESS


def make_address(n: int) -> str:
    return "0x" + f"{n:040x}"


class FakeOperator:
    def __init__(self, address: str = OPERATOR_ADDRESS):
        self.address = address


class FakeReceipt:
    def __init__(self, method: str, args: List[Any]):
        self.method = method
        self.args = args
        self.confirmed = True


class FakeHandle(ContractHandle):
    def __init__(self, backend: "FakeBackend", contract_type: str, address: str):
        self.backend = backend
        self.contract_type = contract_type
        self.address = address

    def call(self, method: str, args: Sequence[Any], sender: Any) -> FakeReceipt:
        self.backend.calls.append((self.contract_type, self.address, method, list(args), sender))
        if method in self.backend.failing:
            raise RuntimeError(f"{method} reverted")
        if method == "updateApprovalOfToken":
            tokens, approved = args
            for token in tokens:
                self.backend.approved[token] = approved
        return FakeReceipt(method, list(args))

    def view(self, method: str, args: Sequence[Any] = ()) -> Any:
        self.backend.views.append((self.contract_type, self.address, method, list(args)))
        if method in self.backend.failing:
            raise RuntimeError(f"{method} reverted")
        if method == "approvedTokens":
            return self.backend.approved.get(args[0], False)
        if method == "auctioneer":
            return AUCTIONEER_ADDRESS
        raise AttributeError(method)


class FakeBackend(ContractBackend):
    """In-memory stand-in for a chain; addresses are handed out sequentially."""

    def __init__(self):
        self.deployed: List[tuple] = list()
        self.links: List[tuple] = list()
        self.calls: List[tuple] = list()
        self.views: List[tuple] = list()
        self.approved: Dict[str, bool] = dict()
        self.lookups: List[tuple] = list()
        self.failing = set()

    def deploy(self, contract_type: str, args: Sequence[Any], sender: Any) -> str:
        if contract_type in self.failing:
            raise RuntimeError(f"{contract_type} deployment reverted")
        address = make_address(len(self.deployed) + 1)
        self.deployed.append((contract_type, list(args), sender, address))
        return address

    def link(self, library_type: str, library_address: str, consumers: Sequence[str]) -> None:
        self.links.append((library_type, library_address, list(consumers)))

    def at(self, contract_type: str, address: str) -> FakeHandle:
        self.lookups.append((contract_type, address))
        return FakeHandle(self, contract_type, address)

    @property
    def deployed_types(self) -> List[str]:
        return [contract_type for contract_type, *_ in self.deployed]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def operator():
    return FakeOperator()


@pytest.fixture
def caller(operator):
    return ConfigurationCaller(operator=operator, autosign=True)


@pytest.fixture
def registry():
    return ArtifactRegistry()


@pytest.fixture
def token_addresses():
    return [make_address(0x100 + i) for i in range(10)]


@pytest.fixture
def address_file(tmp_path, token_addresses):
    filepath = tmp_path / "tokens.txt"
    filepath.write_text(",".join(token_addresses))
    return filepath
