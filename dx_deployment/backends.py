from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence

from ape import compilers
from ape.api import AccountAPI, ReceiptAPI
from ape.contracts.base import ContractContainer, ContractInstance
from eth_typing import ChecksumAddress
from ethpm_types import MethodABI
from web3.auto import w3

from dx_deployment.errors import InvalidParameter
from dx_deployment.utils import get_contract_container

#
# Collaborator interface
#


class ContractHandle(ABC):
    """A deployed contract that can be called and viewed."""

    contract_type: str
    address: ChecksumAddress

    @abstractmethod
    def call(self, method: str, args: Sequence[Any], sender: Any) -> Any:
        """Sends a transaction and returns once it is confirmed."""
        raise NotImplementedError

    @abstractmethod
    def view(self, method: str, args: Sequence[Any] = ()) -> Any:
        raise NotImplementedError


class ContractBackend(ABC):
    @abstractmethod
    def deploy(self, contract_type: str, args: Sequence[Any], sender: Any) -> ChecksumAddress:
        raise NotImplementedError

    @abstractmethod
    def link(
        self, library_type: str, library_address: ChecksumAddress, consumers: Sequence[str]
    ) -> None:
        raise NotImplementedError

    @abstractmethod
    def at(self, contract_type: str, address: ChecksumAddress) -> ContractHandle:
        raise NotImplementedError


#
# ape
#


def _encodable(abi_inputs, args: Sequence[Any]) -> bool:
    return len(abi_inputs) == len(args) and all(
        w3.is_encodable(abi_input.type, arg) for abi_input, arg in zip(abi_inputs, args)
    )


def _validate_method_args(method_abis: List[MethodABI], args: Sequence[Any]) -> MethodABI:
    """Returns the overload of the method that accepts these arguments."""
    if not method_abis:
        raise InvalidParameter("Contract method has no ABI to check arguments against")
    for abi in method_abis:
        if _encodable(abi.inputs, args):
            return abi
    signatures = ", ".join(
        f"{abi.name}({','.join(i.type for i in abi.inputs)})" for abi in method_abis
    )
    raise InvalidParameter(f"Arguments {list(args)} do not match any of: {signatures}")


def _validate_constructor_args(container: ContractContainer, args: Sequence[Any]) -> None:
    contract_type = container.contract_type.name
    abi_inputs = container.constructor.abi.inputs
    if len(args) != len(abi_inputs):
        raise InvalidParameter(
            f"{contract_type} constructor takes {len(abi_inputs)} argument(s), got {len(args)}"
        )
    for position, (abi_input, value) in enumerate(zip(abi_inputs, args)):
        if not w3.is_encodable(abi_input.type, value):
            raise InvalidParameter(
                f"{contract_type} constructor argument '{abi_input.name}' (position {position}) "
                f"cannot be encoded as {abi_input.type}: {value!r}"
            )


class ApeContractHandle(ContractHandle):
    def __init__(self, instance: ContractInstance):
        self.instance = instance
        self.contract_type = instance.contract_type.name
        self.address = instance.address

    def call(self, method: str, args: Sequence[Any], sender: AccountAPI) -> ReceiptAPI:
        handler = getattr(self.instance, method)
        _validate_method_args(method_abis=handler.abis, args=args)
        receipt = handler(*args, sender=sender)
        receipt.await_confirmations()
        return receipt

    def view(self, method: str, args: Sequence[Any] = ()) -> Any:
        return getattr(self.instance, method)(*args)


class ApeBackend(ContractBackend):
    """Deploys and calls contracts of the local ape project."""

    def __init__(self, publish: bool = False):
        self.publish = publish
        self.deployments: Dict[ChecksumAddress, ContractInstance] = dict()

    def deploy(
        self, contract_type: str, args: Sequence[Any], sender: AccountAPI
    ) -> ChecksumAddress:
        container = get_contract_container(contract_type)
        _validate_constructor_args(container, args)
        instance = sender.deploy(container, *args, publish=self.publish)
        self.deployments[instance.address] = instance
        return instance.address

    def link(
        self, library_type: str, library_address: ChecksumAddress, consumers: Sequence[str]
    ) -> None:
        library = get_contract_container(library_type).at(library_address)
        # consumers are compiled against the library on their next lookup
        compilers.solidity.add_library(library)

    def at(self, contract_type: str, address: ChecksumAddress) -> ApeContractHandle:
        container = get_contract_container(contract_type)
        return ApeContractHandle(container.at(address))
