from unittest.mock import MagicMock

import pytest
from eth_utils import to_checksum_address

from dx_deployment import backends
from dx_deployment.backends import ApeBackend, ApeContractHandle
from dx_deployment.errors import InvalidParameter
from tests.conftest import OPERATOR_ADDRESS, make_address

OWNER = to_checksum_address(OPERATOR_ADDRESS)


def _abi_input(name, abi_type):
    abi_input = MagicMock()
    abi_input.name = name
    abi_input.type = abi_type
    return abi_input


@pytest.fixture
def container(monkeypatch):
    container = MagicMock()
    container.contract_type.name = "TokenMGN"
    container.constructor.abi.inputs = [_abi_input("_owner", "address")]
    monkeypatch.setattr(backends, "get_contract_container", lambda name: container)
    return container


@pytest.fixture
def sender():
    sender = MagicMock()
    sender.deploy.return_value.address = to_checksum_address(make_address(7))
    return sender


def test_deploy(container, sender):
    backend = ApeBackend()

    address = backend.deploy("TokenMGN", [OWNER], sender=sender)

    assert address == to_checksum_address(make_address(7))
    sender.deploy.assert_called_once_with(container, OWNER, publish=False)
    assert backend.deployments[address] is sender.deploy.return_value


@pytest.mark.parametrize("args", [[], [OWNER, OWNER], ["not an address"]])
def test_deploy_rejects_invalid_constructor_args(container, sender, args):
    with pytest.raises(InvalidParameter):
        ApeBackend().deploy("TokenMGN", args, sender=sender)
    sender.deploy.assert_not_called()


def test_link(container, monkeypatch):
    compilers = MagicMock()
    monkeypatch.setattr(backends, "compilers", compilers)
    library_address = to_checksum_address(make_address(1))

    ApeBackend().link("Math", library_address, ["DutchExchange"])

    container.at.assert_called_once_with(library_address)
    compilers.solidity.add_library.assert_called_once_with(container.at.return_value)


@pytest.fixture
def instance():
    instance = MagicMock()
    instance.contract_type.name = "TokenMGN"
    instance.address = to_checksum_address(make_address(3))
    method_abi = MagicMock()
    method_abi.name = "updateMinter"
    method_abi.inputs = [_abi_input("_minter", "address")]
    instance.updateMinter.abis = [method_abi]
    return instance


def test_at(container):
    address = to_checksum_address(make_address(3))
    handle = ApeBackend().at("TokenMGN", address)
    container.at.assert_called_once_with(address)
    assert handle.instance is container.at.return_value


def test_handle_call_waits_for_confirmation(instance):
    handle = ApeContractHandle(instance)
    sender = MagicMock()

    receipt = handle.call("updateMinter", [OWNER], sender=sender)

    instance.updateMinter.assert_called_once_with(OWNER, sender=sender)
    assert receipt is instance.updateMinter.return_value
    receipt.await_confirmations.assert_called_once_with()
    assert handle.contract_type == "TokenMGN"


def test_handle_call_validates_args(instance):
    handle = ApeContractHandle(instance)
    with pytest.raises(InvalidParameter):
        handle.call("updateMinter", [12345], sender=MagicMock())
    instance.updateMinter.assert_not_called()


def test_handle_view(instance):
    instance.approvedTokens.return_value = True
    handle = ApeContractHandle(instance)
    assert handle.view("approvedTokens", [OWNER]) is True
    instance.approvedTokens.assert_called_once_with(OWNER)
