import pytest
from eth_utils import to_checksum_address

from dx_deployment.approvals import (
    ApprovalState,
    BatchApprovalWorkflow,
    FileAddressSource,
    RegistryAddressSource,
)
from dx_deployment.constants import KOVAN, LOCAL, MAINNET, RINKEBY
from dx_deployment.errors import (
    ApprovalCallFailure,
    MalformedAddress,
    NetworkConfigurationError,
    UnresolvedDependency,
)
from dx_deployment.networks import IndexRange, get_profile
from tests.conftest import make_address

EXCHANGE_ADDRESS = make_address(0xDE)


@pytest.fixture
def deployed_registry(registry):
    registry.register("DutchExchange", make_address(0xDD))
    registry.register("Proxy", EXCHANGE_ADDRESS)
    registry.register("EtherToken", make_address(0xE1))
    registry.register("TokenRDN", make_address(0xE2))
    registry.register("TokenOMG", make_address(0xE3))
    return registry


@pytest.fixture
def workflow_factory(deployed_registry, backend, caller, address_file):
    def factory(network_id, address_file=address_file, **profile_kwargs):
        return BatchApprovalWorkflow(
            profile=get_profile(network_id, **profile_kwargs),
            registry=deployed_registry,
            backend=backend,
            caller=caller,
            address_file=address_file,
        )

    return factory


def _approval_calls(backend):
    return [call for call in backend.calls if call[2] == "updateApprovalOfToken"]


def test_full_list_is_approved_in_one_call(workflow_factory, backend, token_addresses, operator):
    workflow = workflow_factory(MAINNET)

    batch = workflow.run()

    expected = [to_checksum_address(a) for a in token_addresses]
    assert _approval_calls(backend) == [
        (
            "DutchExchange",
            to_checksum_address(EXCHANGE_ADDRESS),
            "updateApprovalOfToken",
            [expected, True],
            operator,
        )
    ]
    assert batch.token_addresses == expected
    assert batch.network == MAINNET
    assert batch.statuses == {address: True for address in expected}
    assert batch.all_verified
    assert workflow.state == ApprovalState.REPORT


@pytest.mark.parametrize("network_id", [LOCAL, KOVAN])
def test_development_networks_use_configured_range(
    workflow_factory, backend, token_addresses, network_id
):
    batch = workflow_factory(network_id).run()

    expected = [to_checksum_address(a) for a in token_addresses[2:7]]
    assert batch.token_addresses == expected
    (approval_call,) = _approval_calls(backend)
    assert approval_call[3] == [expected, True]


def test_range_override(workflow_factory, backend, token_addresses):
    batch = workflow_factory(LOCAL, subset_rule=IndexRange(0, 3)).run()
    assert batch.token_addresses == [to_checksum_address(a) for a in token_addresses[0:3]]


def test_rinkeby_approves_named_test_tokens(workflow_factory, deployed_registry, backend):
    workflow = workflow_factory(RINKEBY, address_file=None)

    batch = workflow.run()

    expected = [deployed_registry.resolve(name) for name in ("EtherToken", "TokenRDN", "TokenOMG")]
    assert batch.token_addresses == expected
    (approval_call,) = _approval_calls(backend)
    assert approval_call[3] == [expected, True]


def test_malformed_address_halts_before_any_call(
    tmp_path, workflow_factory, backend, token_addresses
):
    filepath = tmp_path / "tokens.txt"
    filepath.write_text(",".join(token_addresses[:3] + ["0x123"] + token_addresses[3:]))
    workflow = workflow_factory(MAINNET, address_file=filepath)

    with pytest.raises(MalformedAddress) as error:
        workflow.run()

    assert error.value.position == 3
    assert backend.calls == []
    assert backend.views == []
    assert workflow.state == ApprovalState.FAILED
    assert workflow.failed_at == ApprovalState.VALIDATE


def test_approval_failure_carries_subset(workflow_factory, backend, token_addresses):
    backend.failing.add("updateApprovalOfToken")
    workflow = workflow_factory(KOVAN)

    with pytest.raises(ApprovalCallFailure) as error:
        workflow.run()

    assert error.value.subset == [to_checksum_address(a) for a in token_addresses[2:7]]
    assert isinstance(error.value.cause, RuntimeError)
    assert len(_approval_calls(backend)) == 1  # not retried
    assert workflow.failed_at == ApprovalState.APPROVE


def test_verify_failure_carries_subset(workflow_factory, backend):
    backend.failing.add("approvedTokens")
    workflow = workflow_factory(KOVAN)

    with pytest.raises(ApprovalCallFailure):
        workflow.run()
    assert workflow.failed_at == ApprovalState.VERIFY


def test_verify_reports_unapproved_tokens(workflow_factory, backend, token_addresses):
    workflow = workflow_factory(MAINNET)
    stubborn = to_checksum_address(token_addresses[0])

    batch = workflow.run()
    backend.approved[stubborn] = False
    exchange = backend.at("DutchExchange", EXCHANGE_ADDRESS)
    statuses = workflow.verify(exchange, batch.token_addresses)

    assert statuses[stubborn] is False
    assert sum(statuses.values()) == len(token_addresses) - 1


def test_revoke(workflow_factory, backend, token_addresses):
    workflow_factory(MAINNET).run()

    batch = workflow_factory(MAINNET).run(approved=False)

    assert _approval_calls(backend)[-1][3][1] is False
    assert set(batch.statuses.values()) == {False}
    assert batch.all_verified


def test_empty_subset_sends_nothing(workflow_factory, backend):
    batch = workflow_factory(LOCAL, subset_rule=IndexRange(4, 4)).run()

    assert batch.token_addresses == []
    assert batch.statuses == {}
    assert backend.calls == []


def test_address_file_required(workflow_factory):
    workflow = workflow_factory(MAINNET, address_file=None)
    with pytest.raises(NetworkConfigurationError):
        workflow.run()
    assert workflow.failed_at == ApprovalState.LOAD_ADDRESSES


def test_exchange_must_be_registered(registry, backend, caller, address_file):
    workflow = BatchApprovalWorkflow(
        profile=get_profile(MAINNET),
        registry=registry,
        backend=backend,
        caller=caller,
        address_file=address_file,
    )
    with pytest.raises(UnresolvedDependency) as error:
        workflow.run()
    assert error.value.name == "Proxy"
    assert backend.calls == []


def test_address_sources(address_file, token_addresses, deployed_registry):
    assert FileAddressSource(address_file).load() == token_addresses
    source = RegistryAddressSource(deployed_registry, ["TokenOMG"])
    assert source.load() == [deployed_registry.resolve("TokenOMG")]
