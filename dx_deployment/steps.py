import typing
from abc import ABC, abstractmethod
from collections import OrderedDict, defaultdict
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from eth_typing import ChecksumAddress

from dx_deployment.backends import ContractBackend
from dx_deployment.caller import ConfigurationCaller, normalize_numeric
from dx_deployment.confirm import _confirm_deploy
from dx_deployment.errors import (
    DeploymentConfigError,
    DuplicateArtifact,
    LinkOrderViolation,
    UnresolvedDependency,
)
from dx_deployment.registry import ArtifactRegistry


class StepContext:
    """Everything a step needs at execution time."""

    def __init__(
        self,
        registry: ArtifactRegistry,
        backend: ContractBackend,
        caller: ConfigurationCaller,
    ):
        self.registry = registry
        self.backend = backend
        self.caller = caller
        # consumer artifact name -> linked library artifact names
        self.linked: Dict[str, List[str]] = defaultdict(list)

    @property
    def operator(self) -> Any:
        return self.caller.operator


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, context: StepContext) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, context: StepContext) -> Any:
        return context.caller.require_operator().address

    def __repr__(self) -> str:
        return f"${self.DEPLOYER_INDICATOR}"


class Constant(Variable):
    def __init__(self, constant_name: str, constants: typing.Dict[str, Any]):
        try:
            self.constant_value = constants[constant_name]
        except KeyError:
            raise DeploymentConfigError(f"Constant '{constant_name}' not found in deployment file.")
        self.constant_name = constant_name

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self, context: StepContext) -> Any:
        return self.constant_value

    def __repr__(self) -> str:
        return f"${self.constant_name}"


class ArtifactAddress(Variable):
    def __init__(self, artifact_name: str):
        self.artifact_name = artifact_name

    def resolve(self, context: StepContext) -> ChecksumAddress:
        """Resolves an artifact address from the registry."""
        return context.registry.resolve(self.artifact_name)

    def __repr__(self) -> str:
        return f"${self.artifact_name}"


def _variable_from_value(variable: str, constants: typing.Dict[str, Any]) -> Variable:
    variable = variable[len(Variable.VARIABLE_PREFIX) :]
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Constant.is_constant(variable):
        return Constant(variable, constants)
    else:
        return ArtifactAddress(variable)


def _process_raw_value(value: Any, constants: typing.Dict[str, Any]) -> Any:
    if isinstance(value, (list, tuple)):
        return [_process_raw_value(v, constants) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, constants)

    return value


def _resolve_param(value: Any, context: StepContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def _artifact_references(value: Any) -> typing.Set[str]:
    if isinstance(value, list):
        return set().union(*(_artifact_references(v) for v in value))
    if isinstance(value, ArtifactAddress):
        return {value.artifact_name}
    return set()


# Steps


class StepKind(Enum):
    DEPLOY = "deploy"
    LINK = "link"
    CALL = "call"


class DeploymentStep(ABC):
    kind: StepKind

    def __init__(self, step_id: str, after: Iterable[str] = ()):
        self.id = step_id
        self._after = frozenset(after)

    @property
    def dependencies(self) -> FrozenSet[str]:
        """Artifact names that must be registered before this step runs."""
        return self._after

    def validate(self, context: StepContext) -> None:
        """Checks the step against the registry; never touches the network."""
        for name in sorted(self.dependencies):
            if name not in context.registry:
                raise UnresolvedDependency(name)

    @abstractmethod
    def execute(self, context: StepContext) -> Any:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class Deploy(DeploymentStep):
    kind = StepKind.DEPLOY

    def __init__(
        self,
        name: str,
        contract_type: Optional[str] = None,
        constructor: Optional[typing.Dict[str, Any]] = None,
        constants: Optional[typing.Dict[str, Any]] = None,
        after: Iterable[str] = (),
        step_id: Optional[str] = None,
    ):
        super().__init__(step_id=step_id or f"deploy:{name}", after=after)
        self.name = name
        self.contract_type = contract_type or name
        self.constructor = OrderedDict(
            (param, _process_raw_value(value, constants or dict()))
            for param, value in (constructor or dict()).items()
        )

    @property
    def dependencies(self) -> FrozenSet[str]:
        references = _artifact_references(list(self.constructor.values()))
        return super().dependencies | references

    def validate(self, context: StepContext) -> None:
        super().validate(context)
        for library in context.linked.get(self.name, []):
            if library not in context.registry:
                raise UnresolvedDependency(library)
        if self.name in context.registry:
            raise DuplicateArtifact(self.name, context.registry.resolve(self.name))

    def execute(self, context: StepContext) -> ChecksumAddress:
        resolved_params = OrderedDict(
            (param, normalize_numeric(_resolve_param(value, context)))
            for param, value in self.constructor.items()
        )
        if not context.caller.autosign:
            _confirm_deploy(self.name, self.contract_type, resolved_params)

        operator = context.caller.require_operator()
        address = context.backend.deploy(
            self.contract_type, list(resolved_params.values()), sender=operator
        )
        address = context.registry.register(self.name, address, contract_type=self.contract_type)
        print(f"(i) Deployed {self.name} at {address}")
        return address


class Link(DeploymentStep):
    kind = StepKind.LINK

    def __init__(
        self, library: str, consumers: Sequence[str], step_id: Optional[str] = None
    ):
        super().__init__(step_id=step_id or f"link:{library}", after=[library])
        if not consumers:
            raise DeploymentConfigError(f"No consumers to link {library} into")
        self.library = library
        self.consumers = list(consumers)

    def validate(self, context: StepContext) -> None:
        super().validate(context)
        for consumer in self.consumers:
            if consumer in context.registry:
                raise LinkOrderViolation(library=self.library, consumer=consumer)

    def execute(self, context: StepContext) -> ChecksumAddress:
        library_address = context.registry.resolve(self.library)
        context.backend.link(
            context.registry.contract_type(self.library), library_address, self.consumers
        )
        for consumer in self.consumers:
            context.linked[consumer].append(self.library)
        print(f"(i) Linked {self.library} into {', '.join(self.consumers)}")
        return library_address


class Call(DeploymentStep):
    kind = StepKind.CALL

    def __init__(
        self,
        target: str,
        method: str,
        args: Sequence[Any] = (),
        contract_type: Optional[str] = None,
        constants: Optional[typing.Dict[str, Any]] = None,
        after: Iterable[str] = (),
        step_id: Optional[str] = None,
    ):
        super().__init__(step_id=step_id or f"call:{target}.{method}", after=after)
        self.target = target
        self.method = method
        self.contract_type = contract_type
        self.args = [_process_raw_value(value, constants or dict()) for value in args]

    @property
    def dependencies(self) -> FrozenSet[str]:
        return super().dependencies | {self.target} | _artifact_references(self.args)

    def execute(self, context: StepContext) -> Any:
        address = context.registry.resolve(self.target)
        contract_type = self.contract_type or context.registry.contract_type(self.target)
        resolved_args = [normalize_numeric(_resolve_param(value, context)) for value in self.args]
        handle = context.backend.at(contract_type, address)
        return context.caller.call(handle, self.method, resolved_args)
