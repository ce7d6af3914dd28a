from typing import Any, List, NamedTuple, Sequence

from dx_deployment.backends import ContractBackend
from dx_deployment.caller import ConfigurationCaller
from dx_deployment.errors import DeploymentError, StepExecutionFailure
from dx_deployment.registry import ArtifactRegistry
from dx_deployment.steps import DeploymentStep, StepContext, StepKind


class StepResult(NamedTuple):
    index: int
    step_id: str
    kind: StepKind
    value: Any


class Pipeline:
    """
    Runs deployment steps strictly in the given order.

    Each step is validated against the registry before it touches the network.
    The first failure halts the run; artifacts registered by earlier steps stay
    registered and nothing is retried or rolled back.
    """

    def __init__(
        self,
        steps: Sequence[DeploymentStep],
        backend: ContractBackend,
        caller: ConfigurationCaller,
        registry: ArtifactRegistry = None,
    ):
        self.steps = list(steps)
        self.registry = registry if registry is not None else ArtifactRegistry()
        self.context = StepContext(registry=self.registry, backend=backend, caller=caller)
        self.results: List[StepResult] = list()

    def run(self) -> List[StepResult]:
        for index, step in enumerate(self.steps):
            print(f"\n[{index + 1}/{len(self.steps)}] {step.id}")
            try:
                step.validate(self.context)
                value = step.execute(self.context)
            except DeploymentError as e:
                if e.step_id is None:
                    e.at_step(index, step.id)
                raise
            except Exception as e:
                raise StepExecutionFailure(index=index, step_id=step.id, cause=e) from e
            self.results.append(
                StepResult(index=index, step_id=step.id, kind=step.kind, value=value)
            )
        return self.results
