import typing
from pathlib import Path
from typing import Any, Dict, List, NamedTuple

from dx_deployment.constants import ARTIFACTS_DIR
from dx_deployment.errors import DeploymentConfigError
from dx_deployment.registry import registry_chain_ids
from dx_deployment.steps import Call, Deploy, DeploymentStep, Link
from dx_deployment.utils import _load_yaml

DEPLOY_KEY = "deploy"
LINK_KEY = "link"
CALL_KEY = "call"

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_TYPE_KEY = "contract_type"
AFTER_KEY = "after"


class DeploymentPlan(NamedTuple):
    name: str
    chain_id: int
    registry_filepath: Path
    constants: Dict[str, Any]
    steps: List[DeploymentStep]


def get_artifact_filepath(config: Dict) -> Path:
    """Returns the filepath of the artifact file."""
    artifact_config = config.get("artifacts", {})
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise DeploymentConfigError("artifact filename is not set in params file.")
    return artifact_dir / filename


def validate_config(config: Dict) -> Path:
    """
    Checks that the params file is complete and that the deployment
    has not already been published for its chain_id.
    """
    print("Validating parameters YAML...")

    deployment = config.get("deployment")
    if not deployment:
        raise DeploymentConfigError("deployment is not set in params file.")

    config_chain_id = deployment.get("chain_id")
    if not config_chain_id:
        raise DeploymentConfigError("chain_id is not set in params file.")

    steps = config.get("steps")
    if not steps:
        raise DeploymentConfigError("params file missing 'steps' field.")

    registry_filepath = get_artifact_filepath(config=config)
    if int(config_chain_id) in registry_chain_ids(registry_filepath):
        raise DeploymentConfigError(
            f"Deployment is already published for chain_id {config_chain_id}."
        )

    return registry_filepath


def _single_entry(entry: Any, kind: str) -> typing.Tuple[str, Dict]:
    """Unpacks '{Name: {...}}' or a bare 'Name'."""
    if isinstance(entry, str):
        return entry, dict()
    if isinstance(entry, dict) and len(entry) == 1:
        name, data = next(iter(entry.items()))
        return name, data or dict()
    raise DeploymentConfigError(f"Malformed '{kind}' step: {entry!r}")


def _deploy_from_config(entry: Any, constants: Dict[str, Any]) -> Deploy:
    name, data = _single_entry(entry, DEPLOY_KEY)
    return Deploy(
        name=name,
        contract_type=data.get(CONTRACT_TYPE_KEY),
        constructor=data.get(CONTRACT_CONSTRUCTOR_PARAMETER_KEY),
        constants=constants,
        after=data.get(AFTER_KEY, ()),
    )


def _link_from_config(entry: Any) -> Link:
    if not isinstance(entry, dict) or "library" not in entry:
        raise DeploymentConfigError(f"Malformed '{LINK_KEY}' step: {entry!r}")
    return Link(library=entry["library"], consumers=entry.get("into") or [])


def _call_from_config(entry: Any, constants: Dict[str, Any]) -> Call:
    if not isinstance(entry, dict) or "contract" not in entry or "method" not in entry:
        raise DeploymentConfigError(f"Malformed '{CALL_KEY}' step: {entry!r}")
    return Call(
        target=entry["contract"],
        method=entry["method"],
        args=entry.get("args") or [],
        contract_type=entry.get("as"),
        constants=constants,
        after=entry.get(AFTER_KEY, ()),
    )


def _step_from_config(entry: Any, constants: Dict[str, Any]) -> DeploymentStep:
    if not isinstance(entry, dict) or len(entry) != 1:
        raise DeploymentConfigError(f"Malformed step: {entry!r}")
    kind, data = next(iter(entry.items()))
    if kind == DEPLOY_KEY:
        return _deploy_from_config(data, constants)
    elif kind == LINK_KEY:
        return _link_from_config(data)
    elif kind == CALL_KEY:
        return _call_from_config(data, constants)
    raise DeploymentConfigError(f"Unknown step kind '{kind}'")


def _validate_artifact_names(steps: List[DeploymentStep]) -> None:
    """Every referenced artifact must be deployed by some step; order is checked at run time."""
    declared = {step.name for step in steps if isinstance(step, Deploy)}
    for step in steps:
        unknown = sorted(step.dependencies - declared)
        if unknown:
            raise DeploymentConfigError(
                f"Step '{step.id}' references undeclared artifact(s): {', '.join(unknown)}"
            )


def steps_from_config(config: Dict) -> List[DeploymentStep]:
    print("Processing deployment steps...")
    constants = config.get("constants") or dict()
    steps = [_step_from_config(entry, constants) for entry in config["steps"]]
    _validate_artifact_names(steps)
    return steps


def load_deployment(filepath: Path) -> DeploymentPlan:
    config = _load_yaml(filepath)
    if not isinstance(config, dict):
        raise DeploymentConfigError(f"Malformed params file {filepath}.")
    registry_filepath = validate_config(config=config)
    return DeploymentPlan(
        name=config["deployment"].get("name", Path(filepath).stem),
        chain_id=int(config["deployment"]["chain_id"]),
        registry_filepath=registry_filepath,
        constants=config.get("constants") or dict(),
        steps=steps_from_config(config),
    )
