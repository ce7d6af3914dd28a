from typing import Any, List, Optional


class DeploymentError(Exception):
    """Base class for errors raised while deploying or configuring contracts."""

    step_index: Optional[int] = None
    step_id: Optional[str] = None

    def at_step(self, index: int, step_id: str) -> "DeploymentError":
        """Annotates the error with the pipeline step that raised it."""
        self.step_index = index
        self.step_id = step_id
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.step_id is None:
            return message
        return f"step #{self.step_index} ({self.step_id}): {message}"


class DeploymentConfigError(DeploymentError, ValueError):
    pass


class DuplicateArtifact(DeploymentError):
    def __init__(self, name: str, address: str):
        super().__init__(f"Artifact '{name}' is already registered at {address}")
        self.name = name
        self.address = address


class UnresolvedDependency(DeploymentError):
    def __init__(self, name: str):
        super().__init__(f"Artifact '{name}' is not registered")
        self.name = name


class LinkOrderViolation(DeploymentError):
    def __init__(self, library: str, consumer: str):
        super().__init__(
            f"Cannot link {library} into {consumer}: {consumer} is already deployed"
        )
        self.library = library
        self.consumer = consumer


class MalformedAddress(DeploymentError):
    def __init__(self, value: Any, position: Optional[int] = None):
        location = "" if position is None else f" at position {position}"
        super().__init__(f"Malformed address{location}: {value!r}")
        self.value = value
        self.position = position


class InvalidParameter(DeploymentError):
    """Raised when a call parameter would lose precision or cannot be encoded."""


class NetworkConfigurationError(DeploymentError):
    pass


class StepExecutionFailure(DeploymentError):
    def __init__(self, index: int, step_id: str, cause: BaseException):
        super().__init__(f"{type(cause).__name__}: {cause}")
        self.at_step(index, step_id)
        self.cause = cause


class ApprovalCallFailure(DeploymentError):
    def __init__(self, subset: List[str], cause: BaseException):
        super().__init__(
            f"Approval call failed for {len(subset)} token(s) "
            f"[{', '.join(subset)}]: {type(cause).__name__}: {cause}"
        )
        self.subset = list(subset)
        self.cause = cause
