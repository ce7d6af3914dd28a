import sys
from typing import Any, Mapping

from dx_deployment.constants import ZERO_ADDRESS


def _abort() -> None:
    print("Aborting!")
    sys.exit(-1)


def _ask(question: str) -> None:
    answer = input(f"{question} Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _continue() -> None:
    _ask("Continue")


def _confirm_deploy(artifact: str, contract_type: str, resolved_params: Mapping[str, Any]) -> None:
    """Shows the resolved constructor arguments of an artifact and asks before deploying it."""
    label = artifact if artifact == contract_type else f"{artifact} ({contract_type})"
    if resolved_params:
        print(f"\nConstructor arguments for {label}")
        for name, value in resolved_params.items():
            print(f"\t{name}={value}")
    else:
        print(f"\n(i) {label} takes no constructor arguments")
    _ask(f"Deploy {label}")

    zero_params = [name for name, value in resolved_params.items() if value == ZERO_ADDRESS]
    if zero_params:
        _ask(f"{', '.join(zero_params)} resolved to the zero address; deploy anyway?")
