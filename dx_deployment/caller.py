from decimal import Decimal
from typing import Any, List, Optional, Sequence

from dx_deployment.confirm import _continue
from dx_deployment.errors import InvalidParameter, NetworkConfigurationError


def normalize_numeric(value: Any) -> Any:
    """
    Converts numeric call parameters to python ints.

    Base-unit quantities exceed the range floats can represent exactly,
    so floats and fractional decimals are rejected instead of rounded.
    """
    if isinstance(value, (list, tuple)):
        return [normalize_numeric(v) for v in value]
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        raise InvalidParameter(
            f"Floating point value {value!r} would lose precision; "
            "use an integer or a decimal string"
        )
    if isinstance(value, Decimal):
        if value != value.to_integral_value():
            raise InvalidParameter(f"Decimal value {value} is not a whole number of base units")
        return int(value)
    if isinstance(value, str):
        digits = value[1:] if value.startswith("-") else value
        if digits.isdigit():
            if not digits.isascii():
                raise InvalidParameter(f"Numeric string {value!r} must use ASCII digits 0-9")
            return int(value)
    return value


class ConfigurationCaller:
    """
    Represents an operator account plus validated/annotated transaction execution.
    """

    def __init__(self, operator: Optional[Any] = None, autosign: bool = False):
        self.operator = operator
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self.autosign = autosign
        if operator is not None and hasattr(operator, "set_autosign"):
            operator.set_autosign(autosign)

    def require_operator(self) -> Any:
        if self.operator is None:
            raise NetworkConfigurationError("No operator account is configured")
        return self.operator

    def call(self, handle, method: str, args: Sequence[Any] = ()) -> Any:
        operator = self.require_operator()
        normalized_args: List[Any] = [normalize_numeric(arg) for arg in args]

        base_message = f"\nTransacting {handle.contract_type}[{handle.address[:10]}].{method}"
        if normalized_args:
            pretty_args = "\n\t".join(str(arg) for arg in normalized_args)
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self.autosign:
            _continue()

        return handle.call(method, normalized_args, sender=operator)
