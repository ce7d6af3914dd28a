from typing import Any, Iterable, List, Optional

from eth_typing import ChecksumAddress
from eth_utils import is_hex_address, to_checksum_address

from dx_deployment.errors import MalformedAddress


def validate_address(value: Any, position: Optional[int] = None) -> ChecksumAddress:
    """
    Returns the checksummed form of a 40 hex character account identifier.
    The '0x' prefix is optional and letter case is not enforced.
    """
    if not isinstance(value, str) or not is_hex_address(value):
        raise MalformedAddress(value, position)
    if not value.startswith(("0x", "0X")):
        value = "0x" + value
    return to_checksum_address(value)


def validate_addresses(values: Iterable[Any]) -> List[ChecksumAddress]:
    """Validates every entry, failing on the first malformed one."""
    return [validate_address(value, position) for position, value in enumerate(values)]


def parse_address_list(text: str) -> List[str]:
    """Splits a comma (or else newline) delimited address list into raw entries."""
    text = text.strip()
    if not text:
        return list()
    delimiter = "," if "," in text else "\n"
    # empty entries are kept; validation rejects them
    return [entry.strip() for entry in text.split(delimiter)]
