import json
from collections import OrderedDict, defaultdict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Tuple

from eth_typing import ChecksumAddress

from dx_deployment.addresses import validate_address
from dx_deployment.errors import DuplicateArtifact, UnresolvedDependency
from dx_deployment.utils import _load_json

ChainId = int
ArtifactName = str


STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """Represents a single deployed artifact in a registry file."""

    chain_id: ChainId
    name: ArtifactName
    address: ChecksumAddress
    contract_type: str


class ArtifactRegistry:
    """
    Addresses of successfully deployed artifacts, by name.

    Names are bound exactly once; a binding is never replaced or removed.
    """

    def __init__(self):
        self._artifacts: Dict[ArtifactName, Tuple[ChecksumAddress, str]] = OrderedDict()

    def __contains__(self, name: ArtifactName) -> bool:
        return name in self._artifacts

    def __len__(self) -> int:
        return len(self._artifacts)

    def register(
        self, name: ArtifactName, address: str, contract_type: Optional[str] = None
    ) -> ChecksumAddress:
        if name in self._artifacts:
            existing_address, _ = self._artifacts[name]
            raise DuplicateArtifact(name=name, address=existing_address)
        checksum_address = validate_address(address)
        self._artifacts[name] = (checksum_address, contract_type or name)
        return checksum_address

    def resolve(self, name: ArtifactName) -> ChecksumAddress:
        try:
            address, _ = self._artifacts[name]
        except KeyError:
            raise UnresolvedDependency(name)
        return address

    def contract_type(self, name: ArtifactName) -> str:
        try:
            _, contract_type = self._artifacts[name]
        except KeyError:
            raise UnresolvedDependency(name)
        return contract_type

    def list(self) -> List[Tuple[ArtifactName, ChecksumAddress]]:
        return [(name, address) for name, (address, _) in self._artifacts.items()]

    def entries(self, chain_id: ChainId) -> List[RegistryEntry]:
        return [
            RegistryEntry(
                chain_id=chain_id, name=name, address=address, contract_type=contract_type
            )
            for name, (address, contract_type) in self._artifacts.items()
        ]

    @classmethod
    def from_entries(cls, entries: List[RegistryEntry]) -> "ArtifactRegistry":
        registry = cls()
        for entry in entries:
            registry.register(entry.name, entry.address, contract_type=entry.contract_type)
        return registry

    @classmethod
    def from_file(cls, filepath: Path, chain_id: ChainId) -> "ArtifactRegistry":
        """Loads the artifacts recorded for a single chain."""
        entries = [e for e in read_registry(filepath) if e.chain_id == chain_id]
        return cls.from_entries(entries)


def read_registry(filepath: Path) -> List[RegistryEntry]:
    """Returns every artifact recorded in a registry file, chain by chain."""
    return [
        RegistryEntry(
            chain_id=int(chain_id),
            name=name,
            address=record["address"],
            contract_type=record.get("contract_type", name),
        )
        for chain_id, records in _load_json(filepath).items()
        for name, record in records.items()
    ]


def _serialize(entries: List[RegistryEntry]) -> Dict[str, Dict[str, dict]]:
    chains = defaultdict(dict)
    for entry in sorted(entries, key=lambda e: (e.chain_id, e.name)):
        chains[str(entry.chain_id)][entry.name] = {
            "address": entry.address,
            "contract_type": entry.contract_type,
        }
    return dict(chains)


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """
    Writes the entries to a registry file and returns the path written.

    An existing file is extended with chains it does not hold yet. Entries for a chain
    the file already records go to a sibling ``*.unmerged.json`` file instead, so a
    published deployment is never overwritten.
    """
    def echo(message: str) -> None:
        if not silent:
            print(message)

    if not entries:
        echo("(i) Nothing to write; the registry is empty.")
        return filepath

    chains = _serialize(entries)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    if filepath.exists():
        recorded = _load_json(filepath)
        overlap = sorted(set(recorded) & set(chains))
        if overlap:
            filepath = filepath.with_suffix(".unmerged.json")
            echo(
                f"Chain(s) {', '.join(overlap)} already recorded; "
                f"writing the new artifacts to {filepath} instead."
            )
        else:
            echo(f"Adding chain(s) {', '.join(chains)} to {filepath}.")
            recorded.update(chains)
            chains = recorded
    else:
        echo(f"Writing new registry {filepath}.")

    with open(filepath, "w") as file:
        json.dump(chains, file, **STANDARD_REGISTRY_JSON_FORMAT)
    return filepath


def registry_chain_ids(filepath: Path) -> List[ChainId]:
    if not filepath.exists():
        return list()
    return [int(chain_id) for chain_id in _load_json(filepath)]
