"""
Pydantic models for bundle manifests, plus the task and result records that flow
through the download engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from uuid2asset.exceptions import MalformedManifestError

# Groups are always processed in this order
GROUP_KINDS = ("import", "native")


class IndexedEntry(BaseModel):
    """A version entry that refers to a position in the manifest's identifier table."""

    kind: Literal["indexed"] = "indexed"
    table_index: int
    hash_suffix: str

    class Config:
        frozen = True


class NamedEntry(BaseModel):
    """A version entry that carries its file stem literally."""

    kind: Literal["named"] = "named"
    literal_name: str
    hash_suffix: str

    class Config:
        frozen = True


VersionEntry = Union[IndexedEntry, NamedEntry]


def parse_version_list(kind: str, flat: list[Any]) -> tuple[VersionEntry, ...]:
    """
    Pairs a flat `[entry, hash, entry, hash, ...]` list into typed version entries.
    Integers become IndexedEntry, strings become NamedEntry.
    """
    if not isinstance(flat, list):
        raise ValueError(f"versions.{kind} must be a list.")
    if len(flat) % 2:
        raise ValueError(
            f"versions.{kind} has an odd number of elements ({len(flat)})."
        )

    entries: list[VersionEntry] = []
    for i in range(0, len(flat), 2):
        entry, hash_suffix = flat[i], flat[i + 1]
        if isinstance(hash_suffix, bool) or not isinstance(hash_suffix, (str, int)):
            raise ValueError(f"versions.{kind}[{i + 1}] is not a valid hash.")
        hash_suffix = str(hash_suffix)

        if isinstance(entry, bool):
            raise ValueError(f"versions.{kind}[{i}] must be an index or a name.")
        if isinstance(entry, int):
            if entry < 0:
                raise ValueError(f"versions.{kind}[{i}] is a negative index.")
            entries.append(IndexedEntry(table_index=entry, hash_suffix=hash_suffix))
        elif isinstance(entry, str) and entry:
            entries.append(NamedEntry(literal_name=entry, hash_suffix=hash_suffix))
        else:
            raise ValueError(f"versions.{kind}[{i}] must be an index or a name.")
    return tuple(entries)


class Manifest(BaseModel):
    """A validated bundle manifest (the `config.<hash>.json` of a bundle)."""

    name: str = Field(min_length=1)
    identifier_table: tuple[str, ...] = Field(alias="uuids")
    versions: dict[str, tuple[VersionEntry, ...]] = Field(default_factory=dict)
    base_names: dict[str, str] = Field(default_factory=dict)

    class Config:
        frozen = True
        populate_by_name = True

    @model_validator(mode="before")
    @classmethod
    def _normalize_raw_manifest(cls, data: Any) -> Any:
        """Converts the raw JSON layout into the model's typed fields."""
        if not isinstance(data, dict) or "uuids" not in data:
            return data

        raw_versions = data.get("versions")
        if not isinstance(raw_versions, dict):
            raise ValueError(
                "'versions' must be an object mapping group names to lists."
            )

        normalized = {
            "name": data.get("name"),
            "uuids": data["uuids"],
            "versions": {
                kind: parse_version_list(kind, raw_versions[kind])
                for kind in GROUP_KINDS
                if raw_versions.get(kind) is not None
            },
            "base_names": {
                kind: data[f"{kind}Base"]
                for kind in GROUP_KINDS
                if isinstance(data.get(f"{kind}Base"), str)
            },
        }
        return normalized

    @classmethod
    def from_json_dict(cls, data: dict[str, Any]) -> "Manifest":
        """
        Builds a manifest from the decoded JSON document.

        Raises:
            MalformedManifestError: If required fields are missing or invalid.
        """
        if not isinstance(data, dict):
            raise MalformedManifestError("Bundle manifest must be a JSON object.")
        missing = [key for key in ("name", "uuids", "versions") if key not in data]
        if missing:
            raise MalformedManifestError(
                f"Bundle manifest is missing required fields: {', '.join(missing)}"
            )
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise MalformedManifestError(f"Invalid bundle manifest:\n{e}") from e

    def base_for(self, kind: str) -> str | None:
        return self.base_names.get(kind) or None

    def entries_for(self, kind: str) -> tuple[VersionEntry, ...]:
        return self.versions.get(kind, ())

    def has_group(self, kind: str) -> bool:
        """A group is processed only when both its base name and versions are set."""
        return bool(self.base_for(kind)) and bool(self.entries_for(kind))


class Outcome(Enum):
    """Result of fetching a single asset."""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"  # Only when a bounded retry policy gave up


@dataclass(frozen=True)
class DownloadTask:
    """One remote object to probe: an asset at one candidate extension."""

    remote_url: str
    archive_path: str
    group_kind: str
    hash_suffix: str = ""


@dataclass(frozen=True)
class DownloadResult:
    archive_path: str
    payload: bytes | None
    outcome: Outcome

    @property
    def found(self) -> bool:
        return self.outcome is Outcome.FOUND
