"""Models for the artifact cache.

Source identities, per-output metadata and the manifest (``index.json``)
that describes one cache slot.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
import json
from typing import Annotated, Any, Literal
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, model_validator

TransformConfig = Mapping[str, Any]

# Derived from the current build context; recomputed on every load.
BUILD_CONTEXT_FIELDS = frozenset({"src", "image"})


class RemoteSource(BaseModel):
    """Networked source: canonical URL, no reliable modification time."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["remote"] = "remote"
    url: str = Field(description="Source URL as requested")

    @property
    def canonical(self) -> str:
        """URL without query string or fragment."""
        parts = urlsplit(self.url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))

    @property
    def relative_id(self) -> str:
        return self.canonical


class LocalSource(BaseModel):
    """Local source: project-relative path plus last-modified timestamp."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["local"] = "local"
    path: str = Field(description="Canonical relative path (POSIX separators)")
    mtime_ms: int = Field(description="Source modification time in milliseconds")

    @property
    def canonical(self) -> str:
        return f"file:{self.path}"

    @property
    def relative_id(self) -> str:
        return self.path


SourceIdentity = Annotated[RemoteSource | LocalSource, Field(discriminator="kind")]


class OutputMetadata(BaseModel):
    """
    Metadata describing one generated variant.

    Holds the transform-produced scalar fields (format, dimensions and any
    extra keys the engine reports), the output id and the artifact path.
    Build-context fields (``src``, ``image``) never survive a round trip.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    output_id: str = Field(alias="outputId", description="Output identifier (hex digest)")
    format: str = Field(description="Output file format / extension, e.g. 'png'")
    width: int | None = None
    height: int | None = None
    path: str | None = Field(default=None, description="Persisted artifact file path")
    directives: dict[str, Any] = Field(
        default_factory=dict, description="Transform config that produced this output"
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_build_context(cls, data: Any) -> Any:
        if isinstance(data, dict) and BUILD_CONTEXT_FIELDS & data.keys():
            return {k: v for k, v in data.items() if k not in BUILD_CONTEXT_FIELDS}
        return data

    def persisted(self) -> dict[str, Any]:
        """Dictionary form written to ``index.json``."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        for name in BUILD_CONTEXT_FIELDS:
            data.pop(name, None)
        return data


class ManifestRecord(BaseModel):
    """
    Durable description of one cache slot (``index.json``).

    The slot is valid only while ``checksum`` equals the current checksum
    of the source file.
    """

    model_config = ConfigDict(populate_by_name=True)

    checksum: str = Field(description="Content checksum of the source at write time")
    created_at: int = Field(alias="created", description="Creation time (epoch milliseconds)")
    outputs: list[OutputMetadata] = Field(default_factory=list, alias="metadatas")

    def to_json(self) -> str:
        return json.dumps(
            {
                "checksum": self.checksum,
                "created": self.created_at,
                "metadatas": [m.persisted() for m in self.outputs],
            },
            indent=2,
        )

    def output_ids(self) -> list[str]:
        return [m.output_id for m in self.outputs]


@dataclass(frozen=True)
class GeneratedOutput:
    """A freshly transformed output: metadata plus the encoded bytes."""

    metadata: OutputMetadata
    data: bytes
