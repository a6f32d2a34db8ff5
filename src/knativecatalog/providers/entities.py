"""Catalog entity shapes and the connection interface providers submit to."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

ANNOTATION_LOCATION = "backstage.io/managed-by-location"
ANNOTATION_ORIGIN_LOCATION = "backstage.io/managed-by-origin-location"


class EntityLink(BaseModel):
    """External link shown on the entity page."""

    url: str
    title: Optional[str] = None
    icon: Optional[str] = None


class EntityMetadata(BaseModel):
    name: str
    namespace: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    links: List[EntityLink] = Field(default_factory=list)


class ApiEntitySpec(BaseModel):
    type: str
    lifecycle: str
    owner: str
    system: Optional[str] = None
    definition: str


class Entity(BaseModel):
    """Catalog entity of kind API."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = Field(default="backstage.io/v1alpha1", alias="apiVersion")
    kind: str = "API"
    metadata: EntityMetadata
    spec: ApiEntitySpec

    def to_dict(self) -> Dict[str, Any]:
        """Wire form, camelCase keys, unset optionals omitted."""
        return self.model_dump(by_alias=True, exclude_none=True)


class DeferredEntity(BaseModel):
    """An entity paired with the location key of the provider that owns it."""

    model_config = ConfigDict(populate_by_name=True)

    entity: Entity
    location_key: Optional[str] = Field(default=None, alias="locationKey")


class EntityMutation(BaseModel):
    """Full replacement of every entity under the submitted location keys.

    The receiver deletes previously submitted entities under a location key
    when they are absent from the new set.
    """

    type: Literal["full"] = "full"
    entities: List[DeferredEntity] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


@runtime_checkable
class EntityProviderConnection(Protocol):
    """Narrow handle into the catalog ingestion pipeline."""

    async def apply_mutation(self, mutation: EntityMutation) -> None:
        ...


__all__ = [
    "ANNOTATION_LOCATION",
    "ANNOTATION_ORIGIN_LOCATION",
    "EntityLink",
    "EntityMetadata",
    "ApiEntitySpec",
    "Entity",
    "DeferredEntity",
    "EntityMutation",
    "EntityProviderConnection",
]
