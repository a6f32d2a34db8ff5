"""
Event type -> catalog API entity mapping.

Pure and synchronous. Raw records are validated into EventTypeRecord first;
a record that fails validation fails the whole batch, since submitting a
partial full mutation would delete valid entities from the previous sync.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ..errors import MappingError
from .entities import (
    ANNOTATION_LOCATION,
    ANNOTATION_ORIGIN_LOCATION,
    ApiEntitySpec,
    Entity,
    EntityLink,
    EntityMetadata,
)

logger = logging.getLogger(__name__)

ENTITY_SPEC_TYPE = "eventType"
DEFAULT_SYSTEM = "knative-event-mesh"
DEFAULT_OWNER = "knative"
EMPTY_DEFINITION = "{}"
LOCATION_SCHEME = "url"
DEFAULT_NAMESPACE = "default"

MAX_NAME_LENGTH = 63
_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class EventTypeReference(BaseModel):
    """The resource an event type is sourced from (broker, channel, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    kind: Optional[str] = None
    name: Optional[str] = None
    namespace: Optional[str] = None


class EventTypeRecord(BaseModel):
    """Validated remote event type.

    Accepts the flat shape served by the event mesh backend as well as raw
    Kubernetes EventType objects (``{"metadata": ..., "spec": ...}``).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = Field(min_length=1)
    name: Optional[str] = None
    namespace: Optional[str] = None
    uid: Optional[str] = None
    description: Optional[str] = None
    schema_data: Optional[str] = Field(default=None, alias="schemaData")
    schema_url: Optional[str] = Field(default=None, alias="schemaURL")
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None
    reference: Optional[EventTypeReference] = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_kubernetes_object(cls, data: Any) -> Any:
        if not isinstance(data, Mapping) or "spec" not in data or "metadata" not in data:
            return data
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        if not isinstance(metadata, Mapping) or not isinstance(spec, Mapping):
            return data
        return {
            "type": spec.get("type"),
            "name": metadata.get("name"),
            "namespace": metadata.get("namespace"),
            "uid": metadata.get("uid"),
            "labels": metadata.get("labels"),
            "annotations": metadata.get("annotations"),
            "description": spec.get("description"),
            "schemaData": spec.get("schemaData"),
            "schemaURL": spec.get("schema"),
            "reference": spec.get("reference"),
        }

    @field_validator("schema_data", mode="before")
    @classmethod
    def _serialize_schema(cls, value: Any) -> Any:
        # Some sources inline the schema as a JSON document rather than a string
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return value


def entity_name_for(event_type: str) -> str:
    """Derive a valid entity name from a CloudEvent type."""
    name = _INVALID_NAME_CHARS.sub("-", event_type).strip("-._")
    return name[:MAX_NAME_LENGTH].rstrip("-._")


class EntityMapper:
    """Maps raw event type records of one provider to API entities."""

    def __init__(
        self,
        provider_id: str,
        base_url: str,
        *,
        system: str = DEFAULT_SYSTEM,
        owner: str = DEFAULT_OWNER,
    ):
        self.provider_id = provider_id
        self.base_url = base_url.rstrip("/")
        self.system = system
        self.owner = owner

    def map(self, records: Iterable[Any]) -> List[Entity]:
        """Validate, deduplicate and map a batch of raw records.

        Records sharing an entity name (derived from ``type``) are collapsed,
        last one wins; output order follows each name's first appearance.
        """
        deduplicated: Dict[str, EventTypeRecord] = {}
        for index, raw in enumerate(records):
            record = self.validate(raw, index)
            name = entity_name_for(record.type)
            if not name:
                raise MappingError(
                    f"Record {index} has type {record.type!r} which yields no valid entity name",
                    index=index,
                )
            previous = deduplicated.get(name)
            if previous is not None and previous.type != record.type:
                logger.debug(
                    f"Event type {record.type!r} replaces {previous.type!r}: both map to entity name {name!r}"
                )
            deduplicated[name] = record

        logger.debug(
            f"Mapped {len(deduplicated)} unique event types for provider {self.provider_id}"
        )
        return [self.build_entity(name, record) for name, record in deduplicated.items()]

    @staticmethod
    def validate(raw: Any, index: Optional[int] = None) -> EventTypeRecord:
        try:
            return EventTypeRecord.model_validate(raw)
        except ValidationError as e:
            raise MappingError(
                f"Malformed event type record at index {index}: {e.error_count()} validation error(s)",
                index=index,
            ) from e

    def location_for(self, record: EventTypeRecord) -> str:
        namespace = record.namespace or DEFAULT_NAMESPACE
        name = record.name or record.type
        return f"{LOCATION_SCHEME}:{self.base_url}/eventtype/{namespace}/{name}"

    def build_entity(self, name: str, record: EventTypeRecord) -> Entity:
        location = self.location_for(record)
        annotations = dict(record.annotations or {})
        annotations[ANNOTATION_LOCATION] = location
        annotations[ANNOTATION_ORIGIN_LOCATION] = location

        links = []
        if record.schema_url:
            links.append(EntityLink(title="View external schema", icon="scaffolder", url=record.schema_url))

        return Entity(
            metadata=EntityMetadata(
                name=name,
                namespace=record.namespace,
                title=record.type,
                description=record.description,
                labels=dict(record.labels or {}),
                annotations=annotations,
                links=links,
            ),
            spec=ApiEntitySpec(
                type=ENTITY_SPEC_TYPE,
                lifecycle=self.provider_id,
                system=self.system,
                owner=self.owner,
                definition=record.schema_data or EMPTY_DEFINITION,
            ),
        )


__all__ = [
    "EventTypeRecord",
    "EventTypeReference",
    "EntityMapper",
    "entity_name_for",
]
