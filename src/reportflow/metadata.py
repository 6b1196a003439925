"""Entity metadata consumed by the editing surface.

The editor needs to know, for a given entity, which attributes can be
selected and which relationships a link node can follow. That metadata comes
from the remote execution backend; this module defines the shape the editor
reads and a provider serving a snapshot loaded from a file.

The compiler never consults metadata. It trusts whatever the user already
selected on the canvas.

Usage:
    from reportflow.metadata import SnapshotMetadataProvider, relation_from_metadata

    provider = SnapshotMetadataProvider.from_file(Path("snapshot.yaml"))
    graph = provider.get_entity_graph("employee")
    relation = relation_from_metadata("oneToMany", graph.one_to_many[0])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

import yaml

from reportflow.core.errors import DefinitionLoadError
from reportflow.core.logging import get_logger
from reportflow.graphs.models import Relation

logger = get_logger(__name__)

AttributeType = Literal["String", "DateTime", "Lookup", "OptionSet", "Integer", "Decimal"]


@dataclass
class EntityMetadata:
    """Entity summary for the entity picker."""

    logical_name: str
    display_name: str
    primary_id: str
    primary_name: str


@dataclass
class AttributeMetadata:
    """Selectable attribute of an entity."""

    logical_name: str
    display_name: str
    type: AttributeType
    targets: list[str] | None = None  # Lookup attributes only


@dataclass
class RelationshipMetadata:
    """One-to-many or many-to-one relationship.

    ``referenced_entity`` is the entity a link node over this relationship
    reaches.
    """

    schema_name: str
    referencing_attribute: str
    referenced_entity: str
    referenced_attribute: str
    display_name: str


@dataclass
class ManyToManyRelationship:
    schema_name: str
    entity1: str
    entity2: str
    intersect_entity: str


@dataclass
class EntityGraph:
    """Attributes and relationships of a single entity."""

    attributes: list[AttributeMetadata] = field(default_factory=list)
    many_to_one: list[RelationshipMetadata] = field(default_factory=list)
    one_to_many: list[RelationshipMetadata] = field(default_factory=list)
    many_to_many: list[ManyToManyRelationship] = field(default_factory=list)


@dataclass
class MetadataSnapshot:
    """Point-in-time copy of the metadata for a set of entities."""

    entities: list[EntityMetadata] = field(default_factory=list)
    graphs: dict[str, EntityGraph] = field(default_factory=dict)


class MetadataProvider(Protocol):
    """Metadata lookup used by the editing surface."""

    def list_entities(self) -> list[EntityMetadata]:
        """All entities a report can start from."""
        ...

    def get_entity_graph(self, logical_name: str) -> EntityGraph | None:
        """Attributes and relationships of one entity, or None if unknown."""
        ...


class SnapshotMetadataProvider:
    """MetadataProvider serving a fixed snapshot."""

    def __init__(self, snapshot: MetadataSnapshot):
        self.snapshot = snapshot

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> SnapshotMetadataProvider:
        return cls(snapshot_from_dict(payload))

    @classmethod
    def from_file(cls, path: Path) -> SnapshotMetadataProvider:
        """Load a snapshot from a YAML (or JSON) file.

        Raises:
            DefinitionLoadError: If the file cannot be read or parsed
        """
        try:
            with open(path, encoding="utf-8") as f:
                payload = yaml.safe_load(f)
        except OSError as e:
            raise DefinitionLoadError(path, f"Cannot read file: {e}") from e
        except yaml.YAMLError as e:
            raise DefinitionLoadError(path, f"YAML parse error: {e}") from e

        if not isinstance(payload, dict):
            raise DefinitionLoadError(path, "Expected a metadata snapshot object")
        try:
            return cls.from_dict(payload)
        except (KeyError, TypeError) as e:
            raise DefinitionLoadError(path, f"Malformed metadata snapshot: {e}") from e

    def list_entities(self) -> list[EntityMetadata]:
        return list(self.snapshot.entities)

    def get_entity_graph(self, logical_name: str) -> EntityGraph | None:
        graph = self.snapshot.graphs.get(logical_name)
        if graph is None:
            logger.debug("entity_graph_not_found", entity=logical_name)
        return graph

    def get_entity(self, logical_name: str) -> EntityMetadata | None:
        for entity in self.snapshot.entities:
            if entity.logical_name == logical_name:
                return entity
        return None

    def find_relation(self, entity: str, schema_name: str) -> Relation | None:
        """Relation a link node from ``entity`` over ``schema_name`` would use."""
        graph = self.get_entity_graph(entity)
        if graph is None:
            return None

        for rel in graph.many_to_one:
            if rel.schema_name == schema_name:
                return relation_from_metadata("manyToOne", rel)
        for rel in graph.one_to_many:
            if rel.schema_name == schema_name:
                return relation_from_metadata("oneToMany", rel)
        for m2m in graph.many_to_many:
            if m2m.schema_name == schema_name:
                return self._many_to_many_relation(entity, m2m)
        return None

    def _many_to_many_relation(self, entity: str, rel: ManyToManyRelationship) -> Relation | None:
        target = rel.entity2 if rel.entity1 == entity else rel.entity1
        source_meta = self.get_entity(entity)
        target_meta = self.get_entity(target)
        if source_meta is None or target_meta is None:
            return None
        return Relation(
            kind="manyToMany",
            schema_name=rel.schema_name,
            from_attribute=source_meta.primary_id,
            to_attribute=target_meta.primary_id,
            target=target,
        )


def relation_from_metadata(
    kind: Literal["manyToOne", "oneToMany"],
    relationship: RelationshipMetadata,
) -> Relation:
    """Build a link node relation from a relationship entry.

    For one-to-many the parent side holds the referenced attribute; for
    many-to-one the current entity holds the referencing (lookup) attribute.
    """
    if kind == "oneToMany":
        from_attribute = relationship.referenced_attribute
        to_attribute = relationship.referencing_attribute
    else:
        from_attribute = relationship.referencing_attribute
        to_attribute = relationship.referenced_attribute

    return Relation(
        kind=kind,
        schema_name=relationship.schema_name,
        from_attribute=from_attribute,
        to_attribute=to_attribute,
        target=relationship.referenced_entity,
    )


# =============================================================================
# Parsing
# =============================================================================


def snapshot_from_dict(payload: dict[str, Any]) -> MetadataSnapshot:
    """Parse a camelCase snapshot payload."""
    entities = [
        EntityMetadata(
            logical_name=e["logicalName"],
            display_name=e.get("displayName", e["logicalName"]),
            primary_id=e["primaryId"],
            primary_name=e["primaryName"],
        )
        for e in payload.get("entities", [])
    ]
    graphs = {name: _entity_graph_from_dict(g) for name, g in payload.get("graphs", {}).items()}
    return MetadataSnapshot(entities=entities, graphs=graphs)


def _entity_graph_from_dict(data: dict[str, Any]) -> EntityGraph:
    relationships = data.get("relationships", {})
    return EntityGraph(
        attributes=[
            AttributeMetadata(
                logical_name=a["logicalName"],
                display_name=a.get("displayName", a["logicalName"]),
                type=a["type"],
                targets=a.get("targets"),
            )
            for a in data.get("attributes", [])
        ],
        many_to_one=[_relationship_from_dict(r) for r in relationships.get("manyToOne", [])],
        one_to_many=[_relationship_from_dict(r) for r in relationships.get("oneToMany", [])],
        many_to_many=[
            ManyToManyRelationship(
                schema_name=r["schemaName"],
                entity1=r["entity1"],
                entity2=r["entity2"],
                intersect_entity=r["intersectEntity"],
            )
            for r in relationships.get("manyToMany", [])
        ],
    )


def _relationship_from_dict(data: dict[str, Any]) -> RelationshipMetadata:
    return RelationshipMetadata(
        schema_name=data["schemaName"],
        referencing_attribute=data["referencingAttribute"],
        referenced_entity=data["referencedEntity"],
        referenced_attribute=data["referencedAttribute"],
        display_name=data.get("displayName", data["schemaName"]),
    )
