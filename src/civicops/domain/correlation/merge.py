"""Graph merge: raw facts to typed nodes and edges."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from civicops.domain.errors import (
    CivicOpsError,
    EntityCollisionError,
    FactRejected,
    GraphConflict,
)
from civicops.domain.identity import parse_entity_id
from civicops.domain.model import (
    EdgeProperties,
    FactType,
    GraphEdge,
    GraphNode,
    GraphSet,
    NodeType,
    Relationship,
    edge_id_for,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from civicops.domain.identity import IdentityLinker
    from civicops.domain.model import CanonicalEntity, RawFact

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EdgeRule:
    """How one fact type turns into an edge from its subject to a counterparty."""

    relationship: Relationship
    subject_type: NodeType
    target_key: str
    target_type: NodeType
    target_type_key: str | None = None
    target_name_key: str | None = None


EDGE_RULES: Final[Mapping[FactType, EdgeRule]] = {
    FactType.CONTRACT: EdgeRule(
        Relationship.CONTRACTS,
        NodeType.VENDOR,
        "agency_id",
        NodeType.AGENCY,
        target_name_key="agency_name",
    ),
    FactType.DONATION: EdgeRule(
        Relationship.DONOR,
        NodeType.INDIVIDUAL,
        "recipient_id",
        NodeType.PAC,
        target_type_key="recipient_type",
        target_name_key="recipient_name",
    ),
    FactType.OFFICER_OF: EdgeRule(
        Relationship.OFFICER_OF,
        NodeType.INDIVIDUAL,
        "organization_id",
        NodeType.NGO,
        target_type_key="organization_type",
        target_name_key="organization_name",
    ),
    FactType.LOBBIED: EdgeRule(
        Relationship.LOBBIED,
        NodeType.VENDOR,
        "target_id",
        NodeType.LEGISLATOR,
        target_name_key="target_name",
    ),
    FactType.FUNDED_BY: EdgeRule(
        Relationship.FUNDED_BY,
        NodeType.NGO,
        "funder_id",
        NodeType.AGENCY,
        target_type_key="funder_type",
        target_name_key="funder_name",
    ),
}

_NODE_TYPES_BY_NAME: Final[dict[str, NodeType]] = {item.value.lower(): item for item in NodeType}
TYPE_PRECEDENCE: Final[tuple[NodeType, ...]] = (
    NodeType.AGENCY,
    NodeType.LEGISLATOR,
    NodeType.PAC,
    NodeType.NGO,
    NodeType.VENDOR,
    NodeType.INDIVIDUAL,
)

EXPLICIT: Final[int] = 2
DEFAULTED: Final[int] = 1


@dataclass(slots=True)
class MergeResult:
    graph: GraphSet
    conflicts_resolved: int = 0
    skipped: list[tuple[RawFact, str]] = field(default_factory=list["tuple[RawFact, str]"])
    detached: list[tuple[RawFact, str]] = field(default_factory=list["tuple[RawFact, str]"])
    type_votes: dict[str, set[tuple[int, NodeType]]] = field(
        default_factory=dict[str, "set[tuple[int, NodeType]]"]
    )


class GraphMerger:
    """Harmonize fact ids through the identity linker and build the scenario graph.

    Fact order does not matter: node ids are entity keys, and node types are settled
    after the whole batch has been seen. Explicit types (payload or id prefix) beat the
    fact-type defaults; ties go to the earlier entry of ``TYPE_PRECEDENCE``.

    A fact whose subject resolves but whose counterparty or edge attributes do not is
    kept as a ``detached`` subject node with no edge, which link inference may pick up.
    """

    def __init__(self, linker: IdentityLinker) -> None:
        self.linker = linker

    def merge(self, scenario_hash: str, facts: Iterable[RawFact]) -> MergeResult:
        result = MergeResult(graph=GraphSet(scenario_hash=scenario_hash))
        nodes: dict[str, GraphNode] = {}
        edge_counts: Counter[str] = Counter()

        for fact in facts:
            try:
                edge = self._merge_fact(fact, nodes, edge_counts, result)
            except FactRejected as exc:
                log.warning("Skipping %s fact for %s: %s", fact.fact_type, fact.entity_id, exc)
                result.skipped.append((fact, str(exc)))
                continue
            except CivicOpsError as exc:
                raise GraphConflict(f"Merge failed on fact for {fact.entity_id}: {exc}") from exc
            if edge is not None:
                result.graph.edges.append(edge)

        for node in nodes.values():
            node.type = _settle_type(result.type_votes[node.id])
        result.graph.nodes = list(nodes.values())
        return result

    def _merge_fact(
        self,
        fact: RawFact,
        nodes: dict[str, GraphNode],
        edge_counts: Counter[str],
        result: MergeResult,
    ) -> GraphEdge | None:
        rule = EDGE_RULES.get(fact.fact_type)
        if rule is None:
            raise FactRejected(f"unsupported fact type {fact.fact_type!r}")
        payload = fact.payload
        source = fact.source_url or f"fact:{fact.fact_type.value}"

        subject = self._harmonize(
            fact.entity_id,
            name=_optional_str(payload.get("entity_name")),
            extra=payload.get("identifiers"),
            jurisdiction=_optional_str(payload.get("jurisdiction")),
        )
        subject_type = _node_type(payload.get("entity_type"), fact.entity_id, rule.subject_type)
        self._record_node(nodes, result, subject, subject_type, source)

        # the subject stays in the graph even when no edge can be derived
        try:
            target_raw = payload.get(rule.target_key)
            if target_raw is None or not str(target_raw).strip():
                raise FactRejected(f"payload is missing {rule.target_key}")
            properties = _edge_properties(fact)
            target = self._harmonize(
                str(target_raw),
                name=_optional_str(payload.get(rule.target_name_key))
                if rule.target_name_key
                else None,
            )
        except FactRejected as exc:
            log.info("Keeping %s without a %s edge: %s", subject.entity_key, rule.relationship, exc)
            result.detached.append((fact, str(exc)))
            return None

        target_type = _node_type(
            payload.get(rule.target_type_key) if rule.target_type_key else None,
            str(target_raw),
            rule.target_type,
        )
        self._record_node(nodes, result, target, target_type, source)

        base_id = edge_id_for(subject.entity_key, rule.relationship, target.entity_key)
        edge_counts[base_id] += 1
        ordinal = edge_counts[base_id]
        return GraphEdge(
            id=base_id if ordinal == 1 else f"{base_id}#{ordinal}",
            from_id=subject.entity_key,
            to_id=target.entity_key,
            relationship=rule.relationship,
            properties=properties,
        )

    def _record_node(
        self,
        nodes: dict[str, GraphNode],
        result: MergeResult,
        entity: CanonicalEntity,
        vote: tuple[int, NodeType],
        source: str,
    ) -> None:
        result.conflicts_resolved += self._upsert_node(nodes, entity, vote[1], source)
        result.type_votes.setdefault(entity.entity_key, set()).add(vote)

    def _harmonize(
        self,
        raw_id: str,
        *,
        name: str | None = None,
        extra: object = None,
        jurisdiction: str | None = None,
    ) -> CanonicalEntity:
        identifiers = parse_entity_id(raw_id)
        if isinstance(extra, dict):
            identifiers.update({str(key): str(value) for key, value in extra.items() if value})
        try:
            return self.linker.canonicalize(name, identifiers, jurisdiction)
        except ValueError as exc:
            raise FactRejected(f"cannot resolve {raw_id!r}: {exc}") from exc
        except EntityCollisionError as exc:
            raise FactRejected(f"identifier collision for {raw_id!r}") from exc

    @staticmethod
    def _upsert_node(
        nodes: dict[str, GraphNode],
        entity: CanonicalEntity,
        node_type: NodeType,
        source: str,
    ) -> int:
        node = nodes.get(entity.entity_key)
        if node is None:
            nodes[entity.entity_key] = GraphNode(
                id=entity.entity_key,
                type=node_type,
                properties=_node_properties(entity),
                source_derivation=[source],
            )
            return 0
        node.properties.update(_node_properties(entity))
        if source not in node.source_derivation:
            node.source_derivation.append(source)
        return 1


def _node_properties(entity: CanonicalEntity) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "primary_id": entity.primary_id,
        "alt_ids": list(entity.alt_ids),
        "name": entity.name_norm,
    }
    if entity.jurisdiction:
        properties["jurisdiction"] = entity.jurisdiction
    return properties


def _node_type(declared: object, raw_id: str, default: NodeType) -> tuple[int, NodeType]:
    if isinstance(declared, str) and declared.strip().lower() in _NODE_TYPES_BY_NAME:
        return EXPLICIT, _NODE_TYPES_BY_NAME[declared.strip().lower()]
    prefix, separator, _ = raw_id.partition(":")
    if separator and prefix.strip().lower() in _NODE_TYPES_BY_NAME:
        return EXPLICIT, _NODE_TYPES_BY_NAME[prefix.strip().lower()]
    return DEFAULTED, default


def _settle_type(votes: set[tuple[int, NodeType]]) -> NodeType:
    strongest = max(strength for strength, _ in votes)
    candidates = [node_type for strength, node_type in votes if strength == strongest]
    return min(candidates, key=TYPE_PRECEDENCE.index)


def _edge_properties(fact: RawFact) -> EdgeProperties:
    payload = fact.payload
    return EdgeProperties(
        source=fact.source_url or str(payload.get("source") or "unknown"),
        confidence=fact.confidence,
        amount=_amount(payload.get("amount")),
        start_date=_optional_str(payload.get("start_date") or payload.get("date")),
        end_date=_optional_str(payload.get("end_date")),
        statute_ref=_optional_str(payload.get("statute_ref")),
    )


def _amount(value: object) -> float | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise FactRejected(f"invalid amount {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.replace(",", "").replace("$", "").strip())
        except ValueError as exc:
            raise FactRejected(f"invalid amount {value!r}") from exc
    raise FactRejected(f"invalid amount {value!r}")


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
