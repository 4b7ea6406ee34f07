"""
Graph store for one course's knowledge graph.

Holds the authoritative node and relationship catalog and guarantees
its consistency: every relationship endpoint exists, there are no
self-loops, and the prerequisite subgraph is a DAG. The store is
immutable once loaded; a content update builds a new store.
"""

import heapq
import logging
from collections import deque
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..exceptions import GraphValidationError, NodeNotFoundError, ValidationErrorKind
from ..models import CourseContent, Difficulty, Importance, Node, Relationship, RelationshipType


logger = logging.getLogger(__name__)


class GraphStore:
    """
    Immutable, validated knowledge graph for a single course.

    Build with ``GraphStore.load`` or ``GraphStore.from_content``;
    the constructor does not validate.
    """

    def __init__(
        self,
        course_id: str,
        nodes: Dict[str, Node],
        relationships: Tuple[Relationship, ...],
    ) -> None:
        self._course_id = course_id
        self._nodes = dict(nodes)
        self._relationships = tuple(relationships)

        # Prerequisite adjacency: target -> {source: strength} and the reverse
        self._prereqs_in: Dict[str, Dict[str, int]] = {nid: {} for nid in self._nodes}
        self._prereqs_out: Dict[str, Dict[str, int]] = {nid: {} for nid in self._nodes}
        self._touching: Dict[str, List[Relationship]] = {nid: [] for nid in self._nodes}

        for rel in self._relationships:
            self._touching[rel.source_id].append(rel)
            self._touching[rel.target_id].append(rel)
            if rel.type == RelationshipType.PREREQUISITE:
                # Parallel edges between the same pair add up
                current = self._prereqs_in[rel.target_id].get(rel.source_id, 0)
                strength = current + rel.strength
                self._prereqs_in[rel.target_id][rel.source_id] = strength
                self._prereqs_out[rel.source_id][rel.target_id] = strength

    # =========================================================
    # LOADING
    # =========================================================

    @classmethod
    def load(
        cls,
        nodes: Iterable[Node],
        relationships: Iterable[Relationship],
        course_id: str,
        check_acyclic: bool = True,
    ) -> "GraphStore":
        """
        Validate nodes and relationships and build a store.

        Raises:
            GraphValidationError: DuplicateId, DanglingReference, SelfLoop
                or PrerequisiteCycle, naming the offending ids
        """
        node_map: Dict[str, Node] = {}
        duplicates: List[str] = []
        for node in nodes:
            if node.id in node_map:
                duplicates.append(node.id)
            node_map[node.id] = node
        if duplicates:
            raise GraphValidationError(ValidationErrorKind.DUPLICATE_ID, duplicates)

        rels = tuple(relationships)
        rel_ids: set[str] = set()
        for rel in rels:
            if rel.id in rel_ids:
                raise GraphValidationError(ValidationErrorKind.DUPLICATE_ID, [rel.id])
            rel_ids.add(rel.id)

        for rel in rels:
            missing = [nid for nid in (rel.source_id, rel.target_id) if nid not in node_map]
            if missing:
                raise GraphValidationError(
                    ValidationErrorKind.DANGLING_REFERENCE,
                    [rel.id] + missing,
                    f"relationship {rel.id} references unknown node(s) {', '.join(missing)}",
                )

        for rel in rels:
            if rel.source_id == rel.target_id:
                raise GraphValidationError(
                    ValidationErrorKind.SELF_LOOP,
                    [rel.id, rel.source_id],
                    f"relationship {rel.id} links {rel.source_id} to itself",
                )

        store = cls(course_id, node_map, rels)

        if check_acyclic:
            cycle = store.find_prerequisite_cycle()
            if cycle:
                raise GraphValidationError(
                    ValidationErrorKind.PREREQUISITE_CYCLE,
                    cycle,
                    f"prerequisite cycle {' → '.join(cycle)}",
                )

        logger.info(
            f"Loaded graph for course {course_id}: "
            f"{len(node_map)} nodes, {len(rels)} relationships"
        )
        return store

    @classmethod
    def from_content(cls, content: CourseContent, check_acyclic: bool = True) -> "GraphStore":
        """Build a store from a course content document."""
        return cls.load(
            content.nodes,
            content.relationships,
            course_id=content.course_id,
            check_acyclic=check_acyclic,
        )

    # =========================================================
    # NODES
    # =========================================================

    @property
    def course_id(self) -> str:
        return self._course_id

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def get_node(self, node_id: str) -> Node:
        """Get a node by ID. Raises NodeNotFoundError if unknown."""
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(f"Node not found in course {self._course_id}: {node_id}") from None

    def node_ids(self) -> List[str]:
        return list(self._nodes)

    def list_nodes(self) -> List[Node]:
        """All nodes, by display order then id."""
        return sorted(self._nodes.values(), key=lambda n: (n.order, n.id))

    def filter_nodes(
        self,
        difficulty: Optional[Iterable[Difficulty]] = None,
        importance: Optional[Iterable[Importance]] = None,
        module_id: Optional[str] = None,
    ) -> List[Node]:
        """Nodes matching every given filter, in display order."""
        difficulties = set(difficulty) if difficulty is not None else None
        importances = set(importance) if importance is not None else None
        return [
            node for node in self.list_nodes()
            if (difficulties is None or node.difficulty in difficulties)
            and (importances is None or node.importance in importances)
            and (module_id is None or node.module_id == module_id)
        ]

    # =========================================================
    # RELATIONSHIPS
    # =========================================================

    def list_relationships(
        self,
        types: Optional[Iterable[RelationshipType]] = None,
    ) -> List[Relationship]:
        """Relationships in load order, optionally restricted to some types."""
        if types is None:
            return list(self._relationships)
        wanted = set(types)
        return [rel for rel in self._relationships if rel.type in wanted]

    def get_prerequisites(self, node_id: str) -> List[Node]:
        """
        Direct prerequisites of a node.

        Ordered by edge strength descending, then node id ascending.
        """
        self._require(node_id)
        return self._ranked(self._prereqs_in[node_id])

    def get_dependents(self, node_id: str) -> List[Node]:
        """Nodes that have ``node_id`` as a direct prerequisite."""
        self._require(node_id)
        return self._ranked(self._prereqs_out[node_id])

    def prerequisite_ids(self, node_id: str) -> List[str]:
        self._require(node_id)
        return [node.id for node in self._ranked(self._prereqs_in[node_id])]

    def prerequisite_strength(self, source_id: str, target_id: str) -> int:
        """Combined strength of the prerequisite edges source → target, 0 if none."""
        self._require(target_id)
        return self._prereqs_in[target_id].get(source_id, 0)

    def get_related(
        self,
        node_id: str,
        type: Optional[RelationshipType] = None,
    ) -> List[Tuple[Node, int]]:
        """
        Every node linked to ``node_id`` by a relationship, with its strength.

        Both directions are included. Ordered by strength descending,
        then node id.
        """
        self._require(node_id)
        related: List[Tuple[Node, int]] = []
        for rel in self._touching[node_id]:
            if type is not None and rel.type != type:
                continue
            other_id = rel.target_id if rel.source_id == node_id else rel.source_id
            related.append((self._nodes[other_id], rel.strength))
        related.sort(key=lambda pair: (-pair[1], pair[0].id))
        return related

    # =========================================================
    # GRAPH QUERIES
    # =========================================================

    def find_prerequisite_cycle(self) -> Optional[List[str]]:
        """
        Find a cycle in the prerequisite subgraph.

        Depth-first search with an in-stack set; reaching a node that is
        still on the stack closes a cycle. Returns the cycle as a list of
        ids starting and ending with the same node, or None for a DAG.
        """
        visited: set[str] = set()

        for root in sorted(self._nodes):
            if root in visited:
                continue
            visited.add(root)
            path = [root]
            on_stack = {root}
            stack = [iter(sorted(self._prereqs_out[root]))]

            while stack:
                for child in stack[-1]:
                    if child in on_stack:
                        return path[path.index(child):] + [child]
                    if child not in visited:
                        visited.add(child)
                        on_stack.add(child)
                        path.append(child)
                        stack.append(iter(sorted(self._prereqs_out[child])))
                        break
                else:
                    stack.pop()
                    on_stack.discard(path.pop())

        return None

    def get_all_prerequisites(self, node_id: str) -> List[Node]:
        """
        All transitive prerequisites of a node.

        Returned in learning order: every node comes after its own
        prerequisites.
        """
        self._require(node_id)
        ancestors: set[str] = set()
        queue = deque(self._prereqs_in[node_id])
        while queue:
            current = queue.popleft()
            if current in ancestors:
                continue
            ancestors.add(current)
            queue.extend(self._prereqs_in[current])
        return [self._nodes[nid] for nid in self.topological_order(ancestors)]

    def topological_order(self, node_ids: Optional[Iterable[str]] = None) -> List[str]:
        """
        Node ids in learning order (prerequisites first).

        Only edges between the selected nodes are considered. Ties are
        broken by display order, then id.
        """
        if node_ids is None:
            selected = set(self._nodes)
        else:
            selected = set(node_ids)
            for nid in selected:
                self._require(nid)

        indegree = {
            nid: sum(1 for src in self._prereqs_in[nid] if src in selected)
            for nid in selected
        }
        ready = [(self._nodes[nid].order, nid) for nid, deg in indegree.items() if deg == 0]
        heapq.heapify(ready)

        ordered: List[str] = []
        while ready:
            _, nid = heapq.heappop(ready)
            ordered.append(nid)
            for target in self._prereqs_out[nid]:
                if target not in selected:
                    continue
                indegree[target] -= 1
                if indegree[target] == 0:
                    heapq.heappush(ready, (self._nodes[target].order, target))

        if len(ordered) != len(selected):
            # Only reachable for stores loaded with check_acyclic=False
            raise GraphValidationError(
                ValidationErrorKind.PREREQUISITE_CYCLE,
                sorted(selected - set(ordered)),
            )
        return ordered

    # =========================================================
    # HELPERS
    # =========================================================

    def _require(self, node_id: str) -> None:
        if node_id not in self._nodes:
            raise NodeNotFoundError(f"Node not found in course {self._course_id}: {node_id}")

    def _ranked(self, strengths: Dict[str, int]) -> List[Node]:
        ordered: Sequence[Tuple[str, int]] = sorted(
            strengths.items(), key=lambda item: (-item[1], item[0])
        )
        return [self._nodes[nid] for nid, _ in ordered]
