# src/mapflow/core/editor.py
"""Workflow editor: the command API over one workflow graph.

Every mutating command builds its changes on a draft copy of the graph,
repairs stale loop references, recomputes order/level/labels for the whole
graph, and only then swaps the draft in. A command that raises leaves the
graph exactly as it was.

Example:
    editor = WorkflowEditor()
    create = editor.add_node(NodeKind.CREATE_OR_UPDATE, Position(0, 100))
    editor.connect("start", create.id)
    editor.connect(create.id, "end")
    records = editor.compile()
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from typing import Any, TypeVar

import structlog
from pydantic import ValidationError

from mapflow.contracts.collaborators import CredentialProvider, PersistenceBackend, SchemaProvider
from mapflow.contracts.enums import NodeKind
from mapflow.contracts.errors import (
    STALE_LOOP_COLLECTION,
    CompileError,
    ConnectionRejectedError,
    GraphStructureError,
    GraphWarning,
    NodeConfigError,
)
from mapflow.contracts.records import MappingRecord, SaveReceipt
from mapflow.contracts.schema import FieldInfo, FormField
from mapflow.contracts.types import NodeID
from mapflow.core.clock import DEFAULT_CLOCK, Clock
from mapflow.core.compiler import check_connected, compile_mappings
from mapflow.core.document import WorkflowDocument, build_store, document_from_store
from mapflow.core.events import EventBusProtocol, GraphChanged, NullEventBus
from mapflow.core.graph.models import Edge, Node, Position
from mapflow.core.graph.ordering import recompute
from mapflow.core.graph.rules import check_structure, path_branches, plan_connection
from mapflow.core.graph.store import GraphStore
from mapflow.core.nodes.conditions import reconcile_operators
from mapflow.core.nodes.configs import (
    ConditionConfig,
    CreateOrUpdateConfig,
    FilterConfig,
    FindConfig,
    LoopConfig,
    NodeConfig,
    merge_config,
    parse_config,
)
from mapflow.core.nodes.validation import NodeValidator, upstream_finds
from mapflow.core.schema_cache import CachingSchemaProvider, NoSchemaProvider, StaticSchemaProvider

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_CONNECT_DEBOUNCE_SECONDS = 0.1


def _short_token() -> str:
    return uuid.uuid4().hex[:8]


def _describe_validation_error(exc: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors())


class WorkflowEditor:
    """Owns one workflow graph and exposes the editing and compile commands.

    Args:
        store: Existing graph to edit (structure is checked); a fresh graph
            with only ``start`` and ``end`` when omitted
        schemas: Record-store field metadata; wrapped in a session cache
        form_fields: Source-form fields used for type checks
        event_bus: Receives GraphChanged and GraphWarning events
        clock: Time source for connect debouncing
        debounce_seconds: Window in which a repeat of the last accepted
            connect is ignored
        token: Supplies random suffixes for generated IDs
    """

    def __init__(
        self,
        *,
        store: GraphStore | None = None,
        schemas: SchemaProvider | None = None,
        form_fields: Iterable[FormField] = (),
        event_bus: EventBusProtocol | None = None,
        clock: Clock | None = None,
        debounce_seconds: float = DEFAULT_CONNECT_DEBOUNCE_SECONDS,
        token: Callable[[], str] = _short_token,
    ) -> None:
        if store is None:
            store = GraphStore.with_sentinels()
        else:
            check_structure(store)
            store = store.copy()
        recompute(store)
        self._store = store
        self._has_schema_source = schemas is not None
        if isinstance(schemas, CachingSchemaProvider):
            self._schemas = schemas
        else:
            self._schemas = CachingSchemaProvider(schemas if schemas is not None else NoSchemaProvider())
        self._form_fields: dict[str, FormField] = {field.id: field for field in form_fields}
        self._events: EventBusProtocol = event_bus if event_bus is not None else NullEventBus()
        self._clock = clock if clock is not None else DEFAULT_CLOCK
        self._debounce_seconds = debounce_seconds
        self._token = token
        self._last_connect: tuple[tuple[str, str], float] | None = None
        self._warnings: list[GraphWarning] = []
        self._objects: dict[str, list[FieldInfo]] = {}

    @classmethod
    def from_document(
        cls,
        document: WorkflowDocument,
        *,
        schemas: SchemaProvider | None = None,
        **kwargs: Any,
    ) -> WorkflowEditor:
        """Open a workflow document for editing.

        The document's embedded objects serve as the schema source unless
        ``schemas`` is given.

        Raises:
            GraphStructureError: If the graph breaks a structural rule
            NodeConfigError: If a node's configuration doesn't fit its kind
        """
        if schemas is None and document.objects:
            schemas = StaticSchemaProvider(document.objects)
        editor = cls(
            store=build_store(document),
            schemas=schemas,
            form_fields=document.form_fields,
            **kwargs,
        )
        editor._objects = dict(document.objects)
        return editor

    def to_document(self, form_version_id: str = "", objects: Mapping[str, list[FieldInfo]] | None = None) -> WorkflowDocument:
        """Snapshot the current graph as a workflow document."""
        return document_from_store(
            self._store,
            form_version_id=form_version_id,
            form_fields=list(self._form_fields.values()),
            objects=dict(objects) if objects is not None else dict(self._objects),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def warnings(self) -> list[GraphWarning]:
        """Warnings raised so far, oldest first."""
        return list(self._warnings)

    @property
    def node_count(self) -> int:
        return self._store.node_count

    @property
    def edge_count(self) -> int:
        return self._store.edge_count

    def nodes(self) -> list[Node]:
        """All nodes in execution order."""
        return sorted(self._store.nodes(), key=lambda node: node.order or 0)

    def edges(self) -> list[Edge]:
        return self._store.edges()

    def get_node(self, node_id: str) -> Node:
        return self._store.get_node(node_id)

    def snapshot(self) -> GraphStore:
        """Independent copy of the current graph."""
        return self._store.copy()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_node(
        self,
        kind: NodeKind | str,
        position: Position | tuple[float, float] | None = None,
        initial_config: Mapping[str, Any] | None = None,
    ) -> Node:
        """Drop a new, unconnected node onto the graph.

        Raises:
            GraphStructureError: If ``kind`` is start or end
            NodeConfigError: If ``initial_config`` doesn't fit the kind
        """
        kind = NodeKind(kind)
        if kind.is_sentinel:
            raise GraphStructureError(f"A workflow has exactly one {kind} node; it cannot be added")
        node_id = NodeID(f"{kind.value}_{self._token()}")
        while self._store.has_node(node_id):
            node_id = NodeID(f"{kind.value}_{self._token()}")
        config = self._parse(node_id, lambda: parse_config(kind, initial_config))
        if not isinstance(position, Position):
            position = Position(*position) if position is not None else Position()

        node = Node(id=node_id, kind=kind, position=position, config=config)
        self._commit("add_node", lambda draft: draft.add_node(node), (node_id,))
        logger.debug("node_added", node_id=node_id, kind=kind.value)
        return self._store.get_node(node_id)

    def connect(self, source_id: str, target_id: str) -> list[Edge]:
        """Add an edge, synthesizing a branch condition for Path sources.

        A repeat of the previous accepted connect inside the debounce
        window is ignored and returns an empty list.

        Returns:
            The edges that were inserted

        Raises:
            ConnectionRejectedError: If the connection breaks a graph rule
        """
        now = self._clock.monotonic()
        pair = (source_id, target_id)
        if self._last_connect is not None:
            last_pair, accepted_at = self._last_connect
            if last_pair == pair and now - accepted_at < self._debounce_seconds:
                logger.debug("connect_debounced", source=source_id, target=target_id)
                return []

        try:
            plan = plan_connection(self._store, source_id, target_id, token=self._token)
        except ConnectionRejectedError as exc:
            logger.info("connection_rejected", source=source_id, target=target_id, reason=exc.reason.value)
            raise

        def apply(draft: GraphStore) -> None:
            if plan.synthesized is not None:
                draft.add_node(plan.synthesized)
            for edge in plan.edges:
                draft.add_edge(edge)

        touched = (source_id, target_id) + ((plan.synthesized.id,) if plan.synthesized is not None else ())
        self._commit("connect", apply, touched)
        self._last_connect = (pair, now)

        if plan.synthesized is not None:
            logger.info("branch_synthesized", path=source_id, target=target_id, condition=plan.synthesized.id)
        else:
            logger.debug("connection_accepted", source=source_id, target=target_id)
        return list(plan.edges)

    def disconnect_edge(self, edge_id: str) -> list[Node]:
        """Remove an edge. Branch edges take their whole branch with them.

        Raises:
            GraphStructureError: If the edge doesn't exist
        """
        edge = self._store.get_edge(edge_id)

        def apply(draft: GraphStore) -> None:
            if edge.branch_group_id is None:
                draft.remove_edge(edge.id)
                return
            first, _ = draft.branch_edges(edge.branch_group_id)
            draft.remove_node(first.target)

        self._commit("disconnect_edge", apply, (edge.source, edge.target))
        return self.nodes()

    def delete_node(self, node_id: str) -> list[Node]:
        """Remove a node and its edges.

        Deleting a Path removes its branch conditions; deleting a branch
        condition or a branch target removes the whole branch.

        Raises:
            GraphStructureError: If the node is start/end or doesn't exist
        """
        node = self._store.get_node(node_id)
        if node.kind.is_sentinel:
            raise GraphStructureError("The start and end nodes cannot be deleted")

        def apply(draft: GraphStore) -> None:
            guards: list[str] = []
            if node.kind == NodeKind.PATH:
                guards.extend(first.target for first, _ in path_branches(draft, node_id))
            guards.extend(
                edge.source
                for edge in draft.incoming(node_id)
                if edge.is_branch and draft.get_node(edge.source).kind == NodeKind.CONDITION
            )
            for guard in dict.fromkeys(guards):
                draft.remove_node(guard)
            draft.remove_node(node_id)

        self._commit("delete_node", apply, (node_id,))
        logger.debug("node_deleted", node_id=node_id, kind=node.kind.value)
        return self.nodes()

    def update_node_config(self, node_id: str, partial_config: Mapping[str, Any]) -> list[Node]:
        """Overlay configuration fields onto a node.

        Selecting a new target object fetches its schema (once per session)
        and resets condition operators that its field types don't allow.

        Raises:
            GraphStructureError: If the node doesn't exist
            NodeConfigError: If the merged configuration doesn't fit the kind
            SchemaFetchError: If the selected object's schema can't be fetched
        """
        node = self._store.get_node(node_id)
        config = self._parse(node.id, lambda: merge_config(node.config, partial_config))
        target_object = getattr(config, "target_object", "")
        if self._has_schema_source and target_object and "target_object" in partial_config:
            self._schemas.get_fields(target_object)
        config = self._reconcile_operators(config)

        def apply(draft: GraphStore) -> None:
            draft.replace_node(replace(draft.get_node(node_id), config=config))

        self._commit("update_node_config", apply, (node_id,))
        return self.nodes()

    # ------------------------------------------------------------------
    # Validation and compilation
    # ------------------------------------------------------------------

    def validate_node(self, node_id: str) -> None:
        """Run save-time validation for one node.

        Raises:
            NodeConfigError: If the node's configuration can't be saved
            GraphStructureError: If the node doesn't exist
            SchemaFetchError: If field metadata is needed and unavailable
        """
        try:
            NodeValidator(self._store, self._schemas, self._form_fields).validate(node_id)
        except NodeConfigError as exc:
            logger.info("node_invalid", node_id=node_id, error=exc.message)
            raise

    def compile(self) -> list[MappingRecord]:
        """Validate every node and compile the graph into mapping records.

        Raises:
            CompileError: If a node is isolated or fails validation
            SchemaFetchError: If field metadata is needed and unavailable
        """
        check_connected(self._store)
        validator = NodeValidator(self._store, self._schemas, self._form_fields)
        for node in self.nodes():
            try:
                validator.validate(node.id)
            except NodeConfigError as exc:
                raise CompileError(exc.message, node_id=exc.node_id) from exc
        return compile_mappings(self._store)

    def publish(
        self,
        persistence: PersistenceBackend,
        credentials: CredentialProvider,
        form_version_id: str,
    ) -> SaveReceipt:
        """Compile and hand the records to persistence. Nothing is retried.

        Raises:
            CompileError: If the graph doesn't compile
            CredentialError: If no bearer credential is available
            PersistenceError: If the backend fails the save
        """
        records = self.compile()
        credential = credentials.bearer_token()
        receipt = persistence.save(records, form_version_id=form_version_id, credential=credential)
        logger.info("workflow_published", form_version_id=form_version_id, record_count=len(records))
        return receipt

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _parse(self, node_id: str, build: Callable[[], NodeConfig]) -> NodeConfig:
        try:
            return build()
        except ValidationError as exc:
            raise NodeConfigError(node_id, f"Invalid configuration for node '{node_id}': {_describe_validation_error(exc)}") from exc
        except ValueError as exc:
            raise NodeConfigError(node_id, f"Invalid configuration for node '{node_id}': {exc}") from exc

    def _reconcile_operators(self, config: NodeConfig) -> NodeConfig:
        if not isinstance(config, (CreateOrUpdateConfig, FindConfig, FilterConfig, ConditionConfig)):
            return config
        if not config.target_object:
            return config
        field_types = self._schemas.field_types(config.target_object)
        if field_types is None:
            return config
        conditions = reconcile_operators(config.conditions, field_types)
        if conditions is config.conditions:
            return config
        return config.model_copy(update={"conditions": conditions})

    def _loop_references(self, store: GraphStore) -> dict[NodeID, tuple[str, bool]]:
        """Each loop's collection reference and whether it is currently valid."""
        references: dict[NodeID, tuple[str, bool]] = {}
        for node in store.nodes():
            if isinstance(node.config, LoopConfig) and node.config.loop_collection:
                ref = node.config.loop_collection
                references[node.id] = (ref, ref in upstream_finds(store, node.id))
        return references

    def _clear_stale_loops(self, draft: GraphStore, before: dict[NodeID, tuple[str, bool]]) -> list[GraphWarning]:
        """Clear loop references the mutation invalidated.

        A reference is stale when its Find node is gone, or when it was
        valid before the mutation and no longer is.
        """
        warnings: list[GraphWarning] = []
        for loop_id, (ref, valid_now) in self._loop_references(draft).items():
            if valid_now:
                continue
            if before.get(loop_id) != (ref, True) and draft.has_node(ref):
                continue
            loop = draft.get_node(loop_id)
            draft.replace_node(replace(loop, config=loop.config.model_copy(update={"loop_collection": None})))
            warnings.append(
                GraphWarning(
                    code=STALE_LOOP_COLLECTION,
                    message=f"Loop {loop.name} ({loop.id}) can no longer iterate Find node '{ref}'; its collection was cleared.",
                    node_ids=(loop.id, ref),
                )
            )
        return warnings

    def _commit(self, operation: str, apply: Callable[[GraphStore], T], node_ids: tuple[str, ...]) -> T:
        before = self._loop_references(self._store)
        with self._store.transaction() as draft:
            result = apply(draft)
            warnings = self._clear_stale_loops(draft, before)
            recompute(draft)

        for warning in warnings:
            self._warnings.append(warning)
            logger.warning("stale_reference_cleared", code=warning.code, node_ids=list(warning.node_ids), message=warning.message)
            self._events.emit(warning)
        self._events.emit(
            GraphChanged(
                operation=operation,
                node_ids=node_ids,
                node_count=self._store.node_count,
                edge_count=self._store.edge_count,
            )
        )
        return result
