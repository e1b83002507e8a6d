"""In-memory conversation forest: node creation, lineage paths, deletion and pruning."""

from __future__ import annotations

from collections import deque

import structlog
from ulid import ULID

from thicket.events.bus import EventBus, ThicketEvent
from thicket.models.node import CompletionError, ForestSnapshot, Node, PruneResult, Role


def make_id(prefix: str) -> str:
    """
    Generate a ULID-based sortable identifier.

    Args:
        prefix: Short prefix for readability (e.g. ``"node"``).

    Returns:
        ID string in the format ``"{prefix}_{ulid}"``.
    """
    return f"{prefix}_{ULID()}"


# ── Exceptions ─────────────────────────────────────────────────────────────────


class ThicketError(Exception):
    """Base class for Thicket errors."""


class NodeNotFoundError(ThicketError):
    """Raised when a node_id does not exist in the forest."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id!r}")
        self.node_id = node_id


class ConstraintViolationError(ThicketError):
    """Raised when a request breaks a conversation rule. Detected before the store is mutated."""


class RootDeletionError(ConstraintViolationError):
    """Raised when attempting to delete a root node."""

    def __init__(self, node_id: str) -> None:
        super().__init__(f"Root messages cannot be deleted: {node_id!r}")
        self.node_id = node_id


class InvalidParentError(ConstraintViolationError):
    """Raised when a user message targets a parent that is not an assistant node."""

    def __init__(self, parent_id: str, role: str) -> None:
        super().__init__(
            f"User messages must reply to an assistant message; {parent_id!r} is a {role} message"
        )
        self.parent_id = parent_id
        self.role = role


class InvalidMessageError(ConstraintViolationError):
    """Raised when message content is missing, empty or not a string."""


# ── ForestStore ────────────────────────────────────────────────────────────────


class ForestStore:
    """
    Volatile, in-process store for a forest of conversation nodes.

    The store performs structural operations only. Domain rules (a user reply
    must target an assistant node, roots cannot be deleted) belong to the
    caller and are checked before any mutation here. Read and prune paths
    tolerate dangling references instead of raising: an unresolvable parent
    simply ends an ancestor walk, an unknown prune root leaves the forest as is.

    Each instance is independent; there is no module-level state.

    Usage::

        store = ForestStore()
        question = store.create_node("user", "Hello")
        answer = store.create_node("assistant", "Hi there", parent_id=question.id)
        path = store.get_context_path(answer.id)   # [question, answer]
        store.prune_to_root(store.get_root_id(answer.id))
    """

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._nodes: dict[str, Node] = {}
        self._root_ids: list[str] = []
        self._event_bus = event_bus or EventBus()
        self._logger = structlog.get_logger("thicket.store")

    # ── Lookups ────────────────────────────────────────────────────────────────

    def find(self, node_id: str | None) -> Node | None:
        """
        Return the node for ``node_id``, or ``None`` when it is unknown.

        This is the soft-failure lookup every read and prune path relies on.
        Use :meth:`get` where a missing node is an error.
        """
        if node_id is None:
            return None
        return self._nodes.get(node_id)

    def get(self, node_id: str) -> Node:
        """
        Return the node for ``node_id``.

        Raises:
            NodeNotFoundError: If the node does not exist.
        """
        node = self._nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    @property
    def root_ids(self) -> list[str]:
        """Current root ids, oldest first. Returns a copy."""
        return list(self._root_ids)

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    # ── Mutations ──────────────────────────────────────────────────────────────

    def create_node(
        self,
        role: Role,
        content: str,
        parent_id: str | None = None,
        *,
        error: CompletionError | None = None,
    ) -> Node:
        """
        Insert a new node and attach it to its parent or to the root list.

        The new node inherits ``root_id`` from its parent. A node created
        without a parent is its own root. A ``parent_id`` that does not
        resolve leaves the node detached with its own id as ``root_id``;
        callers validate parents before calling.

        Args:
            role: ``"user"`` or ``"assistant"``.
            content: Message text.
            parent_id: Id of the node being replied to, or ``None`` for a new root.
            error: Provider failure recorded on a fallback assistant reply.

        Returns:
            The node, already inserted into the forest.
        """
        node_id = make_id("node")
        parent = self.find(parent_id)
        root_id = (parent.root_id or parent.id) if parent is not None else node_id

        node = Node(
            id=node_id,
            role=role,
            content=content,
            parent_id=parent_id,
            root_id=root_id,
            error=error,
        )
        self._nodes[node_id] = node
        if parent_id is None:
            self._root_ids.append(node_id)
        elif parent is not None:
            parent.children.append(node_id)

        self._logger.debug(
            "node_created", node_id=node_id, role=role, parent_id=parent_id, root_id=root_id
        )
        self._event_bus.publish(
            ThicketEvent.NODE_CREATED,
            {"node_id": node_id, "role": role, "parent_id": parent_id, "root_id": root_id},
        )
        return node

    def delete_subtree(self, node_id: str) -> int:
        """
        Remove ``node_id`` and every descendant from the node mapping.

        Nodes already absent are skipped. The former parent's ``children``
        list is left alone; use :meth:`remove_subtree_and_detach` to unlink
        and delete in one step.

        Returns:
            Number of nodes removed.
        """
        removed = 0
        pending = [node_id]
        while pending:
            current = self._nodes.pop(pending.pop(), None)
            if current is None:
                continue
            pending.extend(current.children)
            removed += 1
        return removed

    def remove_subtree_and_detach(self, node_id: str) -> int:
        """
        Unlink ``node_id`` from its parent (or the root list) and delete its subtree.

        Returns:
            Number of nodes removed.

        Raises:
            NodeNotFoundError: If the node does not exist.
        """
        node = self.get(node_id)
        parent = self.find(node.parent_id)
        if parent is not None:
            parent.children = [child for child in parent.children if child != node_id]
        elif node.is_root:
            self._root_ids = [root for root in self._root_ids if root != node_id]

        removed = self.delete_subtree(node_id)
        self._logger.info("subtree_deleted", node_id=node_id, removed_count=removed)
        self._event_bus.publish(
            ThicketEvent.SUBTREE_DELETED, {"node_id": node_id, "removed_count": removed}
        )
        return removed

    def prune_to_root(self, root_id: str) -> PruneResult:
        """
        Narrow the forest to the subtree rooted at ``root_id``.

        Algorithm:
        1. If ``root_id`` is unknown: no-op.
        2. Breadth-first walk over ``children`` from ``root_id`` to collect
           the reachable set (the root included).
        3. Drop every node outside the reachable set.
        4. Filter each retained node's ``children`` to retained ids.
        5. Replace the root list with ``[root_id]``.

        Calling it twice with the same root yields the same forest.

        Returns:
            PruneResult with the retained and removed counts.
        """
        if root_id not in self._nodes:
            self._logger.debug("prune_skipped", root_id=root_id)
            return PruneResult(pruned=False, retained_count=len(self._nodes))

        retained: set[str] = set()
        queue: deque[str] = deque([root_id])
        while queue:
            current_id = queue.popleft()
            if current_id in retained:
                continue
            node = self._nodes.get(current_id)
            if node is None:
                continue
            retained.add(current_id)
            queue.extend(child for child in node.children if child not in retained)

        removed = len(self._nodes) - len(retained)
        next_nodes: dict[str, Node] = {}
        for node_id, node in self._nodes.items():
            if node_id not in retained:
                continue
            node.children = [child for child in node.children if child in retained]
            next_nodes[node_id] = node
        self._nodes = next_nodes
        self._root_ids = [root_id]

        result = PruneResult(pruned=True, retained_count=len(retained), removed_count=removed)
        if removed:
            self._logger.info(
                "forest_pruned", root_id=root_id, retained=len(retained), removed=removed
            )
        self._event_bus.publish(
            ThicketEvent.FOREST_PRUNED,
            {"root_id": root_id, "retained_count": len(retained), "removed_count": removed},
        )
        return result

    # ── Reads ──────────────────────────────────────────────────────────────────

    def get_context_path(self, node_id: str) -> list[Node]:
        """
        Return the ancestor chain of ``node_id``, root first.

        The walk follows ``parent_id`` links and stops at a root or at the
        first reference that no longer resolves. An unknown ``node_id``
        yields an empty list.
        """
        path: list[Node] = []
        current = self.find(node_id)
        while current is not None:
            path.append(current)
            current = self.find(current.parent_id)
        path.reverse()
        return path

    def get_root_id(self, node_id: str) -> str:
        """Return the cached root id of ``node_id``, or ``node_id`` itself if it is unknown."""
        node = self.find(node_id)
        if node is None:
            return node_id
        return node.root_id or node.id

    def serialize(self) -> ForestSnapshot:
        """Return a deep copy of the root list and the full node mapping."""
        return ForestSnapshot(
            root_ids=list(self._root_ids),
            nodes={node_id: node.model_copy(deep=True) for node_id, node in self._nodes.items()},
        )
