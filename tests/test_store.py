"""Tests for ForestStore."""

from __future__ import annotations

import pytest

from thicket.events.bus import ThicketEvent
from thicket.store.forest import ForestStore, NodeNotFoundError, make_id


def _reachable(store: ForestStore, node_id: str) -> set[str]:
    seen: set[str] = set()
    pending = [node_id]
    while pending:
        current = store.find(pending.pop())
        if current is None or current.id in seen:
            continue
        seen.add(current.id)
        pending.extend(current.children)
    return seen


class TestMakeId:
    def test_prefix_and_uniqueness(self):
        ids = {make_id("node") for _ in range(100)}
        assert len(ids) == 100
        assert all(i.startswith("node_") for i in ids)


class TestCreateNode:
    def test_root_node_is_its_own_root(self, store):
        """A parentless node caches its own id as root_id and joins root_ids once."""
        node = store.create_node("user", "Hello")
        assert node.root_id == node.id
        assert node.parent_id is None
        assert node.is_root
        assert store.root_ids.count(node.id) == 1
        assert node.id in store

    def test_child_inherits_root_and_joins_parent_children(self, store):
        root = store.create_node("user", "Hello")
        reply = store.create_node("assistant", "Hi", parent_id=root.id)
        follow_up = store.create_node("user", "More", parent_id=reply.id)

        assert reply.root_id == root.id
        assert follow_up.root_id == root.id
        assert store.get(root.id).children.count(reply.id) == 1
        assert store.get(reply.id).children == [follow_up.id]
        assert store.root_ids == [root.id]

    def test_children_keep_insertion_order(self, store):
        root = store.create_node("user", "Q")
        answer = store.create_node("assistant", "A", parent_id=root.id)
        first = store.create_node("user", "first", parent_id=answer.id)
        second = store.create_node("user", "second", parent_id=answer.id)
        assert store.get(answer.id).children == [first.id, second.id]

    def test_unresolved_parent_leaves_node_detached(self, store):
        """A dangling parent_id is not attached anywhere; the caller validates parents."""
        node = store.create_node("user", "orphan", parent_id="node_missing")
        assert node.root_id == node.id
        assert node.id not in store.root_ids
        assert node.id in store

    def test_multiple_roots_coexist_before_pruning(self, store):
        a = store.create_node("user", "Topic A")
        b = store.create_node("user", "Topic B")
        assert store.root_ids == [a.id, b.id]
        assert len(store) == 2

    def test_publishes_node_created(self, store, event_bus):
        node = store.create_node("user", "Hello")
        assert (
            ThicketEvent.NODE_CREATED,
            {"node_id": node.id, "role": "user", "parent_id": None, "root_id": node.id},
        ) in event_bus.collected


class TestLookups:
    def test_find_returns_none_for_unknown(self, store):
        assert store.find("node_nope") is None
        assert store.find(None) is None

    def test_get_raises_for_unknown(self, store):
        with pytest.raises(NodeNotFoundError) as exc_info:
            store.get("node_nope")
        assert exc_info.value.node_id == "node_nope"

    def test_root_ids_returns_copy(self, store):
        store.create_node("user", "Hello")
        store.root_ids.clear()
        assert len(store.root_ids) == 1


class TestContextPath:
    def test_scenario_a_user_then_assistant(self, store):
        """Path to an assistant reply is [user, assistant]."""
        user = store.create_node("user", "Hello")
        assistant = store.create_node("assistant", "Hi there", parent_id=user.id)

        path = store.get_context_path(assistant.id)
        assert [(n.role, n.content) for n in path] == [
            ("user", "Hello"),
            ("assistant", "Hi there"),
        ]

    def test_path_shape_on_deep_branch(self, store):
        root = store.create_node("user", "q1")
        a1 = store.create_node("assistant", "a1", parent_id=root.id)
        store.create_node("user", "sibling", parent_id=a1.id)
        q2 = store.create_node("user", "q2", parent_id=a1.id)
        leaf = store.create_node("assistant", "a2", parent_id=q2.id)

        path = store.get_context_path(leaf.id)
        assert path[-1].id == leaf.id
        assert path[0].parent_id is None
        for parent, child in zip(path, path[1:], strict=False):
            assert child.parent_id == parent.id
        assert "sibling" not in [n.content for n in path]

    def test_unknown_node_gives_empty_path(self, store):
        assert store.get_context_path("node_nope") == []

    def test_missing_ancestor_stops_walk(self, store):
        root = store.create_node("user", "q1")
        a1 = store.create_node("assistant", "a1", parent_id=root.id)
        q2 = store.create_node("user", "q2", parent_id=a1.id)
        # a1 survives as the sole root but still points at the dropped root
        store.prune_to_root(a1.id)

        path = store.get_context_path(q2.id)
        assert [n.id for n in path] == [a1.id, q2.id]


class TestGetRootId:
    def test_returns_cached_root(self, store):
        root = store.create_node("user", "q")
        child = store.create_node("assistant", "a", parent_id=root.id)
        assert store.get_root_id(child.id) == root.id

    def test_unknown_id_is_returned_unchanged(self, store):
        assert store.get_root_id("node_gone") == "node_gone"


class TestPruneToRoot:
    def _two_topics(self, store):
        a = store.create_node("user", "Topic A")
        a_reply = store.create_node("assistant", "Reply A", parent_id=a.id)
        b = store.create_node("user", "Topic B")
        b_reply = store.create_node("assistant", "Reply B", parent_id=b.id)
        return a, a_reply, b, b_reply

    def test_keeps_only_reachable_set(self, store):
        a, a_reply, b, b_reply = self._two_topics(store)

        result = store.prune_to_root(b.id)

        assert result.pruned is True
        assert result.retained_count == 2
        assert result.removed_count == 2
        assert set(store.serialize().nodes) == {b.id, b_reply.id}
        assert store.root_ids == [b.id]
        assert a.id not in store
        assert a_reply.id not in store

    def test_children_never_reference_removed_ids(self, store):
        root = store.create_node("user", "q")
        answer = store.create_node("assistant", "a", parent_id=root.id)
        kept = store.create_node("user", "kept", parent_id=answer.id)
        gone = store.create_node("user", "gone", parent_id=answer.id)
        # Drop a child from the mapping without detaching it
        store.delete_subtree(gone.id)

        store.prune_to_root(root.id)

        assert store.get(answer.id).children == [kept.id]
        snapshot = store.serialize()
        for node in snapshot.nodes.values():
            assert all(child in snapshot.nodes for child in node.children)

    def test_mapping_equals_reachable_set(self, store):
        root = store.create_node("user", "q")
        answer = store.create_node("assistant", "a", parent_id=root.id)
        for i in range(3):
            q = store.create_node("user", f"q{i}", parent_id=answer.id)
            store.create_node("assistant", f"a{i}", parent_id=q.id)
        store.create_node("user", "other root")

        store.prune_to_root(root.id)

        assert set(store.serialize().nodes) == _reachable(store, root.id)
        assert len(store) == 8

    def test_unknown_root_is_noop(self, store, event_bus):
        a, _, b, _ = self._two_topics(store)
        before = store.serialize()

        result = store.prune_to_root("node_missing")

        assert result.pruned is False
        assert store.serialize() == before
        assert store.root_ids == [a.id, b.id]
        assert not any(e == ThicketEvent.FOREST_PRUNED for e, _ in event_bus.collected)

    def test_idempotent(self, store):
        _, _, b, _ = self._two_topics(store)
        store.prune_to_root(b.id)
        once = store.serialize()

        second = store.prune_to_root(b.id)

        assert store.serialize() == once
        assert second.removed_count == 0

    def test_publishes_forest_pruned(self, store, event_bus):
        _, _, b, _ = self._two_topics(store)
        store.prune_to_root(b.id)
        assert (
            ThicketEvent.FOREST_PRUNED,
            {"root_id": b.id, "retained_count": 2, "removed_count": 2},
        ) in event_bus.collected


class TestDeleteSubtree:
    def test_removes_node_and_descendants_only(self, store):
        root = store.create_node("user", "q")
        answer = store.create_node("assistant", "a", parent_id=root.id)
        doomed = store.create_node("user", "doomed", parent_id=answer.id)
        doomed_reply = store.create_node("assistant", "doomed reply", parent_id=doomed.id)
        survivor = store.create_node("user", "survivor", parent_id=answer.id)

        removed = store.delete_subtree(doomed.id)

        assert removed == 2
        assert doomed.id not in store
        assert doomed_reply.id not in store
        assert {root.id, answer.id, survivor.id} == set(store.serialize().nodes)

    def test_does_not_detach_from_parent(self, store):
        root = store.create_node("user", "q")
        answer = store.create_node("assistant", "a", parent_id=root.id)
        store.delete_subtree(answer.id)
        assert store.get(root.id).children == [answer.id]

    def test_missing_node_is_skipped(self, store):
        assert store.delete_subtree("node_missing") == 0


class TestRemoveSubtreeAndDetach:
    def test_unlinks_and_deletes(self, store, event_bus):
        root = store.create_node("user", "q")
        answer = store.create_node("assistant", "a", parent_id=root.id)
        q2 = store.create_node("user", "q2", parent_id=answer.id)
        store.create_node("assistant", "a2", parent_id=q2.id)

        removed = store.remove_subtree_and_detach(answer.id)

        assert removed == 3
        assert store.get(root.id).children == []
        assert len(store) == 1
        assert (
            ThicketEvent.SUBTREE_DELETED,
            {"node_id": answer.id, "removed_count": 3},
        ) in event_bus.collected

    def test_root_is_dropped_from_root_ids(self, store):
        a = store.create_node("user", "A")
        b = store.create_node("user", "B")
        store.remove_subtree_and_detach(a.id)
        assert store.root_ids == [b.id]

    def test_unknown_node_raises(self, store):
        with pytest.raises(NodeNotFoundError):
            store.remove_subtree_and_detach("node_missing")


class TestSerialize:
    def test_snapshot_is_a_copy(self, store):
        root = store.create_node("user", "q")
        snapshot = store.serialize()
        store.create_node("assistant", "a", parent_id=root.id)

        assert snapshot.nodes[root.id].children == []
        assert len(snapshot.nodes) == 1
        assert snapshot.root_ids == [root.id]

    def test_wire_format_uses_camel_case(self, store):
        root = store.create_node("user", "q")
        child = store.create_node("assistant", "a", parent_id=root.id)

        wire = store.serialize().to_wire()

        assert wire["rootIds"] == [root.id]
        node = wire["nodes"][child.id]
        assert node["parentId"] == root.id
        assert node["rootId"] == root.id
        assert isinstance(node["createdAt"], str)
        assert node["children"] == []
        assert node["error"] is None
