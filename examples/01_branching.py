"""
Example 01: Branching conversations
===================================

Demonstrates how each reply sees only its own lineage, and how starting a
new topic discards the previous one.

This example runs without an API key: THICKET_MOCK_LLM=1 makes the default
provider echo the latest user message.

Run:
    THICKET_MOCK_LLM=1 uv run python examples/01_branching.py
"""

import asyncio
import os

from thicket import Conversation, ForestStore, ThicketEvent


async def main() -> None:
    os.environ.setdefault("THICKET_MOCK_LLM", "1")

    store = ForestStore()
    store.event_bus.subscribe(
        ThicketEvent.FOREST_PRUNED,
        lambda event, payload: print(f"  pruned {payload['removed_count']} node(s)"),
    )
    conversation = Conversation(store)

    print("Topic A")
    first = await conversation.post_message("Explain recursion.")
    print(f"  {first.assistant.content}")

    print("Two sibling branches under the first answer")
    left = await conversation.post_message("Give an example.", parent_id=first.assistant.id)
    right = await conversation.post_message("Any pitfalls?", parent_id=first.assistant.id)
    for branch in (left, right):
        path = conversation.context_for(branch.assistant.id)
        print("  context:", " -> ".join(node.content[:24] for node in path))

    print("Delete the left branch")
    state = conversation.delete_message(left.user.id)
    print(f"  {len(state.nodes)} node(s) remain")

    print("Topic B replaces topic A")
    second = await conversation.post_message("What is a monad?")
    print(f"  roots: {second.state.root_ids}")


if __name__ == "__main__":
    asyncio.run(main())
