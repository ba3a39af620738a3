import asyncio
import sys

from memory_index.config import load_config
from memory_index.engine.index_engine import MemoryIndex


async def backfill(user_id: str):
    config = load_config()

    async with MemoryIndex(config) as index:
        memories = await index.repository.get_user_memories(user_id)
        pending = [m for m in memories if await index.repository.get_directive(m.id) is None]
        print(f"Found {len(memories)} memories, {len(pending)} without a directive.")

        results = await index.index_memories(pending)
        fallbacks = sum(1 for r in results.values() if r.classification.is_fallback)
        print(f"Indexed {len(results)} memories ({fallbacks} via fallback).")

        regenerated = await index.regenerate_stale_documents(user_id)
        print(f"Regenerated {len(regenerated)} documents: {', '.join(regenerated) or '-'}")

        stats = await index.get_index_stats(user_id)
        print(f"Active documents: {stats['active_documents']}/{stats['total_documents']}")

    print("Done!")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python scripts/backfill_index.py <user_id>")
        sys.exit(1)
    asyncio.run(backfill(sys.argv[1]))
