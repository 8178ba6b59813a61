"""Content-hash diff between a new chunk sequence and the prior chunk set.

Chunks are matched by content hash, never by position, so reordering
unchanged text does not trigger re-embedding. Each prior row can be claimed
by one new chunk only, which keeps duplicate chunks within one document
matched one-to-one.
"""

from collections import defaultdict, deque
from typing import Iterable

from shared.models.document import ChunkCandidate, ChunkDiff, StoredChunk


def compute_chunk_diff(new_chunks: Iterable[ChunkCandidate], existing_chunks: Iterable[StoredChunk]) -> ChunkDiff:
    """Classify chunks into to-embed and to-delete.

    Args:
        new_chunks: Freshly computed candidates, in document order.
        existing_chunks: The document's persisted chunk rows.

    Returns:
        ChunkDiff: to_embed holds candidates whose hash matches no unclaimed
        prior row (in input order), to_delete holds prior rows whose hash was
        not claimed (in prior order).
    """
    existing = list(existing_chunks)
    by_hash: dict[str | None, deque[StoredChunk]] = defaultdict(deque)
    for chunk in existing:
        by_hash[chunk.content_hash].append(chunk)

    # every prior row is deleted unless a new chunk claims it
    to_delete: dict[int, StoredChunk] = {chunk.id: chunk for chunk in existing}
    to_embed: list[ChunkCandidate] = []
    unchanged = 0

    for candidate in new_chunks:
        matches = by_hash.get(candidate.content_hash)
        if matches:
            kept = matches.popleft()
            del to_delete[kept.id]
            unchanged += 1
        else:
            to_embed.append(candidate)

    return ChunkDiff(to_embed=to_embed, to_delete=list(to_delete.values()), unchanged=unchanged)
