"""Bounded fan-out / fan-in of embedding calls.

A fixed number of workers drain a job queue and push index-tagged results
to a result queue. The caller waits for every worker to finish, then
rebuilds the vector list by index. One failed job fails the whole batch;
jobs already running are not cancelled.
"""

import asyncio
from typing import Awaitable, Callable

from pydantic import BaseModel, ConfigDict

from shared.exceptions.errors import EmbeddingError
from shared.helper.HelperConfig import HelperConfig
from shared.models.document import ChunkCandidate

EmbedFunction = Callable[[str], Awaitable[list[float]]]

DEFAULT_WORKER_COUNT = 10


class EmbeddingJob(BaseModel):
    index: int
    chunk: ChunkCandidate


class EmbeddingResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    index: int
    vector: list[float] | None = None
    error: Exception | None = None


class EmbeddingWorkerPool:
    """Computes vectors for a batch of chunks with a fixed number of concurrent workers."""

    def __init__(
        self,
        helper_config: HelperConfig,
        embed_function: EmbedFunction,
        worker_count: int | None = None,
        expected_vector_size: int | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._embed_function = embed_function
        self.worker_count = worker_count if worker_count is not None else helper_config.get_int_val("EMBED_WORKERS", default=DEFAULT_WORKER_COUNT, minimum=1)
        if self.worker_count < 1:
            raise ValueError(f"worker_count must be >= 1, got {self.worker_count}")
        self.expected_vector_size = expected_vector_size

    ##########################################
    ################ WORKER ##################
    ##########################################

    async def _worker(self, jobs: asyncio.Queue, results: asyncio.Queue) -> None:
        """Embed jobs until the queue is empty. Errors are reported as results, never raised."""
        while True:
            try:
                job: EmbeddingJob = jobs.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                vector = await self._embed_function(job.chunk.content)
                self._validate_vector(vector)
                results.put_nowait(EmbeddingResult(index=job.index, vector=vector))
            except Exception as exc:
                results.put_nowait(EmbeddingResult(index=job.index, error=exc))
            finally:
                jobs.task_done()

    def _validate_vector(self, vector: list[float]) -> None:
        if not vector:
            raise EmbeddingError("Embedding function returned an empty vector.")
        if self.expected_vector_size is not None and len(vector) != self.expected_vector_size:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self.expected_vector_size}."
            )

    ##########################################
    ################# BATCH ##################
    ##########################################

    async def do_embed_chunks(self, chunks: list[ChunkCandidate]) -> list[list[float]]:
        """Embed a batch, returning vectors in input order.

        Args:
            chunks (list[ChunkCandidate]): The chunks to embed.

        Returns:
            list[list[float]]: vectors[i] belongs to chunks[i].

        Raises:
            EmbeddingError: If any chunk failed to embed. No partial result is returned.
        """
        job_count = len(chunks)
        if job_count == 0:
            return []

        jobs: asyncio.Queue = asyncio.Queue(maxsize=job_count)
        results: asyncio.Queue = asyncio.Queue(maxsize=job_count)
        for index, chunk in enumerate(chunks):
            jobs.put_nowait(EmbeddingJob(index=index, chunk=chunk))

        self.logging.debug("Embedding %d chunks with %d workers", job_count, self.worker_count)
        await asyncio.gather(*[self._worker(jobs, results) for _ in range(self.worker_count)])

        vectors: list[list[float] | None] = [None] * job_count
        while not results.empty():
            result: EmbeddingResult = results.get_nowait()
            if result.error is not None:
                self.logging.error("Embedding failed for chunk %d of %d: %s", result.index, job_count, result.error)
                raise EmbeddingError(f"Embedding failed for chunk {result.index}: {result.error}") from result.error
            vectors[result.index] = result.vector

        if any(vector is None for vector in vectors):
            raise EmbeddingError("Embedding batch finished with missing vectors.")
        return vectors
