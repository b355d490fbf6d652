"""Async client for an OpenAI-compatible embeddings endpoint."""

from __future__ import annotations

from typing import Any

import httpx


class RemoteEmbeddingClient:
    """POSTs batches to ``{base_url}/embeddings`` and returns ordered vectors.

    Raises httpx.HTTPError for transport and status failures, and ValueError
    when the response does not carry one vector of the configured length
    per input.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        dimensions: int,
        timeout_sec: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._model = model
        self._dimensions = dimensions
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(timeout_sec),
            transport=transport,
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        payload: dict[str, Any] = {
            "model": self._model,
            "input": texts,
            "dimensions": self._dimensions,
        }
        response = await self._client.post("/embeddings", json=payload)
        response.raise_for_status()
        body = response.json()

        # Sort by index to ensure order matches input
        data = sorted(body["data"], key=lambda item: item["index"])
        vectors = [item["embedding"] for item in data]
        if len(vectors) != len(texts):
            raise ValueError(f"Expected {len(texts)} embeddings, got {len(vectors)}")
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise ValueError(
                    f"Expected {self._dimensions} dimensions, got {len(vector)}"
                )
        return vectors

    async def aclose(self) -> None:
        await self._client.aclose()
