"""
HTTP client for procedure endpoints.

Speaks the same wire format the handler serves: query input in the
``input`` query parameter, mutation input as the JSON body, and batches as
comma joined paths with index keyed input.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from .core.inputs import ABSENT
from .core.procedure_type import ProcedureType
from .core.transformer import get_combined_transformer

logger = logging.getLogger("rpcbridge.client")


class ProcedureClientError(Exception):
    """
    Raised for error envelopes and transport failures.

    Attributes:
        shape: The shaped error from the envelope (None for transport failures)
        status_code: HTTP status of the response, when there was one
    """

    def __init__(
        self,
        message: str,
        shape: Optional[Any] = None,
        status_code: Optional[int] = None,
    ):
        self.shape = shape
        self.status_code = status_code
        super().__init__(message)

    @property
    def code(self) -> Optional[str]:
        if isinstance(self.shape, dict):
            data = self.shape.get("data")
            if isinstance(data, dict):
                return data.get("code")
        return None


class ProcedureClient:
    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "",
        transformer=None,
    ):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.transformer = get_combined_transformer(transformer)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def _encode(self, value: Any) -> str:
        return json.dumps(self.transformer.input.serialize(value))

    async def _send(
        self,
        kind: ProcedureType,
        path: str,
        input: Any,
        params: Optional[Dict[str, str]] = None,
    ) -> Tuple[Any, int]:
        params = dict(params or {})
        request_kwargs: Dict[str, Any] = {}
        if kind is ProcedureType.QUERY:
            method = "GET"
            if input is not ABSENT:
                params["input"] = input
        elif kind is ProcedureType.MUTATION:
            method = "POST"
            request_kwargs["headers"] = {"Content-Type": "application/json"}
            if input is not ABSENT:
                request_kwargs["content"] = input
        else:
            raise ValueError(f"Cannot send {ProcedureType(kind).value} calls over HTTP")

        try:
            response = await self.client.request(
                method, self._url(path), params=params, **request_kwargs
            )
        except httpx.RequestError as exc:
            logger.error(
                f"Procedure request to {path} failed",
                extra={"procedure_path": path, "error_type": type(exc).__name__},
            )
            raise ProcedureClientError(f"Request to {path} failed: {exc}") from exc

        try:
            return response.json(), response.status_code
        except ValueError as exc:
            raise ProcedureClientError(
                f"Response from {path} is not JSON", status_code=response.status_code
            ) from exc

    def _unwrap(self, envelope: Any, status_code: int) -> Any:
        """Return the decoded data of a success envelope, or the error of a failed one."""
        if not isinstance(envelope, dict):
            return ProcedureClientError("Malformed response envelope", status_code=status_code)
        if "error" in envelope:
            shape = self.transformer.output.deserialize(envelope["error"])
            message = shape.get("message") if isinstance(shape, dict) else None
            return ProcedureClientError(
                message or "Procedure failed", shape=shape, status_code=status_code
            )
        result = envelope.get("result") or {}
        return self.transformer.output.deserialize(result.get("data"))

    def _single(self, envelope: Any, status_code: int) -> Any:
        value = self._unwrap(envelope, status_code)
        if isinstance(value, ProcedureClientError):
            raise value
        return value

    async def query(self, path: str, input: Any = ABSENT) -> Any:
        encoded = ABSENT if input is ABSENT else self._encode(input)
        envelope, status_code = await self._send(ProcedureType.QUERY, path, encoded)
        return self._single(envelope, status_code)

    async def mutation(self, path: str, input: Any = ABSENT) -> Any:
        encoded = ABSENT if input is ABSENT else self._encode(input)
        envelope, status_code = await self._send(ProcedureType.MUTATION, path, encoded)
        return self._single(envelope, status_code)

    async def batch(self, kind: ProcedureType, calls: Sequence[Tuple[str, Any]]) -> List[Any]:
        """
        Send several calls of one kind in a single request.

        Returns one entry per call, in order: the decoded data, or a
        ProcedureClientError instance for calls that failed.

        Raises:
            ProcedureClientError: the whole request failed
        """
        if not calls:
            return []
        kind = ProcedureType(kind)
        paths = ",".join(path for path, _ in calls)
        inputs = {
            str(index): self.transformer.input.serialize(value)
            for index, (_, value) in enumerate(calls)
            if value is not ABSENT
        }
        envelopes, status_code = await self._send(
            kind, paths, json.dumps(inputs), params={"batch": "1"}
        )
        if not isinstance(envelopes, list):
            # Request-level failures come back as one envelope.
            raise self._single_error(envelopes, status_code)
        return [self._unwrap(envelope, status_code) for envelope in envelopes]

    def _single_error(self, envelope: Any, status_code: int) -> ProcedureClientError:
        value = self._unwrap(envelope, status_code)
        if isinstance(value, ProcedureClientError):
            return value
        return ProcedureClientError("Unexpected batch response", status_code=status_code)
