from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import httpx

from ..config import DualFlowConfig
from ..diagram.models import DiagramRecord, DiagramSummary, SaveDiagramResponse
from ..flow_logging import get_logger
from .base import DiagramGateway, DiagramNotFoundError, GatewayUnavailableError

logger = get_logger(__name__)

DIAGRAMS_PATH = "/api/diagrams"


class HttpDiagramGateway(DiagramGateway):
    """Client for a remote diagram service speaking the /api/diagrams wire shape."""

    backend_name = "http"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 client: Optional[httpx.AsyncClient] = None, config: Optional[DualFlowConfig] = None) -> None:
        if client is None:
            config = config or DualFlowConfig.from_env()
            client = httpx.AsyncClient(
                base_url=base_url or config.api_url,
                timeout=timeout if timeout is not None else config.api_timeout_s,
            )
            self._owns_client = True
        else:
            self._owns_client = False
        self.client = client

    async def create(self, name: str, data: Mapping[str, Any]) -> str:
        response = await self._request("POST", DIAGRAMS_PATH, json={"name": name, "data": dict(data)})
        return SaveDiagramResponse.model_validate(response.json()).id

    async def read(self, diagram_id: str) -> DiagramRecord:
        response = await self._request("GET", f"{DIAGRAMS_PATH}/{diagram_id}", diagram_id=diagram_id)
        return DiagramRecord.model_validate(response.json())

    async def list(self) -> List[DiagramSummary]:
        response = await self._request("GET", DIAGRAMS_PATH)
        return [DiagramSummary.model_validate(item) for item in response.json()]

    async def update(self, diagram_id: str, name: str, data: Mapping[str, Any]) -> None:
        await self._request("POST", DIAGRAMS_PATH, diagram_id=diagram_id,
                            json={"id": diagram_id, "name": name, "data": dict(data)})

    async def delete(self, diagram_id: str) -> None:
        await self._request("DELETE", f"{DIAGRAMS_PATH}/{diagram_id}", diagram_id=diagram_id)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, path: str, diagram_id: Optional[str] = None,
                       json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            response = await self.client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Diagram service unreachable: {method} {path}: {e}")
            raise GatewayUnavailableError(f"Diagram service unreachable: {e}") from e

        if response.status_code == 404 and diagram_id is not None:
            raise DiagramNotFoundError(diagram_id)
        if response.is_error:
            logger.error(f"Diagram service rejected {method} {path}: {response.status_code} {response.text}")
            raise GatewayUnavailableError(
                f"Diagram service rejected {method} {path} with status {response.status_code}"
            )
        return response
