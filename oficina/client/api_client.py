"""
Oficina Client - HTTP transport
Cliente assíncrono (httpx) para os endpoints de vistoria
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Resposta de erro da API. `detail` traz o dict {kind, message, ...}"""

    def __init__(self, status_code: int, detail: Any):
        self.status_code = status_code
        self.detail = detail
        if isinstance(detail, dict):
            self.kind = detail.get("kind")
            message = detail.get("message", str(detail))
        else:
            self.kind = None
            message = str(detail)
        super().__init__(f"[{status_code}] {message}")

    @property
    def retryable(self) -> bool:
        return isinstance(self.detail, dict) and bool(self.detail.get("retryable"))


class InspectionClient:
    """
    Wrapper fino sobre httpx.AsyncClient.

    `transport` permite apontar o cliente direto para a aplicação ASGI
    (httpx.ASGITransport) sem subir um servidor.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        tenant_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0
    ):
        headers = {"Authorization": f"Bearer {token}"}
        if tenant_id:
            headers["X-Tenant-ID"] = tenant_id

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            transport=transport,
            timeout=timeout
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._client.request(method, path, **kwargs)

        if response.is_error:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            logger.warning(f"{method} {path} falhou: {response.status_code}")
            raise ApiError(response.status_code, detail)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def get_inspection(self, inspection_id: str) -> Dict:
        return await self._request("GET", f"/api/inspections/{inspection_id}")

    async def add_damages(self, inspection_id: str, damages: List[Dict]) -> List[Dict]:
        """Grava marcações em lote; a resposta ecoa o client_ref de cada uma"""
        return await self._request(
            "POST",
            f"/api/inspections/{inspection_id}/damages",
            json={"damages": damages}
        )

    async def remove_damage(self, damage_id: str) -> None:
        await self._request("DELETE", f"/api/inspections/damages/{damage_id}")
