# storefront/services/tryon_service.py
"""
Virtual try-on through a hosted IDM-VTON inference endpoint.

The token is the store's huggingface_api_key config (encrypted) or the global
HUGGINGFACE_API_KEY. Upstream failures are mapped to messages a shopper can
act on.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.api.errors import BizError, ValidationError
from storefront.core.config import AppSettings, get_settings
from storefront.db.rls import with_store_context
from storefront.services.config_service import ConfigService

log = logging.getLogger("storefront.tryon")

GARMENT_CATEGORIES = {"upper": "upper_body", "lower": "lower_body"}

UNAVAILABLE_MESSAGE = (
    "El servicio de IA no está configurado. Configurá tu clave de HuggingFace en el panel de administración."
)


class TryOnError(BizError):
    code = "TRYON_FAILED"
    status = 502


def map_upstream_error(status_code: Optional[int], body: str = "") -> TryOnError:
    text = (body or "").lower()
    if status_code == 402 or "billing" in text or "credit" in text:
        return TryOnError(
            "Se agotaron los créditos de IA. Verificá tu cuenta de HuggingFace.", code="TRYON_BILLING", status=402
        )
    if status_code == 429 or "rate limit" in text or "quota" in text:
        return TryOnError(
            "Límite de uso alcanzado. Esperá unos minutos e intentá de nuevo.", code="TRYON_RATE_LIMITED", status=429
        )
    if status_code in (401, 403):
        return TryOnError(
            "Clave de API inválida. Verificá tu configuración en el panel de administración.",
            code="TRYON_INVALID_KEY",
            status=401,
        )
    return TryOnError("Error al generar la imagen. Intentá de nuevo.")


def extract_image_url(payload: Any) -> Optional[str]:
    if isinstance(payload, str):
        return payload or None
    if isinstance(payload, list):
        return extract_image_url(payload[0]) if payload else None
    if isinstance(payload, dict):
        for key in ("url", "image", "output", "path"):
            if payload.get(key):
                return extract_image_url(payload[key])
        if "data" in payload:
            return extract_image_url(payload["data"])
    return None


class TryOnService:
    def __init__(
        self,
        session: AsyncSession,
        store_id: Optional[str],
        *,
        settings: AppSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.session = session
        self.store_id = store_id
        self.settings = settings or get_settings()
        self._client = client

    async def _api_key(self) -> Optional[str]:
        store_key = None
        if self.store_id:
            async with with_store_context(self.session, self.store_id):
                store_key = await ConfigService(self.session, self.store_id).read("huggingface_api_key")
        return store_key or self.settings.HUGGINGFACE_API_KEY or None

    async def status(self) -> Dict[str, Any]:
        key = await self._api_key()
        available = bool(self.settings.TRYON_ENDPOINT_URL and key)
        return {
            "available": available,
            "provider": "huggingface" if available else "none",
            "model": "IDM-VTON",
            "message": "Probador virtual con IA disponible" if available else UNAVAILABLE_MESSAGE,
        }

    async def virtual_try_on(self, model_image: str, garment_image: str, garment_type: str = "upper") -> Dict[str, Any]:
        if not model_image or not garment_image:
            raise ValidationError("Se requieren imágenes del modelo y la prenda", code="TRYON_IMAGES_REQUIRED")
        category = GARMENT_CATEGORIES.get(garment_type)
        if category is None:
            raise ValidationError("garment_type debe ser 'upper' o 'lower'", code="INVALID_GARMENT_TYPE")

        endpoint = self.settings.TRYON_ENDPOINT_URL
        key = await self._api_key()
        if not endpoint or not key:
            raise BizError(UNAVAILABLE_MESSAGE, code="TRYON_UNAVAILABLE", status=503)

        body = {
            "inputs": {
                "human_img": model_image,
                "garm_img": garment_image,
                "category": category,
                "garment_des": "clothing item",
                "crop": False,
                "steps": 30,
                "seed": 42,
            }
        }
        headers = {"Authorization": f"Bearer {key}"}
        try:
            if self._client is not None:
                resp = await self._client.post(endpoint, json=body, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.settings.TRYON_TIMEOUT_SECONDS) as client:
                    resp = await client.post(endpoint, json=body, headers=headers)
        except httpx.TimeoutException as e:
            log.warning("try-on timed out store=%s", self.store_id)
            raise TryOnError(
                "El procesamiento tardó demasiado. Intentá de nuevo.", code="TRYON_TIMEOUT", status=504
            ) from e
        except httpx.HTTPError as e:
            log.error("try-on request failed store=%s: %s", self.store_id, e)
            raise TryOnError("Error al generar la imagen. Intentá de nuevo.") from e

        if resp.status_code >= 400:
            log.error("try-on upstream %s store=%s: %s", resp.status_code, self.store_id, resp.text[:200])
            raise map_upstream_error(resp.status_code, resp.text)

        image_url = extract_image_url(resp.json())
        if not image_url:
            raise TryOnError("Error al generar la imagen. Intentá de nuevo.", code="TRYON_EMPTY_RESULT")
        return {"success": True, "image_url": image_url, "provider": "huggingface"}
