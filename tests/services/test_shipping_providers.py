# tests/services/test_shipping_providers.py
import json
import random
from datetime import date

import httpx
import pytest

from storefront.core.config import AppSettings
from storefront.services.shipping import ShipmentInput, ShipmentItem, ShippingProviderError
from storefront.services.shipping.providers.enviopack import EnviopackProvider, map_status, parse_address
from storefront.services.shipping.providers.mock import MockShippingProvider
from storefront.services.shipping.registry import close_providers, get_provider, register_provider, reset_providers

TODAY = date(2026, 3, 10)


class FixedRandom(random.Random):
    """random() pinned; randint/choice stay seeded."""

    def __init__(self, value: float):
        super().__init__(7)
        self.value = value

    def random(self):
        return self.value


def _input(**kw) -> ShipmentInput:
    data = dict(
        order_id="o-1",
        order_number="XM-ABC-1234",
        customer_name="Ana <Pérez>",
        customer_email="ana@example.com",
        customer_phone=None,
        shipping_address="Av. Colón 123, Bahía Blanca, Buenos Aires 8000",
        items=[ShipmentItem(name="Remera", quantity=2, price=1500000)],
        total=3000000,
    )
    data.update(kw)
    return ShipmentInput(**data)


# ---------------------------------------------------------------------------
# mock carrier
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_mock_create_shipment_renders_escaped_label():
    provider = MockShippingProvider(rng=FixedRandom(0.1), today=lambda: TODAY)
    result = await provider.create_shipment(_input())

    assert result.tracking_number.startswith("XMP")
    assert result.carrier == "mock"
    assert result.label_url == "/api/shipping/label/o-1"
    assert "XM-ABC-1234" in result.label_data
    assert "Ana &lt;Pérez&gt;" in result.label_data
    assert "Tel: N/A" in result.label_data
    assert 3 <= (date.fromisoformat(result.estimated_delivery) - TODAY).days <= 6


@pytest.mark.asyncio
async def test_mock_tracking_in_transit():
    provider = MockShippingProvider(rng=FixedRandom(0.2), today=lambda: TODAY)
    result = await provider.get_tracking("XMP123")

    assert result.success is True
    assert result.status == "in_transit"
    assert [e.status for e in result.events] == ["in_transit", "shipped", "created"]
    assert result.estimated_delivery == "2026-03-12"


@pytest.mark.asyncio
async def test_mock_tracking_delivered():
    provider = MockShippingProvider(rng=FixedRandom(0.9), today=lambda: TODAY)
    result = await provider.get_tracking("XMP123")

    assert result.status == "delivered"
    assert result.events[0].date == "2026-03-10"
    assert result.estimated_delivery is None


def test_registry_caches_and_falls_back_to_mock():
    reset_providers()
    assert get_provider("mock") is get_provider("MOCK")
    assert isinstance(get_provider("andreani"), MockShippingProvider)
    assert isinstance(get_provider("unknown-carrier"), MockShippingProvider)
    assert isinstance(get_provider("enviopack"), EnviopackProvider)

    custom = MockShippingProvider()
    register_provider("correo_argentino", custom)
    assert get_provider("correo_argentino") is custom


# ---------------------------------------------------------------------------
# enviopack
# ---------------------------------------------------------------------------

ENVIOPACK_SETTINGS = AppSettings(
    ENVIOPACK_BASE_URL="https://ep.test",
    ENVIOPACK_API_KEY="key",
    ENVIOPACK_SECRET_KEY="secret",
    SHIPPING_ORIGIN_NAME="Tienda",
)


def _enviopack(handler, **kw) -> EnviopackProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EnviopackProvider(settings=kw.pop("settings", ENVIOPACK_SETTINGS), client=client, **kw)


def test_parse_address():
    assert parse_address("Av. Colón 123, Bahía Blanca, Buenos Aires 8000") == {
        "street": "Av. Colón 123",
        "number": "",
        "city": "Bahía Blanca",
        "province": "Buenos Aires 8000",
        "postal_code": "8000",
    }
    only_street = parse_address("Calle Falsa 742")
    assert only_street["city"] == "Bahía Blanca"
    assert only_street["postal_code"] == "8000"


def test_map_status():
    assert map_status("despachado") == "shipped"
    assert map_status("ENTREGADO") == "delivered"
    assert map_status("devuelto") == "failed"
    assert map_status("algo_nuevo") == "in_transit"


@pytest.mark.asyncio
async def test_enviopack_create_shipment_flow():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.url.path == "/auth":
            assert json.loads(request.content) == {"api-key": "key", "secret-key": "secret"}
            return httpx.Response(200, json={"token": "tok-1"})
        assert request.url.params["access_token"] == "tok-1"
        if request.url.path == "/pedidos":
            body = json.loads(request.content)
            assert body["numero"] == "XM-ABC-1234"
            assert body["valor_declarado"] == 30000.0
            assert body["paquetes"][0]["peso"] == 0.6
            assert body["destinatario"]["codigo_postal"] == "8000"
            return httpx.Response(200, json={"id": 77})
        if request.url.path == "/pedidos/77/envios":
            return httpx.Response(200, json={"id": 501, "tracking_number": "EP-501"})
        return httpx.Response(404)

    provider = _enviopack(handler)
    result = await provider.create_shipment(_input())

    assert result.tracking_number == "EP-501"
    assert result.label_url.startswith("https://ep.test/envios/501/etiqueta?access_token=tok-1")
    assert result.carrier_response == {"orderId": 77, "shipmentId": 501, "provider": "enviopack"}
    # token fetched once and reused
    assert [c for c in calls if c[1] == "/auth"] == [("POST", "/auth")]


@pytest.mark.asyncio
async def test_enviopack_token_refreshes_after_expiry():
    now = [0.0]
    tokens = iter(["tok-1", "tok-2"])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"token": next(tokens)})

    provider = _enviopack(handler, clock=lambda: now[0])
    assert await provider.access_token() == "tok-1"
    now[0] += 60 * 60
    assert await provider.access_token() == "tok-1"
    # within the refresh margin of the 3.5h lifetime
    now[0] += 2.5 * 60 * 60 - 60
    assert await provider.access_token() == "tok-2"


@pytest.mark.asyncio
async def test_enviopack_requires_credentials():
    provider = _enviopack(lambda r: httpx.Response(200), settings=AppSettings(ENVIOPACK_API_KEY=""))
    with pytest.raises(ShippingProviderError):
        await provider.access_token()


@pytest.mark.asyncio
async def test_enviopack_api_error_becomes_provider_error():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth":
            return httpx.Response(200, json={"token": "tok"})
        return httpx.Response(500, text="boom")

    provider = _enviopack(handler)
    with pytest.raises(ShippingProviderError) as ei:
        await provider.create_shipment(_input())
    assert ei.value.status_code == 500
    assert ei.value.carrier == "enviopack"


@pytest.mark.asyncio
async def test_enviopack_tracking():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth":
            return httpx.Response(200, json={"token": "tok"})
        assert request.url.params["tracking"] == "EP-501"
        return httpx.Response(
            200,
            json=[
                {
                    "estado": "en_distribucion",
                    "fecha_estimada_entrega": "2026-03-12",
                    "estados": [
                        {"estado": "despachado", "fecha": "2026-03-09 10:00", "sucursal": "Bahía Blanca"},
                        {"estado": "en_transito", "fecha": "2026-03-10 08:30", "descripcion": "Viajando"},
                    ],
                }
            ],
        )

    result = await _enviopack(handler).get_tracking("EP-501")
    assert result.status == "in_transit"
    assert result.estimated_delivery == "2026-03-12"
    assert [(e.date, e.time, e.status) for e in result.events] == [
        ("2026-03-09", "10:00", "shipped"),
        ("2026-03-10", "08:30", "in_transit"),
    ]
    assert result.events[1].description == "Viajando"


@pytest.mark.asyncio
async def test_enviopack_tracking_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth":
            return httpx.Response(200, json={"token": "tok"})
        return httpx.Response(200, json=[])

    with pytest.raises(ShippingProviderError) as ei:
        await _enviopack(handler).get_tracking("nope")
    assert ei.value.status_code == 404


@pytest.mark.asyncio
async def test_enviopack_quote_converts_to_centavos():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/auth":
            return httpx.Response(200, json={"token": "tok"})
        body = json.loads(request.content)
        assert body == {
            "codigo_postal_origen": "8000",
            "codigo_postal_destino": "1425",
            "peso": 1.5,
            "valor_declarado": 150.0,
        }
        return httpx.Response(200, json=[{"correo_nombre": "OCA", "servicio_nombre": "Estándar", "precio": 3500.5}])

    quotes = await _enviopack(handler).get_quote("8000", "1425", 1500, 15000)
    assert quotes[0]["price"] == 350050
    assert quotes[0]["estimated_days"] == {"min": 3, "max": 7}


class ClosingCarrier(MockShippingProvider):
    def __init__(self):
        super().__init__()
        self.closed = 0

    async def aclose(self):
        self.closed += 1


@pytest.mark.asyncio
async def test_close_providers_closes_each_instance_once_and_empties_cache():
    carrier = ClosingCarrier()
    register_provider("mock", carrier)
    register_provider("andreani", carrier)

    await close_providers()

    assert carrier.closed == 1
    assert get_provider("mock") is not carrier


@pytest.mark.asyncio
async def test_enviopack_releases_only_its_own_client():
    owned = EnviopackProvider(settings=AppSettings())
    owned._http()
    await owned.aclose()
    assert owned._client is None

    async with httpx.AsyncClient() as shared:
        borrowed = EnviopackProvider(settings=AppSettings(), client=shared)
        await borrowed.aclose()
        assert not shared.is_closed
