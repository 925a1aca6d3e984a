# storefront/services/shipping/providers/mock.py
"""
Development carrier: fake tracking numbers, a printable HTML label and a
plausible tracking history. No network.
"""

from __future__ import annotations

import html
import random
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional

from storefront.core.config import AppSettings, get_settings
from storefront.services.shipping.providers.base import ShippingProvider
from storefront.services.shipping.types import ShipmentInput, ShipmentResult, TrackingEvent, TrackingResult
from storefront.utils.codes import now_ms, random_base36, to_base36

TRACKING_PREFIX = "XMP"

_LABEL_CSS = """
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: Arial, sans-serif; padding: 20px; }
.label { width: 400px; border: 2px solid #000; padding: 15px; background: #fff; }
.header { display: flex; justify-content: space-between; border-bottom: 2px solid #000; padding-bottom: 10px; margin-bottom: 15px; }
.logo { font-size: 24px; font-weight: bold; }
.barcode { text-align: center; padding: 15px 0; border: 1px solid #ccc; background: #f9f9f9; margin: 10px 0;
  font-family: 'Courier New', monospace; font-size: 18px; letter-spacing: 3px; }
.section { margin: 10px 0; }
.section-title { font-weight: bold; font-size: 12px; color: #666; text-transform: uppercase; margin-bottom: 5px; }
.address { background: #f5f5f5; padding: 10px; border-radius: 4px; }
.items-table { width: 100%; border-collapse: collapse; font-size: 12px; }
.items-table th, .items-table td { border: 1px solid #ddd; padding: 5px; text-align: left; }
.footer { margin-top: 15px; padding-top: 10px; border-top: 1px dashed #ccc; font-size: 11px; color: #666; }
@media print { body { padding: 0; } .label { border: none; } }
"""


def _e(value) -> str:
    return html.escape(str(value if value is not None else ""))


def render_label(data: ShipmentInput, tracking_number: str, settings: AppSettings) -> str:
    rows = "".join(f"<tr><td>{_e(it.name)}</td><td>{_e(it.quantity)}</td></tr>" for it in data.items)
    sender_city = settings.SHIPPING_ORIGIN_CITY or "Bahía Blanca"
    sender_zip = settings.SHIPPING_ORIGIN_POSTAL_CODE or settings.SHIPPING_ORIGIN_ZIP
    sender_street = " ".join(p for p in (settings.SHIPPING_ORIGIN_ADDRESS, settings.SHIPPING_ORIGIN_NUMBER) if p)
    generated = datetime.now(timezone.utc).strftime("%d/%m/%Y %H:%M")
    return f"""<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <title>Etiqueta de Envío - {_e(tracking_number)}</title>
  <style>{_LABEL_CSS}</style>
</head>
<body>
  <div class="label">
    <div class="header"><div class="logo">{_e(settings.BRAND_NAME)}</div></div>
    <div class="barcode">{_e(tracking_number)}</div>
    <div class="section">
      <div class="section-title">Remitente</div>
      <div>{_e(settings.SHIPPING_ORIGIN_NAME or settings.BRAND_NAME)}<br>{_e(sender_street)}<br>{_e(sender_city)} ({_e(sender_zip)})</div>
    </div>
    <div class="section">
      <div class="section-title">Destinatario</div>
      <div class="address">
        <strong>{_e(data.customer_name)}</strong><br>
        {_e(data.shipping_address)}<br>
        Tel: {_e(data.customer_phone or "N/A")}
      </div>
    </div>
    <div class="section">
      <div class="section-title">Orden #{_e(data.order_number)}</div>
      <table class="items-table">
        <thead><tr><th>Producto</th><th>Cant.</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>
    </div>
    <div class="footer">
      Generado el {generated}<br>
      Para seguimiento: {_e(settings.STORE_URL)}/#/tracking/{_e(tracking_number)}
    </div>
  </div>
</body>
</html>"""


class MockShippingProvider(ShippingProvider):
    name = "mock"

    def __init__(
        self,
        *,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
        settings: AppSettings | None = None,
    ) -> None:
        self.rng = rng or random.Random()
        self.today = today or (lambda: datetime.now(timezone.utc).date())
        self.settings = settings or get_settings()

    def new_tracking_number(self) -> str:
        return f"{TRACKING_PREFIX}{to_base36(now_ms())}{random_base36(6, self.rng)}"

    async def create_shipment(self, data: ShipmentInput) -> ShipmentResult:
        tracking = self.new_tracking_number()
        eta = self.today() + timedelta(days=self.rng.randint(3, 6))
        return ShipmentResult(
            tracking_number=tracking,
            label_url=f"/api/shipping/label/{data.order_id}",
            label_data=render_label(data, tracking, self.settings),
            estimated_delivery=eta.isoformat(),
            carrier=self.name,
            carrier_response={
                "provider": "mock",
                "generatedAt": datetime.now(timezone.utc).isoformat(),
                "mode": "development",
            },
        )

    async def get_tracking(self, tracking_number: str) -> TrackingResult:
        today = self.today()
        created = today - timedelta(days=3)
        events = [
            TrackingEvent(
                date=created.isoformat(),
                time="14:30",
                status="created",
                location="Bahía Blanca, Buenos Aires",
                description="Envío creado y etiqueta generada",
            ),
            TrackingEvent(
                date=(created + timedelta(days=1)).isoformat(),
                time="09:15",
                status="shipped",
                location="Bahía Blanca, Buenos Aires",
                description="Paquete recolectado por el transportista",
            ),
            TrackingEvent(
                date=(created + timedelta(days=2)).isoformat(),
                time="16:45",
                status="in_transit",
                location="Buenos Aires, CABA",
                description="En tránsito hacia destino",
            ),
        ]
        delivered = self.rng.random() >= 0.5
        if delivered:
            events.append(
                TrackingEvent(
                    date=today.isoformat(),
                    time="11:20",
                    status="delivered",
                    location="Destino final",
                    description="Entregado al destinatario",
                )
            )

        return TrackingResult(
            success=True,
            tracking_number=tracking_number,
            status=events[-1].status,
            carrier=self.name,
            events=list(reversed(events)),
            estimated_delivery=None if delivered else (today + timedelta(days=2)).isoformat(),
        )
