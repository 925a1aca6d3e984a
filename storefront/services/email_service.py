# storefront/services/email_service.py
"""
Transactional email.

Transport:
- SMTP (smtplib + STARTTLS) when SMTP_HOST is configured; sends run in a
  worker thread so the event loop never blocks on the socket
- otherwise a mock transport that logs and keeps a bounded outbox

Callers that treat email as best-effort (orders, shipping) wrap sends in
``send_best_effort``; the service itself raises EmailDeliveryError.
"""

from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from collections import deque
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from functools import lru_cache
from typing import Any, Awaitable, Deque, Dict, Iterable, Mapping, Optional, Tuple

from storefront.core.config import AppSettings, get_settings
from storefront.obs.metrics import emails_sent_total

log = logging.getLogger("storefront.email")

ActionButton = Tuple[str, str]  # (text, url)


class EmailDeliveryError(Exception):
    pass


def format_ars(centavos: int) -> str:
    """12345678 -> '$ 123.456,78' (es-AR grouping)."""
    pesos, cents = divmod(int(centavos), 100)
    grouped = f"{pesos:,}".replace(",", ".")
    return f"$ {grouped},{cents:02d}"


# ---------------------------------------------------------------------------
# transports
# ---------------------------------------------------------------------------


class SmtpTransport:
    name = "smtp"

    def __init__(self, host: str, port: int, user: str, password: str, timeout: float = 10.0):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.timeout = timeout

    def send(self, msg: MIMEMultipart) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            if self.password:
                server.login(self.user, self.password)
            server.send_message(msg)


class MockTransport:
    name = "mock"

    def __init__(self, maxlen: int = 100):
        self.outbox: Deque[Dict[str, str]] = deque(maxlen=maxlen)

    def send(self, msg: MIMEMultipart) -> None:
        log.info("[MOCK EMAIL] to=%s subject=%s", msg["To"], msg["Subject"])
        self.outbox.append({"to": str(msg["To"]), "subject": str(msg["Subject"])})


# ---------------------------------------------------------------------------
# template
# ---------------------------------------------------------------------------


def _e(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def wrap_template(brand: str, title: str, content: str, action: Optional[ActionButton] = None) -> str:
    button = ""
    if action:
        text, url = action
        button = (
            '<div style="text-align:center;margin:32px 0">'
            f'<a href="{_e(url)}" style="background:#84cc16;color:#000;padding:16px 32px;'
            f'border-radius:8px;text-decoration:none;font-weight:600">{_e(text)}</a></div>'
        )
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{_e(title)}</title></head>"
        '<body style="font-family:system-ui,sans-serif;background:#f4f4f5;margin:0">'
        '<div style="max-width:600px;margin:0 auto;background:#fff">'
        f'<div style="background:#1a1a1a;color:#fff;padding:32px 24px;text-align:center">{_e(brand)}</div>'
        f'<div style="padding:48px 32px;color:#333;line-height:1.6">{content}{button}</div>'
        '<div style="background:#fafafa;padding:24px;text-align:center;font-size:12px;color:#a1a1aa">'
        f"&copy; {_e(brand)}</div></div></body></html>"
    )


class EmailService:
    def __init__(self, transport: Any = None, settings: AppSettings | None = None):
        self.settings = settings or get_settings()
        if transport is None:
            if self.settings.SMTP_HOST:
                transport = SmtpTransport(
                    self.settings.SMTP_HOST,
                    self.settings.SMTP_PORT,
                    self.settings.SMTP_USER,
                    self.settings.SMTP_PASS,
                )
            else:
                log.warning("Email service not configured (SMTP_HOST empty); using mock transport")
                transport = MockTransport()
        self.transport = transport

    @property
    def brand(self) -> str:
        return self.settings.BRAND_NAME

    async def send_email(
        self,
        to: str,
        subject: str,
        content_html: str,
        action: Optional[ActionButton] = None,
    ) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{self.brand}" <{self.settings.SMTP_FROM}>'
        msg["To"] = to
        msg.attach(MIMEText(wrap_template(self.brand, subject, content_html, action), "html", "utf-8"))

        try:
            await asyncio.to_thread(self.transport.send, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"email to {to} failed: {e}") from e

        emails_sent_total.labels(getattr(self.transport, "name", "custom")).inc()
        log.info("email sent to=%s subject=%s", to, subject)

    # ---- flows ------------------------------------------------------------

    async def send_store_created(self, email: str, store_name: str, dashboard_url: str) -> None:
        content = (
            f"<h1>¡Tu tienda {_e(store_name)} está lista!</h1>"
            "<p>Ya podés cargar productos y empezar a vender.</p>"
        )
        await self.send_email(
            email, f"¡Tu tienda {self.brand} está lista! 🚀", content, ("Ir a mi Panel", dashboard_url)
        )

    async def send_activation_license(self, email: str, license_key: str, plan_name: str) -> None:
        content = (
            "<h1>Tu licencia</h1>"
            f"<p>Plan: <strong>{_e(plan_name)}</strong></p>"
            f'<p style="font-family:monospace;font-size:20px">{_e(license_key)}</p>'
        )
        await self.send_email(email, f"🔑 Tu Licencia de {self.brand}", content)

    async def send_password_reset(self, email: str, reset_token: str) -> None:
        reset_url = f"{self.settings.STORE_URL}/reset-password?token={reset_token}"
        content = (
            "<h1>Recuperar contraseña</h1>"
            "<p>Recibimos un pedido para restablecer tu contraseña. El enlace vence en 1 hora.</p>"
        )
        await self.send_email(email, "Recuperar Contraseña", content, ("Restablecer Contraseña", reset_url))

    async def send_new_order_notification(
        self, admin_email: str, order_number: str, total: int, customer_name: str
    ) -> None:
        content = (
            "<h1>¡Nueva venta!</h1>"
            f"<p>Pedido <strong>#{_e(order_number)}</strong> de {_e(customer_name)}</p>"
            f"<p>Total: <strong>{format_ars(total)}</strong></p>"
        )
        await self.send_email(
            admin_email,
            f"💰 Nueva venta #{order_number} de {customer_name}",
            content,
            ("Ver Pedido", f"{self.settings.STORE_URL}/#/admin/orders"),
        )

    async def send_order_confirmation(self, order: Mapping[str, Any]) -> None:
        rows = "".join(
            f"<tr><td>{_e(it.get('product_name'))}</td><td>x{_e(it.get('quantity'))}</td>"
            f"<td>{format_ars(int(it.get('price') or 0) * int(it.get('quantity') or 0))}</td></tr>"
            for it in order.get("items") or []
        )
        transfer = ""
        if order.get("payment_method") == "transfer":
            transfer = "<p>Recordá subir el comprobante de transferencia para confirmar tu pedido.</p>"
        content = (
            f"<h1>¡Gracias por tu compra, {_e(order.get('customer_name'))}!</h1>"
            f"<table>{rows}</table>"
            f"<p>Total: <strong>{format_ars(int(order.get('total') or 0))}</strong></p>{transfer}"
        )
        number = order.get("order_number")
        await self.send_email(
            str(order.get("customer_email")),
            f"Tu compra #{number} en {self.brand}",
            content,
            ("Ver mi Pedido", f"{self.settings.STORE_URL}/#/orders/{number}"),
        )

    async def send_order_status_update(
        self,
        email: str,
        customer_name: str,
        order_number: str,
        status: str,
        tracking_number: Optional[str] = None,
    ) -> bool:
        # only the "shipped" notification exists for now
        if status != "shipped":
            return False
        tracking = ""
        if tracking_number:
            tracking = f'<p>Número de seguimiento: <strong style="font-family:monospace">{_e(tracking_number)}</strong></p>'
        content = (
            f"<h1>¡{_e(customer_name)}, tu pedido está en camino!</h1>"
            f"<p>El pedido #{_e(order_number)} fue despachado.</p>{tracking}"
        )
        action = ("Seguir Envío", f"{self.settings.STORE_URL}/#/tracking/{tracking_number}") if tracking_number else None
        await self.send_email(email, f"🚚 Tu pedido #{order_number} está en camino", content, action)
        return True

    async def send_low_stock_alert(
        self, admin_email: str, products: Iterable[Mapping[str, Any]], threshold: int
    ) -> None:
        items = "".join(f"<li>{_e(p.get('name'))} ({_e(p.get('stock'))})</li>" for p in products)
        content = (
            "<h1>Stock bajo</h1>"
            f"<p>Estos productos tienen {threshold} unidades o menos:</p><ul>{items}</ul>"
        )
        await self.send_email(admin_email, "⚠️ Alerta de Stock Bajo", content)


async def send_best_effort(send: Awaitable[Any], what: str) -> bool:
    """Await an email send; delivery failures are logged, never raised."""
    try:
        await send
    except EmailDeliveryError as e:
        log.error("email '%s' failed: %s", what, e)
        return False
    return True


@lru_cache
def get_email_service() -> EmailService:
    return EmailService()
