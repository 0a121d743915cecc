"""Notification message templates.

WhatsApp texts are keyed by verification action, emails by notification type.
Rendering is deterministic: the same type and data always give the same
subject/html/text. Only the params listed per template are accepted.
"""

from __future__ import annotations

import html
import os
from dataclasses import dataclass
from typing import Any

BRAND = "Kost Pak Trisno"
DEFAULT_APP_URL = "https://kostsaya.vercel.app"

EMAIL_TYPE_BY_ACTION: dict[str, str] = {
    "success": "payment_accepted",
    "rejected": "payment_rejected",
}

WHATSAPP_TEMPLATES: dict[str, dict[str, Any]] = {
    "success": {
        "text": (
            "✅ *PEMBAYARAN DITERIMA*\n\n"
            "Halo *{tenant_name}*,\n\n"
            "Pembayaran kost untuk bulan *{month}* telah *DITERIMA*!\n"
            "{room_line}"
            "\nTerima kasih atas pembayaran tepat waktu!\n\n"
            "_— {brand} —_"
        ),
        "allowed_params": ["tenant_name", "month", "room_number"],
    },
    "rejected": {
        "text": (
            "❌ *PEMBAYARAN DITOLAK*\n\n"
            "Halo *{tenant_name}*,\n\n"
            "Pembayaran kost untuk bulan *{month}* *DITOLAK*.\n"
            "{room_line}"
            "{notes_line}"
            "\nSilakan upload ulang bukti yang lebih jelas di:\n"
            "{app_url}/payment\n\n"
            "_— {brand} —_"
        ),
        "allowed_params": ["tenant_name", "month", "room_number", "admin_notes"],
    },
}

EMAIL_TEMPLATES: dict[str, dict[str, str]] = {
    "payment_accepted": {
        "subject": f"✅ Pembayaran Diterima - {BRAND}",
        "heading": "✅ Pembayaran Berhasil Diterima",
        "intro": "Pembayaran Anda telah berhasil diverifikasi dan diterima.",
        "status": "LUNAS ✅",
        "notes_label": "Catatan Admin",
        "closing": "Terima kasih atas pembayaran tepat waktu!",
    },
    "payment_rejected": {
        "subject": f"❌ Pembayaran Ditolak - {BRAND}",
        "heading": "❌ Pembayaran Ditolak",
        "intro": "Maaf, pembayaran yang Anda kirim belum dapat kami terima.",
        "status": "DITOLAK ❌",
        "notes_label": "Alasan Penolakan",
        "closing": "Silakan upload ulang bukti transfer yang jelas di {app_url}/payment",
    },
}

EMAIL_PARAMS = {"tenant_name", "month", "room_number", "phone", "admin_notes"}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def app_url() -> str:
    return os.environ.get("APP_URL", DEFAULT_APP_URL).rstrip("/")


def _check_params(template_key: str, params: dict[str, Any], allowed: set[str]) -> None:
    extras = set(params) - allowed
    if extras:
        raise ValueError(f"Disallowed params for {template_key}: {sorted(extras)}")


def render_whatsapp(action: str, params: dict[str, Any]) -> str:
    """Render the WhatsApp text for a verification action.

    Raises:
        ValueError: If action unknown or params contains disallowed keys.
    """
    if action not in WHATSAPP_TEMPLATES:
        raise ValueError(f"Unknown whatsapp template: {action}")

    template = WHATSAPP_TEMPLATES[action]
    _check_params(action, params, set(template["allowed_params"]))

    room = params.get("room_number")
    notes = params.get("admin_notes")
    return template["text"].format(
        tenant_name=params.get("tenant_name") or "Penghuni",
        month=params.get("month") or "-",
        room_line=f"🏠 Kamar: *{room}*\n" if room else "",
        notes_line=f"📝 Alasan: {notes}\n" if notes else "",
        app_url=app_url(),
        brand=BRAND,
    )


def render_email(notification_type: str, params: dict[str, Any]) -> RenderedEmail:
    """Render subject, HTML and plain-text bodies for an email type.

    Raises:
        ValueError: If the type is unknown or params contains disallowed keys.
    """
    if notification_type not in EMAIL_TEMPLATES:
        raise ValueError(f"Unknown email template type: {notification_type}")
    _check_params(notification_type, params, EMAIL_PARAMS)

    template = EMAIL_TEMPLATES[notification_type]
    closing = template["closing"].format(app_url=app_url())

    details: list[tuple[str, str]] = [
        ("Nama", params.get("tenant_name") or "-"),
        ("Bulan", params.get("month") or "-"),
    ]
    if params.get("room_number"):
        details.append(("Kamar", str(params["room_number"])))
    if params.get("phone"):
        details.append(("Phone", str(params["phone"])))
    details.append(("Status", template["status"]))

    notes = params.get("admin_notes")
    name = params.get("tenant_name") or "Penghuni"

    text_lines = [
        template["heading"],
        "",
        f"Halo {name},",
        "",
        template["intro"],
        "",
        "Detail Pembayaran:",
        *(f"• {label}: {value}" for label, value in details),
    ]
    if notes:
        text_lines += ["", f"{template['notes_label']}: {notes}"]
    text_lines += ["", closing, "", "---", BRAND, app_url()]

    html_items = "".join(
        f"<li><strong>{html.escape(label)}:</strong> {html.escape(str(value))}</li>"
        for label, value in details
    )
    html_notes = (
        f"<p><strong>{html.escape(template['notes_label'])}:</strong><br>{html.escape(notes)}</p>"
        if notes
        else ""
    )
    html_body = (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
        f"<h2>{html.escape(template['heading'])}</h2>"
        f"<p>Halo <strong>{html.escape(name)}</strong>,</p>"
        f"<p>{html.escape(template['intro'])}</p>"
        f"<ul>{html_items}</ul>"
        f"{html_notes}"
        f"<p>{html.escape(closing)}</p>"
        f'<hr><p style="color: #64748b;">{html.escape(BRAND)}<br>{html.escape(app_url())}</p>'
        "</div>"
    )

    return RenderedEmail(subject=template["subject"], html=html_body, text="\n".join(text_lines))
