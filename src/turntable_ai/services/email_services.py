import logging
from datetime import datetime
import httpx
from jinja2 import Environment
from markupsafe import Markup
from turntable_ai.config import ALERT_FROM_EMAIL, RESEND_API_KEY, SITE_URL

_logger = logging.getLogger(__name__)

RESEND_EMAILS_URL = "https://api.resend.com/emails"
SEND_TIMEOUT_SECONDS = 15.0

_env = Environment(autoescape=True)

WRAPPER_TEMPLATE = _env.from_string("""<!doctype html><html><body style="background:#0b0b0b;color:#eaeaea;font-family:Inter,system-ui,-apple-system,Segoe UI,Roboto">
  <div style="max-width:640px;margin:24px auto;padding:24px;border:1px solid #222;border-radius:16px;background:#0f0f0f">
    <h2 style="margin:0 0 10px">{{ title }}</h2>
    {{ inner }}
    <p style="margin-top:24px;color:#bbb">Sent by TurnTable AI</p>
  </div>
  </body></html>""")

TEXT_BLOCK_TEMPLATE = _env.from_string(
    '<pre style="font-family: ui-monospace, SFMono-Regular, Menlo, monospace; white-space: pre-wrap; margin:0">{{ text }}</pre>'
)

REVIEW_TEMPLATE = _env.from_string("""
{%- if rating is not none %}
<p style="margin:0 0 4px;font-size:14px;color:#facc15">Rating: {{ rating }}&#9733;</p>
{%- endif %}
{%- if reviewer %}
<p style="margin:0 0 4px;font-size:13px;color:#e5e5e5">From: <strong>{{ reviewer }}</strong></p>
{%- endif %}
{%- if created_time %}
<p style="margin:0 0 4px;font-size:12px;color:#9ca3af">Time: {{ created_time }}</p>
{%- endif %}
<div style="margin-top:12px;padding:12px 14px;border-radius:10px;background:#020617;border:1px solid #1f2937">
  <p style="margin:0 0 6px;font-size:13px;color:#9ca3af">Customer review</p>
  <p style="margin:0;font-size:14px;line-height:1.5;color:#f9fafb">{{ review_text or "(no review text)" }}</p>
</div>
{%- if ai_reply %}
<div style="margin-top:20px;padding:12px 14px;border-radius:10px;background:#0b0615;border:1px solid #7c3aed">
  <p style="margin:0 0 6px;font-size:13px;color:#c4b5fd">AI-drafted reply</p>
  <p style="margin:0;font-size:14px;line-height:1.5;color:#ede9fe">{{ ai_reply }}</p>
</div>
{%- endif %}
<div style="margin-top:22px">
  <a href="{{ app_url }}/reviews" style="display:inline-block;padding:10px 16px;border-radius:999px;background:#6366f1;color:white;font-size:14px;text-decoration:none;font-weight:500">Open Review Responder</a>
  {%- if review_url %}
  <a href="{{ review_url }}" style="font-size:13px;color:#93c5fd;text-decoration:underline">View on {{ platform }}</a>
  {%- endif %}
</div>
<p style="margin-top:24px;font-size:11px;color:#6b7280">
  You're receiving this email because review alerts are enabled for your account.
  You can manage notifications from your
  <a href="{{ app_url }}/settings?tab=notifications" style="color:#93c5fd">TurnTable AI settings</a>.
</p>
""")


def wrap_html(title: str, inner_html: str) -> str:
    # inner_html comes from our own templates, already escaped
    return WRAPPER_TEMPLATE.render(title=title, inner=Markup(inner_html))


def send_email(to, subject: str, html: str = None, text: str = None, title: str = None) -> dict:
    """
    Send one transactional email.

    Plain text without HTML is wrapped in the branded layout. Without an API
    key the message is logged instead of sent.

    Returns:
        dict: provider response, at least ``{"id": ...}``

    Raises:
        httpx.HTTPStatusError: provider rejected the message
    """
    if html is None and text:
        html = wrap_html(title or subject, TEXT_BLOCK_TEMPLATE.render(text=text))

    if not RESEND_API_KEY:
        _logger.info(f"[send_email:fallback] to={to} subject={subject!r}")
        return {"id": "dev-fallback"}

    payload = {"from": ALERT_FROM_EMAIL, "to": to, "subject": subject}
    if html is not None:
        payload["html"] = html
    if text is not None:
        payload["text"] = text

    response = httpx.post(
        RESEND_EMAILS_URL,
        json=payload,
        headers={"Authorization": f"Bearer {RESEND_API_KEY}"},
        timeout=SEND_TIMEOUT_SECONDS,
    )
    response.raise_for_status()
    data = response.json()
    _logger.info(f"Email sent: id={data.get('id')} subject={subject!r}")
    return data


def _format_time(value: str | None) -> str | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    return parsed.strftime("%b %d, %Y %I:%M %p %Z").strip()


def render_review_email(
    platform: str,
    location_name: str,
    review_text: str,
    rating: int = None,
    reviewer: str = None,
    review_url: str = None,
    created_time: str = None,
    ai_reply: str = None,
) -> tuple[str, str]:
    """Subject and HTML body for a new-review alert."""
    subject = f"New {platform} review for {location_name}"
    inner = REVIEW_TEMPLATE.render(
        rating=rating,
        reviewer=reviewer,
        created_time=_format_time(created_time),
        review_text=review_text,
        ai_reply=ai_reply,
        review_url=review_url,
        platform=platform,
        app_url=SITE_URL,
    )
    return subject, wrap_html(subject, inner)


def send_review_email(to: str, platform: str, location_name: str, review_text: str, **details) -> dict:
    subject, html = render_review_email(platform, location_name, review_text, **details)
    return send_email(to=to, subject=subject, html=html)
