# Overview: Jinja2 email templates for billing reminders and stock alerts.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape

from cubepos.time_utils import format_readable_date


KIND_REMINDER_SEVEN_DAY = "reminder_seven_day"
KIND_REMINDER_ONE_DAY = "reminder_one_day"
KIND_REMINDER_OVERDUE = "reminder_overdue"
KIND_LOW_STOCK = "stock_low"
KIND_OUT_OF_STOCK = "stock_out"


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


_LAYOUT = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <style>
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 20px; }
    .details { background: #f8f9fa; padding: 15px; border-radius: 5px; margin: 15px 0; }
    .urgent { color: #d63384; font-weight: bold; }
    .footer { margin-top: 30px; padding-top: 20px; border-top: 1px solid #eee; font-size: 12px; color: #666; }
  </style>
</head>
<body>
  <div class="container">
    <div class="header">{% block header %}{% endblock %}</div>
    {% block body %}{% endblock %}
    <div class="footer"><p>This is an automated message from the cube rental office.</p></div>
  </div>
</body>
</html>
"""

_RENTAL_DETAILS = """<div class="details">
  <ul>
    <li><strong>Cube:</strong> {{ cube_code }}</li>
    <li><strong>Billing period:</strong> {{ billing_period_start | readable_date }} to {{ billing_period_end | readable_date }}</li>
    <li><strong>Due date:</strong> {{ due_date | readable_date }}</li>
    <li><strong>Amount due:</strong> <span class="urgent">${{ amount_due | money }}</span></li>
    <li><strong>Daily rent:</strong> ${{ daily_rate | money }}</li>
    <li><strong>Total paid to date:</strong> ${{ total_paid | money }}</li>
    <li><strong>Lease:</strong> {{ lease_start_date | readable_date }} to {{ lease_end_date | readable_date }}</li>
  </ul>
</div>
"""

_RENTAL_TEXT = """Cube: {{ cube_code }}
Billing period: {{ billing_period_start | readable_date }} to {{ billing_period_end | readable_date }}
Due date: {{ due_date | readable_date }}
Amount due: ${{ amount_due | money }}
Daily rent: ${{ daily_rate | money }}
Total paid to date: ${{ total_paid | money }}
Lease: {{ lease_start_date | readable_date }} to {{ lease_end_date | readable_date }}
"""

_STOCK_DETAILS = """<div class="details">
  <ul>
    <li><strong>Product:</strong> {{ product_name }}</li>
    <li><strong>Variant:</strong> {{ variant_name or "-" }}</li>
    <li><strong>Current stock:</strong> <span class="urgent">{{ current_stock }} units</span></li>
    <li><strong>Low stock threshold:</strong> {{ threshold }} units</li>
    <li><strong>Barcode:</strong> {{ barcode or "-" }}</li>
    <li><strong>Tenant:</strong> {{ tenant_name }}</li>
  </ul>
</div>
"""

_TEMPLATES = {
    "layout.html": _LAYOUT,
    "rental_details.html": _RENTAL_DETAILS,
    "rental_details.txt": _RENTAL_TEXT,
    "stock_details.html": _STOCK_DETAILS,

    f"{KIND_REMINDER_SEVEN_DAY}.subject": "Payment Reminder: Rent Due in 7 Days - Cube {{ cube_code }}",
    f"{KIND_REMINDER_SEVEN_DAY}.html": """{% extends "layout.html" %}
{% block header %}<h2>Upcoming rent payment</h2>{% endblock %}
{% block body %}
<p>Hi {{ tenant_name }},</p>
<p>Your next rent payment is due on {{ due_date | readable_date }}.</p>
{% include "rental_details.html" %}
{% endblock %}""",
    f"{KIND_REMINDER_SEVEN_DAY}.txt": """Hi {{ tenant_name }},

Your next rent payment is due on {{ due_date | readable_date }}.

{% include "rental_details.txt" %}""",

    f"{KIND_REMINDER_ONE_DAY}.subject": "URGENT: Payment Due Tomorrow - Cube {{ cube_code }}",
    f"{KIND_REMINDER_ONE_DAY}.html": """{% extends "layout.html" %}
{% block header %}<h2 class="urgent">Rent due tomorrow</h2>{% endblock %}
{% block body %}
<p>Hi {{ tenant_name }},</p>
<p>Your rent payment of ${{ amount_due | money }} is due tomorrow, {{ due_date | readable_date }}.</p>
{% include "rental_details.html" %}
{% endblock %}""",
    f"{KIND_REMINDER_ONE_DAY}.txt": """Hi {{ tenant_name }},

Your rent payment of ${{ amount_due | money }} is due tomorrow, {{ due_date | readable_date }}.

{% include "rental_details.txt" %}""",

    f"{KIND_REMINDER_OVERDUE}.subject": "OVERDUE NOTICE: Immediate Payment Required - Cube {{ cube_code }}",
    f"{KIND_REMINDER_OVERDUE}.html": """{% extends "layout.html" %}
{% block header %}<h2 class="urgent">Overdue rent</h2>{% endblock %}
{% block body %}
<p>Hi {{ tenant_name }},</p>
<p>Rent that fell due on {{ due_date | readable_date }} is still outstanding. Please pay ${{ amount_due | money }} as soon as possible.</p>
{% include "rental_details.html" %}
{% endblock %}""",
    f"{KIND_REMINDER_OVERDUE}.txt": """Hi {{ tenant_name }},

Rent that fell due on {{ due_date | readable_date }} is still outstanding. Please pay ${{ amount_due | money }} as soon as possible.

{% include "rental_details.txt" %}""",

    f"{KIND_LOW_STOCK}.subject": "Low Stock Alert: {{ product_name }}{% if variant_name %} - {{ variant_name }}{% endif %}",
    f"{KIND_LOW_STOCK}.html": """{% extends "layout.html" %}
{% block header %}<h2>Low stock alert</h2>{% endblock %}
{% block body %}
<p>The following variant is at or below its low stock threshold:</p>
{% include "stock_details.html" %}
<p><strong>Action required:</strong> please restock this item to avoid lost sales.</p>
{% endblock %}""",
    f"{KIND_LOW_STOCK}.txt": """LOW STOCK ALERT

Product: {{ product_name }}
Variant: {{ variant_name or "-" }}
Current stock: {{ current_stock }} units
Threshold: {{ threshold }} units
Barcode: {{ barcode or "-" }}
Tenant: {{ tenant_name }}

Action required: please restock this item to avoid lost sales.
""",

    f"{KIND_OUT_OF_STOCK}.subject": "OUT OF STOCK: {{ product_name }}{% if variant_name %} - {{ variant_name }}{% endif %}",
    f"{KIND_OUT_OF_STOCK}.html": """{% extends "layout.html" %}
{% block header %}<h2 class="urgent">Out of stock</h2>{% endblock %}
{% block body %}
<p>The following variant has sold out and can no longer be sold at the POS:</p>
{% include "stock_details.html" %}
{% endblock %}""",
    f"{KIND_OUT_OF_STOCK}.txt": """OUT OF STOCK

Product: {{ product_name }}
Variant: {{ variant_name or "-" }}
Barcode: {{ barcode or "-" }}
Tenant: {{ tenant_name }}
""",
}

EMAIL_KINDS = (
    KIND_REMINDER_SEVEN_DAY,
    KIND_REMINDER_ONE_DAY,
    KIND_REMINDER_OVERDUE,
    KIND_LOW_STOCK,
    KIND_OUT_OF_STOCK,
)


def _money(value) -> str:
    return f"{Decimal(value):.2f}"


def _build_environment() -> Environment:
    env = Environment(
        loader=DictLoader(_TEMPLATES),
        autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["readable_date"] = format_readable_date
    env.filters["money"] = _money
    return env


_env = _build_environment()


def render_email(kind: str, data: dict) -> RenderedEmail:
    """Render subject, HTML and text bodies for one email kind."""
    if kind not in EMAIL_KINDS:
        raise ValueError(f"Unknown email kind: {kind}")
    return RenderedEmail(
        subject=_env.get_template(f"{kind}.subject").render(**data).strip(),
        html=_env.get_template(f"{kind}.html").render(**data),
        text=_env.get_template(f"{kind}.txt").render(**data),
    )
