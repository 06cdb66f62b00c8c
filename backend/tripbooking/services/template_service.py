# backend/tripbooking/services/template_service.py
"""
Template rendering for notification emails.

Templates live under ``tripbooking/templates`` and receive a common
context (brand name, support address) merged with per-message values.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from ..core.config import settings
from ..core.constants import BRAND_NAME

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"


def currency(value: Union[str, Decimal, float, None]) -> str:
    """Format an amount as currency. Event payloads carry amounts as strings."""
    if value is None or value == "":
        return "$0.00"
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return str(value)
    return f"${amount:,.2f}"


def format_date(value: Union[str, date, None], format_str: str = "%B %d, %Y") -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value  # Already formatted
    return value.strftime(format_str)


class TemplateService:
    """Jinja2 environment with the platform's filters registered."""

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = template_dir or TEMPLATE_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape(["html"]),  # Plain-text templates are not escaped
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters["currency"] = currency
        self.env.filters["format_date"] = format_date
        logger.info(f"Template service initialized with template directory: {self.template_dir}")

    def get_common_context(self) -> Dict[str, Any]:
        return {
            "brand_name": BRAND_NAME,
            "current_year": datetime.now().year,
            "support_email": settings.from_email,
        }

    def render_template(self, template_name: str, context: Optional[Dict[str, Any]] = None, **kwargs: Any) -> str:
        """
        Render a template with the common context plus ``context`` and ``kwargs``.

        Raises:
            TemplateNotFound: If template doesn't exist
        """
        full_context = self.get_common_context()
        if context:
            full_context.update(context)
        full_context.update(kwargs)
        try:
            return self.env.get_template(template_name).render(full_context)
        except TemplateNotFound:
            logger.error(f"Template not found: {template_name}")
            raise
