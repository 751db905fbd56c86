"""
Messages de campagne

- build_campaign_message: message personnalisé généré par customer ({title, message, goal})
- render_template: substitution des tokens {{name}}, {{totalSpend}}, ...
- suggest_message_template: proposition de template à partir d'un titre et d'un segment
"""

import json
import re
import logging
from datetime import datetime

from config import to_js_iso
from services.errors import GenerationError, ValidationError
from services.text_generation import generate_text

logger = logging.getLogger("campaign_messages")


TEMPLATE_TOKEN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
TEMPLATE_FIELDS = ("name", "email", "phone", "totalSpend", "visitCount", "joinedAt", "lastActive")
CODE_FENCE = re.compile(r"```json|```", re.IGNORECASE)


CAMPAIGN_MESSAGE_PROMPT = """You're an expert marketing assistant. Create a short, personalized campaign message based on the following inputs:

Segment Name: "{segment_name}"
Rules (described in natural language): "{rules_description}"
Customer Name: "{customer_name}"

Instructions:
1. Use the customer's name in the greeting.
2. Keep the message clear, concise, and tailored to the segment rules.
3. Output must be a raw JSON object with this structure:

{{
  "title": "Campaign Title",
  "message": "Personalized message content",
  "goal": "Optional - describe the campaign's goal in one sentence"
}}

Return only the JSON, no markdown or explanation."""


SUGGEST_TEMPLATE_PROMPT = """You are a marketing assistant AI. Given a campaign title and a customer segment description, generate a short and engaging message template for a campaign.
Use a tone that suits promotional content, and feel free to include personalization tokens like {{{{name}}}} or {{{{totalSpend}}}}.

- Campaign Title: "{title}"
- Target Segment: "{segment}"

Output format:
Just return the message template (no markdown, no extra info). Keep it friendly, actionable, and 1-2 sentences long."""


async def build_campaign_message(segment_name: str, rules_description: str, customer_name: str) -> dict:
    """
    Génère le contenu personnalisé d'un customer.

    Returns:
        {"title": str, "message": str, "goal": str}

    Raises:
        ValidationError: entrée manquante
        GenerationError: service en erreur ou JSON invalide / sans message
    """
    if not segment_name or not rules_description or not customer_name:
        raise ValidationError("segmentName, rulesDescription, and customerName are all required")

    raw = await generate_text(CAMPAIGN_MESSAGE_PROMPT.format(
        segment_name=segment_name,
        rules_description=rules_description,
        customer_name=customer_name
    ))

    cleaned = CODE_FENCE.sub("", raw).strip()
    try:
        content = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse campaign message as JSON: {cleaned}")
        raise GenerationError("Invalid JSON format from text generation response") from e

    if not isinstance(content, dict) or not content.get("message"):
        raise GenerationError("Generated campaign content has no message")

    return content


def _format_token_value(value) -> str:
    if isinstance(value, datetime):
        return to_js_iso(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_template(template: str, customer: dict) -> str:
    """Remplace {{champ}} par la valeur du customer; tokens inconnus laissés tels quels"""

    def replace(match):
        field = match.group(1)
        if field not in TEMPLATE_FIELDS or customer.get(field) is None:
            return match.group(0)
        return _format_token_value(customer[field])

    return TEMPLATE_TOKEN.sub(replace, template)


async def suggest_message_template(title: str, segment: str) -> str:
    if not title or not segment:
        raise ValidationError("Both title and segment are required.")

    text = await generate_text(SUGGEST_TEMPLATE_PROMPT.format(title=title, segment=segment))
    template = text.strip()
    if not template:
        raise GenerationError("Text generation returned an empty message template")
    return template
