"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  CRM - Rule Translator                                                       ║
║                                                                              ║
║  Règle en langage naturel → requête MongoDB sur la collection customers      ║
║                                                                              ║
║  PIPELINE:                                                                   ║
║  1. "last N days" réécrit en after "<ISO>" (calculé à la requête)            ║
║  2. Génération via le service texte                                          ║
║  3. Nettoyage (```json, ISODate("..."), new Date("..."))                     ║
║  4. Compilation: champs autorisés uniquement, dates et nombres castés        ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import json
import re
import logging
from datetime import datetime, timedelta
from typing import Any, List, Optional, Union

from config import utc_now, to_js_iso, parse_iso_datetime
from services.errors import GenerationError, TranslationError, ValidationError
from services.text_generation import generate_text

logger = logging.getLogger("rule_translator")


ALLOWED_FIELDS = {
    "name": "string",
    "email": "string",
    "phone": "string",
    "joinedAt": "date",
    "totalSpend": "number",
    "visitCount": "number",
    "lastActive": "date",
}

DATE_FIELDS = {f for f, t in ALLOWED_FIELDS.items() if t == "date"}
NUMBER_FIELDS = {f for f, t in ALLOWED_FIELDS.items() if t == "number"}

LOGICAL_OPERATORS = {"$and", "$or", "$nor"}

FIELD_OPERATORS = {
    "$eq", "$ne", "$gt", "$gte", "$lt", "$lte",
    "$in", "$nin", "$exists", "$regex", "$options", "$not",
}

LAST_N_DAYS = re.compile(r"last (\d+) days?", re.IGNORECASE)
CODE_FENCE = re.compile(r"```json|```", re.IGNORECASE)
DATE_WRAPPER = re.compile(r"(?:ISODate|new Date)\(\s*\"([^\"]+)\"\s*\)")


PROMPT_TEMPLATE = """Convert the following natural language description into a valid MongoDB query object using **only the following fields** from the Customer schema:

- name (string)
- email (string)
- phone (string)
- joinedAt (ISO 8601 date string)
- totalSpend (number)
- visitCount (number)
- lastActive (ISO 8601 date string)

Ensure:
1. All dates are ISO 8601 formatted strings.
2. The output is raw, valid JSON (no shell syntax, no markdown, no ```).
3. Return only the JSON object, nothing else.

Natural language: "{rules}\""""


# ==================== PRE / POST PROCESSING ====================

def normalize_rules(rules: Union[str, List[str], None]) -> str:
    """Règles (texte ou liste de textes) → un seul texte"""
    if isinstance(rules, (list, tuple)):
        parts = [str(r).strip() for r in rules if r is not None and str(r).strip()]
        text = " and ".join(parts)
    else:
        text = (rules or "").strip()

    if not text:
        raise ValidationError("Rules are required")
    return text


def rewrite_relative_dates(text: str, now: Optional[datetime] = None) -> str:
    """
    Remplace la première occurrence de "last N days" par after "<ISO>".
    La référence est now - N jours, au format Date.toISOString().
    """
    match = LAST_N_DAYS.search(text)
    if not match:
        return text

    now = now or utc_now()
    days = int(match.group(1))
    cutoff = now - timedelta(days=days)
    return text[:match.start()] + f'after "{to_js_iso(cutoff)}"' + text[match.end():]


def build_prompt(text: str) -> str:
    return PROMPT_TEMPLATE.format(rules=text)


def clean_generated_json(raw: str) -> dict:
    """Retire le markdown et les wrappers de date, puis parse l'objet JSON"""
    cleaned = CODE_FENCE.sub("", raw)
    cleaned = DATE_WRAPPER.sub(r'"\1"', cleaned).strip()

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse failed. Cleaned content was: {cleaned}")
        raise TranslationError(
            f"Failed to parse query from generated content: {e.msg}",
            details={"content": cleaned}
        ) from e

    if not isinstance(parsed, dict):
        raise TranslationError("Generated query is not a JSON object", details={"content": cleaned})
    return parsed


# ==================== COMPILATION ====================

def compile_predicate(query: dict) -> dict:
    """
    Valide la requête générée et la rend exécutable par Motor.

    - Champs hors ALLOWED_FIELDS refusés
    - Opérateurs hors FIELD_OPERATORS / LOGICAL_OPERATORS refusés
    - Valeurs de joinedAt / lastActive converties en datetime
    - Valeurs de totalSpend / visitCount converties en nombre
    """
    if not isinstance(query, dict):
        raise TranslationError("Query must be an object")

    compiled = {}
    for key, value in query.items():
        if key in LOGICAL_OPERATORS:
            if not isinstance(value, list) or not value:
                raise TranslationError(f"{key} expects a non-empty list of conditions")
            compiled[key] = [compile_predicate(clause) for clause in value]
        elif key in ALLOWED_FIELDS:
            compiled[key] = _compile_field(key, value)
        else:
            raise TranslationError(f"Unsupported field in generated query: {key}")
    return compiled


def _compile_field(field: str, condition: Any) -> Any:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        if set(condition) == {"$date"}:
            return _cast_value(field, condition)

        compiled = {}
        for op, operand in condition.items():
            if op not in FIELD_OPERATORS:
                raise TranslationError(f"Unsupported operator on {field}: {op}")
            if op == "$not":
                compiled[op] = _compile_field(field, operand) if isinstance(operand, dict) else operand
            elif op in ("$in", "$nin"):
                if not isinstance(operand, list):
                    raise TranslationError(f"{op} on {field} expects a list")
                compiled[op] = [_cast_value(field, v) for v in operand]
            elif op in ("$exists", "$regex", "$options"):
                compiled[op] = operand
            else:
                compiled[op] = _cast_value(field, operand)
        return compiled

    return _cast_value(field, condition)


def _cast_number(field: str, value: Any) -> Any:
    if value is None:
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value

    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError as e:
            raise TranslationError(f"Invalid number for {field}: {value}") from e

    raise TranslationError(f"Invalid number for {field}: {value!r}")


def _cast_value(field: str, value: Any) -> Any:
    if field in NUMBER_FIELDS:
        return _cast_number(field, value)
    if field not in DATE_FIELDS:
        return value

    if isinstance(value, dict) and set(value) == {"$date"}:
        value = value["$date"]

    if isinstance(value, str):
        try:
            return parse_iso_datetime(value)
        except ValueError as e:
            raise TranslationError(f"Invalid date for {field}: {value}") from e

    if value is None or isinstance(value, datetime):
        return value

    raise TranslationError(f"Invalid date for {field}: {value!r}")


# ==================== ENTRY POINT ====================

async def translate_rules(rules: Union[str, List[str], None], now: Optional[datetime] = None) -> dict:
    """
    Traduit des règles de segment en requête customers.

    Raises:
        ValidationError: règles absentes
        TranslationError: génération impossible ou sortie inexploitable
    """
    text = normalize_rules(rules)
    final_text = rewrite_relative_dates(text, now)

    try:
        raw = await generate_text(build_prompt(final_text))
    except TranslationError:
        raise
    except GenerationError as e:
        raise TranslationError(e.message, details=e.details) from e

    query = compile_predicate(clean_generated_json(raw))
    logger.info(f"Translated rules {final_text!r} -> {query}")
    return query
