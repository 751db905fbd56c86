"""
Client du service de génération de texte (API Gemini generateContent)

Format API:
- Endpoint: POST {GEMINI_API_URL}?key={GEMINI_API_KEY}
- Body: {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
- Réponse: candidates[0].content.parts[0].text
"""

import httpx
import logging
from typing import Optional

from config import GEMINI_API_URL, GEMINI_API_KEY, GENERATION_TIMEOUT_SECONDS
from services.errors import GenerationError

logger = logging.getLogger("text_generation")


def build_request_body(prompt: str) -> dict:
    return {
        "contents": [
            {
                "role": "user",
                "parts": [{"text": prompt}]
            }
        ]
    }


def extract_text(data: dict) -> Optional[str]:
    """Retourne candidates[0].content.parts[0].text, ou None si absent"""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str) or not text.strip():
        return None
    return text


async def generate_text(prompt: str, client: Optional[httpx.AsyncClient] = None) -> str:
    """
    Envoie un prompt au service de génération et retourne le texte brut.

    Args:
        prompt: texte complet du prompt
        client: client httpx à réutiliser (sinon un client éphémère est ouvert)

    Raises:
        GenerationError: clé absente, service injoignable, statut non 2xx,
        ou réponse sans contenu exploitable.
    """
    if not prompt:
        raise GenerationError("Prompt is required")

    if not GEMINI_API_KEY:
        raise GenerationError("GEMINI_API_KEY is not configured")

    body = build_request_body(prompt)

    try:
        if client is not None:
            resp = await _post(client, body)
        else:
            async with httpx.AsyncClient(timeout=GENERATION_TIMEOUT_SECONDS) as http_client:
                resp = await _post(http_client, body)

    except httpx.TimeoutException as e:
        logger.error(f"Generation timeout: {str(e)}")
        raise GenerationError(f"Text generation timed out after {GENERATION_TIMEOUT_SECONDS}s") from e

    except httpx.HTTPError as e:
        logger.error(f"Generation service unreachable: {str(e)}")
        raise GenerationError(f"Text generation service unreachable: {str(e)}") from e

    if resp.status_code >= 300:
        logger.error(f"Generation API error {resp.status_code}: {resp.text}")
        raise GenerationError(f"Text generation API error: {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        raise GenerationError("Text generation API returned a non-JSON body") from e

    text = extract_text(data)
    if text is None:
        raise GenerationError("Text generation API did not return content in candidates[0].content.parts[0].text")

    return text


async def _post(client: httpx.AsyncClient, body: dict) -> httpx.Response:
    return await client.post(
        GEMINI_API_URL,
        params={"key": GEMINI_API_KEY},
        json=body,
        headers={"Content-Type": "application/json"}
    )
