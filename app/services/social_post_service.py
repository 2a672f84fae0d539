"""
Social Post Service - Génère le texte d'un post social pour un deal via Claude.

Mapping des erreurs amont:
- rate limit Anthropic -> 429
- crédits épuisés (402 ou message "credit") -> 402
- tout le reste, y compris une clé absente -> 500
"""
import math
from typing import Optional, Dict, Any

import anthropic
from loguru import logger

from app.core import config
from app.core.exceptions import QuotaExceededError, RateLimitError, UpstreamError, ValidationError

SYSTEM_PROMPT = (
    "You are a social media expert who creates engaging, concise posts that drive clicks. "
    "Be enthusiastic but authentic."
)
MAX_TOKENS = 400


def _format_price(price) -> str:
    if price is None:
        return "N/A"
    try:
        return f"${float(price):.2f}"
    except (TypeError, ValueError):
        return "N/A"


def _discount_percent(discount) -> Optional[int]:
    try:
        value = float(discount)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return int(round(value))


def platform_instructions(platform: str, page_url: str) -> str:
    if platform == "whatsapp":
        return (
            "- Format for WhatsApp: use emojis liberally\n"
            "- Use line breaks for readability\n"
            "- Keep it conversational and personal\n"
            "- Add urgency if there's a good discount\n"
            f"- End with the link on its own line: {page_url}"
        )
    if platform == "facebook":
        return (
            "- Format for Facebook: engaging and shareable\n"
            "- Can be slightly longer (up to 300 characters)\n"
            "- Use 2-3 relevant emojis\n"
            "- Encourage engagement (questions work well)\n"
            f"- End with: Check it out 👉 {page_url}"
        )
    return (
        "- Keep it under 280 characters\n"
        "- Include relevant emojis\n"
        f'- End with "Check it out here: {page_url}"'
    )


def build_prompt(deal: Dict[str, Any], page_url: str, platform: str = "general") -> str:
    original_price = deal.get("originalPrice", deal.get("original_price"))
    lines = [
        "Create an engaging social media post for this product deal:",
        "",
        f"Product: {deal['title']}",
        f"Brand: {deal.get('brand') or 'N/A'}",
        f"Category: {deal.get('category') or 'N/A'}",
        f"Current Price: {_format_price(deal.get('price'))}",
    ]
    if original_price:
        lines.append(f"Original Price: {_format_price(original_price)}")
    discount = _discount_percent(deal.get("discount"))
    if discount:
        lines.append(f"Discount: {discount}% OFF")
    lines += [
        "",
        "Requirements:",
        "- Make it exciting and attention-grabbing",
        "- Highlight the savings if there's a discount",
        platform_instructions(platform, page_url),
        "- Do NOT include any hashtags",
        "- Sound enthusiastic but not overly salesy",
    ]
    return "\n".join(lines)


def _get_client() -> anthropic.Anthropic:
    if not config.ANTHROPIC_API_KEY:
        logger.error("ANTHROPIC_API_KEY is not configured")
        raise UpstreamError("ANTHROPIC_API_KEY is not configured")
    return anthropic.Anthropic(api_key=config.ANTHROPIC_API_KEY)


def generate_social_post(
    deal: Optional[Dict[str, Any]],
    tracked_url: Optional[str],
    page_url: Optional[str],
    platform: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Returns:
        {"text": <post>, "url": <tracked_url>}
    """
    if not isinstance(deal, dict) or not deal.get("title"):
        raise ValidationError("Deal data is missing or invalid", field="deal")

    platform = platform or "general"
    prompt = build_prompt(deal, page_url or "", platform)
    client = _get_client()

    logger.info(f"Generating social post ({platform}): {str(deal['title'])[:50]}")
    try:
        response = client.messages.create(
            model=config.SOCIAL_POST_MODEL,
            max_tokens=MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
    except anthropic.RateLimitError:
        logger.warning("Anthropic rate limit reached")
        raise RateLimitError("Rate limit exceeded. Please try again later.")
    except anthropic.APIStatusError as e:
        if e.status_code == 402 or "credit" in str(e).lower():
            logger.warning(f"Anthropic quota exhausted: {e}")
            raise QuotaExceededError()
        logger.error(f"Anthropic API error {e.status_code}: {e}")
        raise UpstreamError("AI gateway error")
    except anthropic.APIError as e:
        logger.error(f"Anthropic API error: {e}")
        raise UpstreamError("AI gateway error")

    text = "".join(
        getattr(block, "text", "") for block in (response.content or [])
    ).strip()
    if not text:
        raise UpstreamError("No text generated")

    return {"text": text, "url": tracked_url}
