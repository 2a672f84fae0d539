"""
OG Card - Page HTML de prévisualisation d'un deal pour les réseaux sociaux.

Meta tags Open Graph / Twitter + une carte stylée inline
(marque, badge de remise, titre, prix, catégorie, CTA).
"""
from html import escape

from app.core import config
from app.services.deal_service import compute_discount
from app.services.image_resolver import resolve_for_deal

BRAND = "RELAY STATION"
TITLE_MAX_LENGTH = 60


def truncate(text: str, max_length: int = TITLE_MAX_LENGTH) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def card_discount(deal) -> int:
    return compute_discount(deal.price, deal.original_price, deal.discount) or 0


def render_og_card(deal) -> str:
    discount = card_discount(deal)
    title = escape(truncate(deal.title))
    full_title = escape(deal.title)
    image = escape(resolve_for_deal(deal))
    page_url = escape(f"{config.SITE_URL}/deal/{deal.id}")
    description = f"Now ${deal.price:.2f}"
    if deal.original_price:
        description += f" (was ${deal.original_price:.2f})"
    if discount > 0:
        description += f" - {discount}% OFF"
    description = escape(description)

    badge = ""
    if discount > 0:
        badge = f'<div style="position:absolute;top:40px;right:40px;background:#e94560;color:#fff;font-size:36px;font-weight:bold;padding:16px 28px;border-radius:8px">{discount}% OFF</div>'

    original = ""
    if deal.original_price:
        original = f'<div style="font-size:32px;color:#888;text-decoration:line-through">Was ${deal.original_price:.2f}</div>'

    category = ""
    if deal.category:
        category = f'<div style="display:inline-block;margin-top:24px;padding:8px 20px;border-radius:20px;background:rgba(233,69,96,0.2);color:#e94560;font-size:18px">{escape(deal.category)}</div>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{full_title}</title>
<meta property="og:type" content="product">
<meta property="og:title" content="{full_title}">
<meta property="og:description" content="{description}">
<meta property="og:image" content="{image}">
<meta property="og:url" content="{page_url}">
<meta name="twitter:card" content="summary_large_image">
<meta name="twitter:title" content="{full_title}">
<meta name="twitter:description" content="{description}">
<meta name="twitter:image" content="{image}">
</head>
<body style="margin:0;font-family:Arial,sans-serif">
<div style="position:relative;width:1200px;height:630px;background:linear-gradient(135deg,#1a1a2e,#16213e);color:#fff;box-sizing:border-box;padding:40px 60px">
<div style="position:absolute;top:0;left:0;width:1200px;height:8px;background:linear-gradient(90deg,#e94560,#ff6b6b)"></div>
<div style="font-size:24px;font-weight:bold;color:#e94560">{BRAND}</div>
{badge}
<div style="margin-top:50px;font-size:32px;font-weight:bold">{title}</div>
<div style="margin-top:40px;font-size:72px;font-weight:bold;color:#4ade80">${deal.price:.2f}</div>
{original}
{category}
<a href="{page_url}" style="position:absolute;left:60px;bottom:50px;width:300px;line-height:60px;text-align:center;border-radius:8px;background:linear-gradient(90deg,#e94560,#ff6b6b);color:#fff;font-size:24px;font-weight:bold;text-decoration:none">View Deal &rarr;</a>
<div style="position:absolute;right:60px;bottom:30px;font-size:16px;color:#666">relaystation.app</div>
</div>
</body>
</html>"""
