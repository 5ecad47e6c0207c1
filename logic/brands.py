"""Brand resolution from sender addresses and storefront URLs."""

from __future__ import annotations

import re
from typing import Dict, List, Optional
from urllib.parse import urlparse

from models.taxonomy import UNKNOWN_BRAND

DOMAIN_BRANDS: Dict[str, str] = {
    "nike.com": "Nike",
    "adidas.com": "Adidas",
    "everlane.com": "Everlane",
    "uniqlo.com": "Uniqlo",
    "zara.com": "Zara",
    "hm.com": "H&M",
    "llbean.com": "LL Bean",
    "patagonia.com": "Patagonia",
    "amazon.com": "Amazon",
    "target.com": "Target",
    "walmart.com": "Walmart",
    "gap.com": "Gap",
    "oldnavy.com": "Old Navy",
    "bananarepublic.com": "Banana Republic",
    "jcrew.com": "J.Crew",
    "madewell.com": "Madewell",
    "levi.com": "Levi's",
    "ralphlauren.com": "Ralph Lauren",
    "tommy.com": "Tommy Hilfiger",
    "nordstrom.com": "Nordstrom",
    "macys.com": "Macy's",
    "bloomingdales.com": "Bloomingdale's",
    "saksfifthavenue.com": "Saks Fifth Avenue",
    "asos.com": "ASOS",
    "shein.com": "SHEIN",
    "urbanoutfitters.com": "Urban Outfitters",
    "anthropologie.com": "Anthropologie",
    "freepeople.com": "Free People",
    "abercrombie.com": "Abercrombie & Fitch",
    "hollisterco.com": "Hollister",
    "ae.com": "American Eagle",
    "lululemon.com": "Lululemon",
    "underarmour.com": "Under Armour",
    "newbalance.com": "New Balance",
    "vans.com": "Vans",
    "converse.com": "Converse",
    "puma.com": "Puma",
    "reebok.com": "Reebok",
    "thenorthface.com": "The North Face",
    "columbia.com": "Columbia",
    "rei.com": "REI",
    "fahertybrand.com": "Faherty Brand",
    "outerknown.com": "Outerknown",
    "tecovas.com": "Tecovas",
    "bonobos.com": "Bonobos",
    "allbirds.com": "Allbirds",
    "ssense.com": "SSENSE",
    "farfetch.com": "Farfetch",
    "net-a-porter.com": "Net-a-Porter",
    "mrporter.com": "Mr Porter",
    "revolve.com": "Revolve",
    "zappos.com": "Zappos",
    "dsw.com": "DSW",
    "kohls.com": "Kohl's",
    "loft.com": "LOFT",
    "express.com": "Express",
    "mango.com": "Mango",
    "cos.com": "COS",
    "aritzia.com": "Aritzia",
    "quince.com": "Quince",
    "vuoriclothing.com": "Vuori",
    "billabong.com": "Billabong",
    "ripcurl.com": "Rip Curl",
    "volcom.com": "Volcom",
    "quiksilver.com": "Quiksilver",
}

# Storefront labels whose title-cased form reads wrong.
STOREFRONT_ALIASES: Dict[str, str] = {
    "tecovas": "Tecovas",
    "fahertybrand": "Faherty Brand",
    "patagonia": "Patagonia",
    "outerknown": "Outerknown",
    "rip-curl": "Rip Curl",
    "ripcurl": "Rip Curl",
    "billabong": "Billabong",
    "volcom": "Volcom",
    "quicksilver": "Quicksilver",
    "vans": "Vans",
    "nike": "Nike",
    "adidas": "Adidas",
}

SEED_BRANDS: List[str] = [
    "Nike",
    "Adidas",
    "Zara",
    "H&M",
    "Uniqlo",
    "Everlane",
    "Patagonia",
    "J.Crew",
    "Madewell",
    "Levi's",
    "Lululemon",
    "Gap",
]

_MULTI_PART_SUFFIXES = {"co.uk", "com.au", "co.nz", "co.jp", "com.br", "co.za", "com.mx"}


def normalise_domain(domain: str) -> str:
    domain = (domain or "").strip().lower().rstrip(".")
    if domain.startswith("www."):
        domain = domain[4:]
    return domain


def registrable_label(domain: str) -> str:
    """Return the second-level label: ``news.shop.nike.com`` -> ``nike``."""

    labels = [part for part in normalise_domain(domain).split(".") if part]
    if len(labels) < 2:
        return labels[0] if labels else ""
    if ".".join(labels[-2:]) in _MULTI_PART_SUFFIXES and len(labels) >= 3:
        return labels[-3]
    return labels[-2]


def brand_from_domain(domain: str) -> Optional[str]:
    """Resolve a brand from a sender or storefront domain.

    Known retailer domains (and their subdomains) map through
    :data:`DOMAIN_BRANDS`; otherwise the second-level label is used, passed
    through :data:`STOREFRONT_ALIASES` or title-cased.
    """

    domain = normalise_domain(domain)
    if not domain:
        return None
    for known, brand in DOMAIN_BRANDS.items():
        if domain == known or domain.endswith("." + known):
            return brand
    label = registrable_label(domain)
    if not label:
        return None
    if label in STOREFRONT_ALIASES:
        return STOREFRONT_ALIASES[label]
    return label.title()


def brand_from_sender(sender_email: str, sender_name: str | None = None) -> str:
    domain = sender_email.rsplit("@", 1)[1] if "@" in (sender_email or "") else ""
    return brand_from_domain(domain) or (sender_name or "").strip() or UNKNOWN_BRAND


def brand_from_url(url: str) -> Optional[str]:
    return brand_from_domain(urlparse(url).hostname or "")


def brand_query_token(brand: str) -> str:
    """Return the token used in a ``from:`` mail search for ``brand``."""

    for domain, known in DOMAIN_BRANDS.items():
        if known.lower() == brand.strip().lower():
            return registrable_label(domain)
    return re.sub(r"[^a-z0-9]", "", brand.lower())


__all__ = [
    "DOMAIN_BRANDS",
    "SEED_BRANDS",
    "STOREFRONT_ALIASES",
    "brand_from_domain",
    "brand_from_sender",
    "brand_from_url",
    "brand_query_token",
    "normalise_domain",
    "registrable_label",
]
