"""
Service per il calcolo prezzi dei progetti
Progetto: Koruku (Gestionale Agenzia Web)

Ripartisce il budget di un progetto in:
- Manodopera (30-50% in base alla fascia)
- Infrastruttura per 1 anno (50-70%), a sua volta suddivisa in
  hosting (48%), SSL e sicurezza (22%), CDN (14%),
  backup (6%), monitoraggio e manutenzione (10%)

Funzioni pure: nessun accesso al database, nessun effetto collaterale.
"""

import calendar
import logging
import math
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from koruku.core.config import settings
from koruku.core.exceptions import InvalidArgumentError
from koruku.schemas.pricing import (
    InfrastructureItems,
    LineItem,
    PricingBreakdown,
    PricingPreset,
    PricingTier,
    round_money,
)

# Logger per questo modulo
logger = logging.getLogger(__name__)

Money = Union[Decimal, int, float, str]

# Quota manodopera per fascia
LABOUR_PERCENTAGES: dict[PricingTier, Decimal] = {
    PricingTier.SMALL: Decimal("0.30"),
    PricingTier.MEDIUM: Decimal("0.35"),
    PricingTier.LARGE: Decimal("0.45"),
    PricingTier.CUSTOM: Decimal("0.50"),
}

# Ripartizione fissa dell'infrastruttura, nell'ordine di emissione delle righe
INFRASTRUCTURE_SHARES: dict[str, Decimal] = {
    "hosting": Decimal("0.48"),
    "ssl": Decimal("0.22"),
    "cdn": Decimal("0.14"),
    "backups": Decimal("0.06"),
    "monitoring": Decimal("0.10"),
}

if sum(INFRASTRUCTURE_SHARES.values()) != Decimal("1"):
    raise RuntimeError("Le quote infrastruttura devono sommare al 100%")

DEFAULT_LABOUR_DESCRIPTION = "Website Development"

INFRASTRUCTURE_DESCRIPTIONS: dict[str, str] = {
    "hosting": "Web Hosting (1 year) - Cloud hosting, 99.9% uptime",
    "ssl": "SSL & Security (1 year) - HTTPS encryption, security monitoring",
    "cdn": "CDN (1 year) - Content delivery network for fast loading",
    "backups": "Automated Backups (1 year) - Daily backups and recovery",
    "monitoring": "Monitoring & Maintenance (1 year) - Uptime monitoring, technical maintenance",
}

# Soglie per la fascia suggerita (limite superiore escluso)
TIER_THRESHOLDS: tuple[tuple[Decimal, PricingTier], ...] = (
    (Decimal("3500"), PricingTier.SMALL),
    (Decimal("7000"), PricingTier.MEDIUM),
    (Decimal("15000"), PricingTier.LARGE),
)

PRICING_PRESETS: tuple[PricingPreset, ...] = (
    PricingPreset(
        key="personal_single",
        name="Personal (Single Page)",
        total=Decimal("1200"),
        tier=PricingTier.SMALL,
        category="Websites",
        description="Basic landing page, single page portfolio",
    ),
    PricingPreset(
        key="portfolio_multi",
        name="Portfolio (Multi Page 3+)",
        total=Decimal("3000"),
        tier=PricingTier.SMALL,
        category="Websites",
        description="Multi-page portfolio, gallery, contact form",
    ),
    PricingPreset(
        key="business_starter",
        name="Business Starter",
        total=Decimal("6800"),
        tier=PricingTier.MEDIUM,
        category="Websites",
        description="Small business website, 5-10 pages",
    ),
    PricingPreset(
        key="business_pro",
        name="Business Pro",
        total=Decimal("11250"),
        tier=PricingTier.MEDIUM,
        category="Websites",
        description="Professional business site, advanced features",
    ),
    PricingPreset(
        key="ecommerce_basic",
        name="E-commerce Basic",
        total=Decimal("15000"),
        tier=PricingTier.LARGE,
        category="E-commerce",
        description="Basic online store, product catalog, payment integration",
    ),
    PricingPreset(
        key="ecommerce_advanced",
        name="E-commerce Advanced",
        total=Decimal("25000"),
        tier=PricingTier.LARGE,
        category="E-commerce",
        description="Full-featured store, inventory management, advanced features",
    ),
    PricingPreset(
        key="mobile_mvp",
        name="Mobile App MVP",
        total=Decimal("25000"),
        tier=PricingTier.CUSTOM,
        category="Mobile Apps",
        description="Cross-platform mobile app, minimum viable product",
    ),
    PricingPreset(
        key="mobile_fpa",
        name="Mobile App FPA",
        total=Decimal("55000"),
        tier=PricingTier.CUSTOM,
        category="Mobile Apps",
        description="Full production app, cross-platform, complete features",
    ),
)


# Virgola ammessa solo come separatore decimale ("12,50"), non delle migliaia
_DECIMAL_COMMA = re.compile(r"^\s*-?\d+,\d{1,2}\s*$")


def to_money(value: Money, field: str = "total") -> Decimal:
    """
    Converte un importo in Decimal verificando che sia finito e non negativo.

    I float passano da str() per evitare la rappresentazione binaria
    (0.1 → Decimal("0.1") e non 0.1000000000000000055...).
    Nelle stringhe la virgola vale come separatore decimale solo se
    è l'unico separatore e la seguono una o due cifre: "1,200" è
    ambiguo e viene rifiutato.

    Raises:
        InvalidArgumentError: valore non numerico, non finito o negativo
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field}: valore non numerico ({value!r})")
    if isinstance(value, float) and not math.isfinite(value):
        raise InvalidArgumentError(f"{field}: l'importo deve essere finito")
    text = value if isinstance(value, Decimal) else str(value)
    if isinstance(text, str) and "," in text:
        if not _DECIMAL_COMMA.match(text):
            raise InvalidArgumentError(
                f"{field}: separatore non valido ({value!r}), usare il punto per i decimali",
                extra={"field": field, "value": text},
            )
        text = text.replace(",", ".")
    try:
        amount = text if isinstance(text, Decimal) else Decimal(text)
    except (InvalidOperation, ValueError):
        raise InvalidArgumentError(f"{field}: valore non numerico ({value!r})")
    if not amount.is_finite():
        raise InvalidArgumentError(f"{field}: l'importo deve essere finito")
    if amount < 0:
        raise InvalidArgumentError(
            f"{field}: l'importo non può essere negativo ({amount})",
            extra={"field": field, "value": str(amount)},
        )
    return amount


def to_tier(tier: Union[PricingTier, str, None]) -> PricingTier:
    """
    Normalizza la fascia di progetto (default: small).

    Raises:
        InvalidArgumentError: fascia non prevista
    """
    if tier is None:
        return PricingTier.SMALL
    try:
        return PricingTier(tier)
    except ValueError:
        allowed = ", ".join(t.value for t in PricingTier)
        raise InvalidArgumentError(
            f"Fascia di progetto non valida: {tier!r} (ammesse: {allowed})",
            extra={"tier": str(tier)},
        )


def calculate_breakdown(
    total: Money,
    tier: Union[PricingTier, str, None] = PricingTier.SMALL,
) -> PricingBreakdown:
    """
    Ripartisce il budget tra manodopera e infrastruttura.

    Nessun arrotondamento in questa fase: l'aritmetica Decimal è esatta
    sulle percentuali a due cifre, quindi le invarianti di conservazione
    valgono esattamente.

    Args:
        total: Budget totale del progetto (>= 0)
        tier: Fascia di progetto (default: small)

    Returns:
        PricingBreakdown: Ripartizione completa

    Raises:
        InvalidArgumentError: totale negativo/non finito o fascia non valida
    """
    amount = to_money(total)
    project_tier = to_tier(tier)

    labour_share = LABOUR_PERCENTAGES[project_tier]
    labour_amount = amount * labour_share
    infrastructure_total = amount - labour_amount

    items = InfrastructureItems(
        **{
            name: infrastructure_total * share
            for name, share in INFRASTRUCTURE_SHARES.items()
        }
    )

    return PricingBreakdown(
        total=amount,
        tier=project_tier,
        labour_amount=labour_amount,
        labour_percentage=labour_share * 100,
        labour_description=DEFAULT_LABOUR_DESCRIPTION,
        infrastructure_total=infrastructure_total,
        infrastructure_percentage=(1 - labour_share) * 100,
        infrastructure_items=items,
    )


def generate_line_items(
    total: Money,
    tier: Union[PricingTier, str, None] = PricingTier.SMALL,
    labour_description: Optional[str] = None,
) -> list[LineItem]:
    """
    Genera le sei righe standard di un preventivo a partire dal budget.

    Ordine fisso: manodopera, hosting, SSL, CDN, backup, monitoraggio.
    Ogni riga ha quantità 1 e prezzo unitario arrotondato al centesimo;
    lo scarto di arrotondamento va sulla riga manodopera, così la somma
    degli importi coincide sempre con il totale arrotondato.

    Args:
        total: Budget totale del progetto
        tier: Fascia di progetto
        labour_description: Descrizione personalizzata della manodopera

    Returns:
        list[LineItem]: Le sei righe, nell'ordine di visualizzazione
    """
    breakdown = calculate_breakdown(total, tier)
    infrastructure = breakdown.infrastructure_items

    infrastructure_prices = {
        name: round_money(getattr(infrastructure, name))
        for name in INFRASTRUCTURE_SHARES
    }
    labour_price = round_money(breakdown.total) - sum(infrastructure_prices.values())

    if labour_price != round_money(breakdown.labour_amount):
        logger.debug(
            "Scarto di arrotondamento %s assorbito dalla manodopera (budget %s)",
            labour_price - round_money(breakdown.labour_amount),
            breakdown.total,
        )

    description = (labour_description or "").strip() or breakdown.labour_description
    items = [LineItem(description=description, quantity=Decimal("1"), unit_price=labour_price)]
    items.extend(
        LineItem(
            description=INFRASTRUCTURE_DESCRIPTIONS[name],
            quantity=Decimal("1"),
            unit_price=price,
        )
        for name, price in infrastructure_prices.items()
    )
    return items


def suggest_tier(total: Money) -> PricingTier:
    """Suggerisce la fascia di progetto in base al budget."""
    amount = to_money(total)
    for threshold, tier in TIER_THRESHOLDS:
        if amount < threshold:
            return tier
    return PricingTier.CUSTOM


def get_preset(key: str) -> PricingPreset:
    """
    Restituisce un listino preimpostato per chiave.

    Raises:
        InvalidArgumentError: chiave non presente
    """
    for preset in PRICING_PRESETS:
        if preset.key == key:
            return preset
    raise InvalidArgumentError(f"Listino {key!r} non trovato")


def format_breakdown(breakdown: PricingBreakdown, currency: Optional[str] = None) -> str:
    """Riepilogo testuale della ripartizione, con importi a 2 decimali."""
    symbol = currency or settings.currency_symbol
    items = breakdown.infrastructure_items

    def money(value: Decimal) -> str:
        return f"{symbol} {round_money(value):.2f}"

    lines = [
        f"Labour ({breakdown.labour_percentage:.1f}%): {money(breakdown.labour_amount)}",
        f"Infrastructure ({breakdown.infrastructure_percentage:.1f}%): "
        f"{money(breakdown.infrastructure_total)}",
        f"  - Web Hosting (48%): {money(items.hosting)}",
        f"  - SSL & Security (22%): {money(items.ssl)}",
        f"  - CDN (14%): {money(items.cdn)}",
        f"  - Automated Backups (6%): {money(items.backups)}",
        f"  - Monitoring & Maintenance (10%): {money(items.monitoring)}",
        "",
        f"Total: {money(breakdown.total)}",
    ]
    return "\n".join(lines)


def calculate_support_end_date(start_date: date, support_months: Optional[int] = None) -> date:
    """
    Fine del periodo di supporto incluso nel progetto.

    Se il giorno non esiste nel mese di arrivo si usa l'ultimo
    giorno del mese (31 gennaio + 1 mese → 28/29 febbraio).

    Raises:
        InvalidArgumentError: numero di mesi negativo
    """
    months = settings.default_support_months if support_months is None else support_months
    if months < 0:
        raise InvalidArgumentError(f"Mesi di supporto non validi: {months}")

    month_index = start_date.month - 1 + months
    year = start_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
