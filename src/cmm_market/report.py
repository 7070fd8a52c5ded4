from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from .compare import best_values
from .countries import CountryTable, DEFAULT_COUNTRY_TABLE
from .schema import Listing, ListingFilters
from .sorting import SORT_LABELS, normalize_sort_key
from .urlstate import filters_to_params

CONDITION_LABELS = {
    "new": "Neu",
    "like_new": "Wie neu",
    "good": "Gut",
    "fair": "Akzeptabel",
}


def fmt_price(price: int | None, currency: str = "EUR") -> str:
    if price is None:
        return "N/A"
    euros, cents = divmod(price, 100)
    text = f"{euros:,}".replace(",", ".")
    if cents:
        text += f",{cents:02d}"
    return f"{text} {currency}"


def fmt_range(listing: Listing) -> str:
    dims = (listing.measuring_range_x, listing.measuring_range_y, listing.measuring_range_z)
    if all(d is None for d in dims):
        return "N/A"
    return " x ".join("?" if d is None else f"{d:g}" for d in dims) + " mm"


def fmt_location(listing: Listing, countries: CountryTable) -> str:
    country = countries.display_name(countries.normalize(listing.location_country))
    parts = [p for p in (listing.location_city, country) if p]
    return ", ".join(parts) or "N/A"


def render_results_md(
    listings: Sequence[Listing],
    filters: Optional[ListingFilters] = None,
    sort_by: Optional[str] = None,
    total: Optional[int] = None,
    countries: Optional[CountryTable] = None,
) -> str:
    countries = countries or DEFAULT_COUNTRY_TABLE
    now = datetime.now().isoformat(timespec="seconds")
    sort_key = normalize_sort_key(sort_by)

    lines: list[str] = [
        "# Gebrauchte Koordinatenmessmaschinen",
        "",
        f"Generated: {now}",
        "",
        f"**Results:** {len(listings)}"
        + (f" of {total}" if total is not None and total != len(listings) else "")
        + "  ",
        f"**Sort:** {SORT_LABELS[sort_key]}",
        "",
    ]

    if filters is not None and not filters.is_empty:
        lines.append("**Active filters:**")
        lines.append("")
        for param, value in filters_to_params(filters).items():
            lines.append(f"- `{param}` = {value}")
        lines.append("")

    if not listings:
        lines.append("_No listings match the current filters._")
        lines.append("")
        return "\n".join(lines)

    lines.append("| | Title | Manufacturer | Price | Year | Condition | Range | Location |")
    lines.append("|---|---|---|---:|---:|---|---|---|")
    for l in listings:
        marker = "*" if l.featured else ""
        lines.append(
            f"| {marker} | {l.title} | {l.manufacturer_name or 'N/A'} | "
            f"{fmt_price(l.price, l.currency)} | {l.year_built or 'N/A'} | "
            f"{CONDITION_LABELS.get(l.condition or '', l.condition or 'N/A')} | "
            f"{fmt_range(l)} | {fmt_location(l, countries)} |"
        )
    lines.append("")
    return "\n".join(lines)


def render_compare_md(
    listings: Sequence[Listing],
    countries: Optional[CountryTable] = None,
) -> str:
    countries = countries or DEFAULT_COUNTRY_TABLE
    if not listings:
        return "# Vergleich\n\n_No listings selected for comparison._\n"

    best = best_values(listings)

    def mark(text: str, is_best: bool) -> str:
        return f"**{text}**" if is_best and len(listings) > 1 else text

    rows: list[tuple[str, list[str]]] = [
        ("Manufacturer", [l.manufacturer_name or "N/A" for l in listings]),
        ("Model", [l.model_name or "N/A" for l in listings]),
        ("Price", [
            mark(fmt_price(l.price, l.currency), l.price is not None and l.price == best["price"])
            for l in listings
        ]),
        ("Year", [
            mark(str(l.year_built or "N/A"), l.year_built is not None and l.year_built == best["year_built"])
            for l in listings
        ]),
        ("Condition", [CONDITION_LABELS.get(l.condition or "", "N/A") for l in listings]),
        ("Measuring range", [
            mark(
                fmt_range(l),
                l.measuring_volume is not None and l.measuring_volume == best["measuring_volume"],
            )
            for l in listings
        ]),
        ("Location", [fmt_location(l, countries) for l in listings]),
    ]

    lines: list[str] = [
        "# Vergleich",
        "",
        "| | " + " | ".join(l.title for l in listings) + " |",
        "|---|" + "---|" * len(listings),
    ]
    for label, values in rows:
        lines.append(f"| {label} | " + " | ".join(values) + " |")
    lines.append("")
    return "\n".join(lines)


def write_report(path: str, content: str) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(content, encoding="utf-8")
