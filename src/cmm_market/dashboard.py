"""Streamlit page for browsing and comparing CMM listings."""
from __future__ import annotations

import streamlit as st

from cmm_market.compare import CompareStore, best_values
from cmm_market.config import Config
from cmm_market.countries import CountryTable
from cmm_market.filters import apply_filters
from cmm_market.report import CONDITION_LABELS, fmt_price, fmt_range
from cmm_market.schema import CONDITIONS, Listing, ListingFilters, SearchState
from cmm_market.sorting import SORT_KEYS, SORT_LABELS, sort_listings
from cmm_market.storage import Storage
from cmm_market.urlstate import state_from_params, state_to_params

# ---------------------------------------------------------------------------
# Data loading
# ---------------------------------------------------------------------------

DEFAULT_CONFIG = "config/config.yaml"


@st.cache_resource
def _load_config(path: str = DEFAULT_CONFIG) -> Config:
    return Config.from_yaml(path)


@st.cache_data(ttl=60)
def _load_listings(db_path: str) -> list[Listing]:
    storage = Storage(db_path)
    try:
        return storage.get_all()
    finally:
        storage.close()


def _compare_store(cfg: Config) -> tuple[CompareStore, Storage]:
    storage = Storage(cfg.app.database_path)
    return cfg.compare.build_store(storage), storage


# ---------------------------------------------------------------------------
# UI helpers
# ---------------------------------------------------------------------------

def _range_inputs(label: str, low: float | None, high: float | None, key: str) -> tuple:
    c1, c2 = st.columns(2)
    lo = c1.number_input(f"{label} von", value=low, min_value=0.0, key=f"{key}_min")
    hi = c2.number_input(f"{label} bis", value=high, min_value=0.0, key=f"{key}_max")
    return lo, hi


def _sidebar_filters(
    state: SearchState,
    listings: list[Listing],
    countries: CountryTable,
) -> SearchState:
    f = state.filters
    with st.sidebar:
        st.header("Filter")

        query = st.text_input("Suche", value=f.query or "")

        manufacturers = {
            l.manufacturer_id: l.manufacturer_name or l.manufacturer_id
            for l in listings
            if l.manufacturer_id
        }
        selected_manufacturers = st.multiselect(
            "Hersteller",
            options=list(manufacturers),
            default=[m for m in (f.manufacturers or ()) if m in manufacturers],
            format_func=lambda m: manufacturers.get(m, m),
        )

        selected_conditions = st.multiselect(
            "Zustand",
            options=list(CONDITIONS),
            default=[c for c in (f.conditions or ()) if c in CONDITIONS],
            format_func=lambda c: CONDITION_LABELS.get(c, c),
        )

        codes = countries.codes()
        selected_countries = st.multiselect(
            "Land",
            options=codes,
            default=[c for c in (countries.normalize(x) for x in (f.countries or ())) if c in codes],
            format_func=countries.display_name,
        )

        price_min, price_max = _range_inputs(
            "Preis (EUR)",
            f.price_min / 100 if f.price_min is not None else None,
            f.price_max / 100 if f.price_max is not None else None,
            "price",
        )
        year_min, year_max = _range_inputs(
            "Baujahr",
            float(f.year_min) if f.year_min is not None else None,
            float(f.year_max) if f.year_max is not None else None,
            "year",
        )
        with st.expander("Messbereich (mm)"):
            ranges = {
                axis: _range_inputs(
                    axis.upper(),
                    getattr(f, f"measuring_range_{axis}_min"),
                    getattr(f, f"measuring_range_{axis}_max"),
                    f"mess_{axis}",
                )
                for axis in "xyz"
            }

        sort_by = st.selectbox(
            "Sortierung",
            options=list(SORT_KEYS),
            index=SORT_KEYS.index(state.sort_by),
            format_func=lambda k: SORT_LABELS[k],
        )

    new_filters = ListingFilters.model_validate({
        "query": query,
        "manufacturers": selected_manufacturers,
        "conditions": selected_conditions,
        "countries": selected_countries,
        "price_min": round(price_min * 100) if price_min is not None else None,
        "price_max": round(price_max * 100) if price_max is not None else None,
        "year_min": year_min,
        "year_max": year_max,
        **{
            f"measuring_range_{axis}_{bound}": value
            for axis, (lo, hi) in ranges.items()
            for bound, value in (("min", lo), ("max", hi))
        },
    })
    # any filter or sort change starts again at page 1
    page = state.page if (new_filters == f and sort_by == state.sort_by) else 1
    return SearchState(filters=new_filters, sort_by=sort_by, page=page)


def _render_listing_card(listing: Listing, store: CompareStore, countries: CountryTable) -> None:
    with st.container(border=True):
        title = f"{'★ ' if listing.featured else ''}**{listing.title}**"
        st.markdown(title)
        m1, m2, m3 = st.columns(3)
        m1.metric("Preis", fmt_price(listing.price, listing.currency))
        m2.metric("Baujahr", listing.year_built or "N/A")
        m3.metric("Messbereich", fmt_range(listing))

        location = ", ".join(
            p for p in (
                listing.location_city,
                countries.display_name(countries.normalize(listing.location_country)),
            ) if p
        )
        if location:
            st.caption(f"Standort: {location}")
        if listing.manufacturer_name:
            st.caption(f"Hersteller: {listing.manufacturer_name} {listing.model_name or ''}")

        selected = store.contains(listing.id)
        disabled = store.is_full and not selected
        if st.checkbox(
            "Vergleichen",
            value=selected,
            key=f"cmp_{listing.id}",
            disabled=disabled,
        ) != selected:
            store.toggle(listing.id)
            st.rerun()


def _render_compare(listings: list[Listing], store: CompareStore) -> None:
    st.header(f"Vergleich ({store.count}/{store.max_items})")
    by_id = {l.id: l for l in listings}
    selected = [by_id[i] for i in store.items if i in by_id]
    if not selected:
        st.info("Noch keine Maschinen zum Vergleich ausgewählt.")
        return

    best = best_values(selected)
    table = []
    for l in selected:
        table.append({
            "Titel": l.title,
            "Hersteller": l.manufacturer_name or "N/A",
            "Preis": fmt_price(l.price, l.currency) + (" ✓" if l.price is not None and l.price == best["price"] else ""),
            "Baujahr": f"{l.year_built or 'N/A'}" + (" ✓" if l.year_built is not None and l.year_built == best["year_built"] else ""),
            "Messbereich": fmt_range(l)
            + (" ✓" if l.measuring_volume is not None and l.measuring_volume == best["measuring_volume"] else ""),
        })
    st.dataframe(table, use_container_width=True)
    if st.button("Vergleich leeren"):
        store.clear()
        st.rerun()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    st.set_page_config(
        page_title="CMM Marktplatz",
        page_icon="📐",
        layout="wide",
    )
    st.title("Gebrauchte Koordinatenmessmaschinen")

    cfg = _load_config()
    countries = cfg.countries.build()
    listings = _load_listings(cfg.app.database_path)

    if not listings:
        st.warning("No listings in database. Run `cmm-market sync` first.")
        return

    state = state_from_params(st.query_params.to_dict())
    new_state = _sidebar_filters(state, listings, countries)
    params = state_to_params(new_state)
    if params != st.query_params.to_dict():
        st.query_params.from_dict(params)

    found = sort_listings(apply_filters(listings, new_state.filters, countries), new_state.sort_by)

    store, storage = _compare_store(cfg)
    try:
        c1, c2 = st.columns(2)
        c1.metric("Treffer", len(found))
        c2.metric("Im Vergleich", f"{store.count}/{store.max_items}")

        page_size = cfg.app.page_size
        pages = max(1, -(-len(found) // page_size))
        page = min(new_state.page, pages)
        if pages > 1:
            page = st.number_input("Seite", min_value=1, max_value=pages, value=page, step=1)
            if page != new_state.page:
                st.query_params.from_dict(
                    state_to_params(new_state.model_copy(update={"page": page}))
                )

        if not found:
            st.info("Keine Maschinen gefunden. Filter anpassen oder zurücksetzen.")
        start = (page - 1) * page_size
        for listing in found[start:start + page_size]:
            _render_listing_card(listing, store, countries)

        _render_compare(listings, store)
    finally:
        storage.close()


if __name__ == "__main__":
    main()
