from cmm_market.report import fmt_price, render_compare_md, render_results_md
from cmm_market.schema import Listing, ListingFilters


def _make_listing(**overrides) -> Listing:
    defaults = dict(
        id="1",
        title="Zeiss Contura",
        manufacturer_name="Zeiss",
        price=3000000,
        year_built=2016,
        condition="good",
        measuring_range_x=700,
        measuring_range_y=1000,
        measuring_range_z=600,
        location_country="DE",
        location_city="Stuttgart",
    )
    defaults.update(overrides)
    return Listing(**defaults)


def test_fmt_price():
    assert fmt_price(3000000) == "30.000 EUR"
    assert fmt_price(3000050) == "30.000,50 EUR"
    assert fmt_price(None) == "N/A"


def test_results_table():
    md = render_results_md(
        [_make_listing()],
        ListingFilters(countries=["DE"]),
        "price_asc",
        total=1,
    )
    assert "Preis aufsteigend" in md
    assert "`land` = DE" in md
    assert "| Zeiss Contura | Zeiss | 30.000 EUR | 2016 | Gut | 700 x 1000 x 600 mm | Stuttgart, Deutschland |" in md


def test_results_empty():
    md = render_results_md([], ListingFilters(query="leitz"))
    assert "No listings match" in md
    assert "Relevanz" in md


def test_compare_marks_best_values():
    cheap = _make_listing(id="a", title="Cheap", price=1000000, year_built=2010)
    new = _make_listing(id="b", title="New", price=2000000, year_built=2020,
                        measuring_range_x=900)
    md = render_compare_md([cheap, new])
    assert "| | Cheap | New |" in md
    assert "**10.000 EUR**" in md
    assert "**2020**" in md
    assert "**900 x 1000 x 600 mm**" in md
    assert "**20.000 EUR**" not in md


def test_compare_empty():
    assert "No listings selected" in render_compare_md([])
