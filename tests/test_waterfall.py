from types import SimpleNamespace

import pytest

from btc_coverage.model.instruments import DebtInstrument
from btc_coverage.model.waterfall import (ADDITIONAL_DEBT_ID, ADDITIONAL_PREFERRED_ID,
                                          accumulate, adjustment_for_total, build_waterfall,
                                          cumulative_through, effective_total, order_debt,
                                          waterfall_for)


def _cums(rows):
    return [round(c, 6) for _, c in rows]


def test_debt_cumulative_notional(three_notes):
    rows = build_waterfall(three_notes, [])
    assert _cums(rows) == [1050, 2060, 2860]


def test_preferred_continue_from_total_debt(three_notes, two_preferreds):
    rows = build_waterfall(three_notes, two_preferreds)
    assert _cums(rows)[3:] == [3444, 4007]
    assert [inst.kind for inst, _ in rows] == ["debt"] * 3 + ["preferred"] * 2


def test_order_debt_sorts_by_maturity_and_is_stable():
    a = DebtInstrument("a", "A", 100.0, 2030)
    b = DebtInstrument("b", "B", 200.0, 2028)
    c = DebtInstrument("c", "C", 300.0, 2030)
    assert [d.id for d in order_debt([a, b, c])] == ["b", "a", "c"]


def test_mstr_waterfall_ordering(mstr):
    rows = waterfall_for(mstr)
    debt_years = [inst.maturity_year for inst, _ in rows if inst.kind == "debt"]
    assert debt_years == sorted(debt_years)
    # 2030 B is listed before 2030 A in the catalog
    ids = [inst.id for inst, _ in rows]
    assert ids.index("conv-2030b") < ids.index("conv-2030a")
    assert [inst.ticker for inst, _ in rows if inst.kind == "preferred"] == \
        ["STRF", "STRC", "STRK", "STRD"]


def test_cumulative_is_non_decreasing(mstr):
    cums = _cums(waterfall_for(mstr))
    assert all(b >= a for a, b in zip(cums, cums[1:]))
    assert cums[-1] == pytest.approx(8214.0 + 7467.0)


def test_accumulate_rejects_negative_notional():
    with pytest.raises(ValueError):
        accumulate([SimpleNamespace(id="x", notional=-1.0)])


def test_accumulate_rejects_negative_offset(three_notes):
    with pytest.raises(ValueError):
        accumulate(three_notes, starting_cumulative=-1.0)


def test_empty_waterfall():
    assert build_waterfall([], []) == []


def test_cumulative_through(three_notes, two_preferreds):
    rows = build_waterfall(three_notes, two_preferreds)
    assert cumulative_through(rows, "n-2029") == pytest.approx(2060)
    assert cumulative_through(rows, "strk") == pytest.approx(4007)
    with pytest.raises(KeyError):
        cumulative_through(rows, "missing")


# ---------------------------------------------------------------------------
# Class adjustments
# ---------------------------------------------------------------------------

def test_positive_debt_adjustment_adds_tranche_after_last_note(three_notes, two_preferreds):
    rows = build_waterfall(three_notes, two_preferreds, debt_adjustment=140.0)
    extra, cum = rows[3]
    assert extra.id == ADDITIONAL_DEBT_ID
    assert extra.maturity_year == 2030
    assert cum == pytest.approx(3000.0)
    # preferred shifts down by the adjustment
    assert rows[-1][1] == pytest.approx(4147.0)


def test_positive_preferred_adjustment_is_last_with_no_dividend(three_notes, two_preferreds):
    rows = build_waterfall(three_notes, two_preferreds, preferred_adjustment=93.0)
    extra, cum = rows[-1]
    assert extra.id == ADDITIONAL_PREFERRED_ID
    assert extra.annual_dividend == 0.0
    assert cum == pytest.approx(4100.0)


def test_negative_adjustment_adds_no_tranche(three_notes):
    rows = build_waterfall(three_notes, [], debt_adjustment=-500.0)
    assert len(rows) == 3


def test_effective_total():
    assert effective_total(2860.0, -500.0) == (2360.0, True)
    assert effective_total(2860.0, 0.0) == (2860.0, True)
    assert effective_total(2860.0, -3000.0) == (0.0, False)


def test_adjustment_for_total():
    assert adjustment_for_total(3000.0, 2860.0) == pytest.approx(140.0)
    assert adjustment_for_total(2000.0, 2860.0) == pytest.approx(-860.0)
