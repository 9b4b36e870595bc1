"""
Tests for scripts.special.airy.

Covers regime dispatch, overflow saturation, the "already computed" flags of the
positive asymptotic branch, agreement with scipy, and the analytic identities
(Wronskian, asymptotic envelope, decay).
"""

import dataclasses
import json
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest
from scipy import special

from scripts.special import airy
from scripts.special.airy import (
    MAXAIRY,
    MAXNUM,
    POSITIVE_ASYMPTOTIC_FLAGS,
    STATUS_OK,
    STATUS_OVERFLOW,
    AiryResult,
    DomainFlags,
    evaluate,
    regime,
)
from scripts.summary import worklog


def _mixed_error(a: float, b: float) -> float:
    mag = max(abs(a), abs(b))
    return abs(a - b) / mag if mag > 1.0 else abs(a - b)


class TestOverflow:
    @pytest.mark.parametrize("x", [25.7700001, 30.0, 1.0e300, math.inf])
    def test_saturates_beyond_maxairy(self, x) -> None:
        res = evaluate(x)
        assert tuple(res) == (0.0, 0.0, MAXNUM, MAXNUM, STATUS_OVERFLOW)
        assert res.overflow

    def test_maxairy_itself_is_not_saturated(self) -> None:
        res = evaluate(MAXAIRY)
        assert res.status == STATUS_OK
        assert not res.overflow
        assert 0.0 < res.ai < 1.0e-30
        assert 1.0e30 < res.bi < MAXNUM


class TestReferenceValues:
    def test_values_at_zero(self) -> None:
        ai, aip, bi, bip, status = evaluate(0.0)
        assert status == STATUS_OK
        assert ai == pytest.approx(0.355028053887817, abs=1e-15)
        assert aip == pytest.approx(-0.258819403792807, abs=1e-15)
        assert bi == pytest.approx(0.614926627446001, abs=1e-15)
        assert bip == pytest.approx(0.448288357353826, abs=1e-15)

    @pytest.mark.parametrize(
        "x",
        [-15.0, -8.5, -3.0, -2.1, -1.0, -0.5, 0.7, 1.9, 2.09, 3.0, 5.0, 8.3, 8.4, 12.0, 20.0],
    )
    def test_agrees_with_scipy(self, x) -> None:
        ref = special.airy(x)
        res = evaluate(x)
        for got, want in zip((res.ai, res.aip, res.bi, res.bip), ref):
            assert got == pytest.approx(float(want), rel=1e-11, abs=1e-13)

    def test_first_zero_of_ai(self) -> None:
        # a1 = -2.338107410459767...
        assert abs(evaluate(-2.338107410459767).ai) < 1e-14


class TestRegime:
    @pytest.mark.parametrize(
        "x,expected",
        [
            (-50.0, "negative"),
            (math.nextafter(-2.09, -math.inf), "negative"),
            (-2.09, "series"),
            (0.0, "series"),
            (math.nextafter(2.09, -math.inf), "series"),
            (2.09, "positive_near"),
            (8.3203353, "positive_near"),
            (math.nextafter(8.3203353, math.inf), "positive_far"),
            (MAXAIRY, "positive_far"),
            (25.78, "overflow"),
            (math.nan, "series"),
        ],
    )
    def test_branch_selection(self, x, expected) -> None:
        assert regime(x) == expected

    def test_matches_branch_taken_by_evaluate(self, monkeypatch: pytest.MonkeyPatch) -> None:
        sentinel = (111.0, 222.0, 333.0, 444.0)
        monkeypatch.setattr(airy, "_power_series", lambda x: sentinel)

        xs = list(np.linspace(-30.0, 30.0, 2401))
        for b in (-2.09, 2.09, 8.3203353, MAXAIRY):
            xs += [math.nextafter(b, -math.inf), b, math.nextafter(b, math.inf)]

        for x in xs:
            res = evaluate(float(x))
            used = tuple(v in sentinel for v in tuple(res)[:4])
            expected = {
                "overflow": (False,) * 4,
                "negative": (False,) * 4,
                "positive_far": (False,) * 4,
                "positive_near": (False, False, True, True),
                "series": (True,) * 4,
            }[regime(x)]
            assert used == expected, x
            assert (res.status == STATUS_OVERFLOW) == (regime(x) == "overflow"), x


class TestDomainFlags:
    SENTINEL = (111.0, 222.0, 333.0, 444.0)

    @pytest.fixture
    def fake_series(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(airy, "_power_series", lambda x: self.SENTINEL)

    def test_positive_flags(self) -> None:
        assert POSITIVE_ASYMPTOTIC_FLAGS == DomainFlags(ai=True, aip=True, bi=False, bip=False)

    def test_flags_are_frozen(self) -> None:
        with pytest.raises(dataclasses.FrozenInstanceError):
            POSITIVE_ASYMPTOTIC_FLAGS.bi = True  # type: ignore[misc]

    def test_series_region_uses_series_for_all_outputs(self, fake_series) -> None:
        assert tuple(evaluate(1.0))[:4] == self.SENTINEL

    def test_positive_near_keeps_asymptotic_ai(self, fake_series) -> None:
        res = evaluate(3.0)
        assert res.ai not in self.SENTINEL and res.aip not in self.SENTINEL
        assert (res.bi, res.bip) == (333.0, 444.0)
        assert res.ai == pytest.approx(float(special.airy(3.0)[0]), rel=1e-13)

    @pytest.mark.parametrize("x", [-3.0, 9.0])
    def test_early_return_branches_skip_series(self, fake_series, x) -> None:
        res = evaluate(x)
        assert not set(tuple(res)[:4]) & set(self.SENTINEL)


class TestContinuity:
    @pytest.mark.parametrize("boundary", [-2.09, 2.09, 8.3203353])
    def test_neighbouring_doubles_agree(self, boundary) -> None:
        lo = evaluate(math.nextafter(boundary, -math.inf))
        hi = evaluate(math.nextafter(boundary, math.inf))
        for name in ("ai", "aip", "bi", "bip"):
            assert _mixed_error(getattr(lo, name), getattr(hi, name)) < 1e-13, name


class TestIdentities:
    def test_wronskian(self) -> None:
        for x in np.linspace(-20.0, 25.0, 901):
            ai, aip, bi, bip, _ = evaluate(float(x))
            scale = max(1.0 / math.pi, abs(ai * bip) + abs(aip * bi))
            assert abs(ai * bip - aip * bi - 1.0 / math.pi) / scale < 1e-12, x

    def test_decay_for_large_positive_x(self) -> None:
        xs = np.linspace(3.0, 25.0, 200)
        res = [evaluate(float(x)) for x in xs]
        ai = np.array([r.ai for r in res])
        bi = np.array([r.bi for r in res])
        assert np.all(ai > 0.0)
        assert np.all(np.diff(ai) < 0.0)
        assert np.all(np.diff(bi) > 0.0)
        assert all(r.aip < 0.0 < r.bip for r in res)

    def test_oscillation_envelope_for_large_negative_x(self) -> None:
        # sqrt(Ai^2 + Bi^2) ~ pi^(-1/2) |x|^(-1/4)
        for x in np.linspace(-80.0, -3.0, 300):
            r = evaluate(float(x))
            modulus = math.hypot(r.ai, r.bi) * math.sqrt(math.pi) * abs(x) ** 0.25
            assert modulus == pytest.approx(1.0, abs=1e-2)

    def test_ai_changes_sign_on_negative_axis(self) -> None:
        signs = {math.copysign(1.0, evaluate(float(x)).ai) for x in np.linspace(-20.0, -3.0, 200)}
        assert signs == {-1.0, 1.0}


class TestPurity:
    @pytest.mark.parametrize("x", [-7.25, -2.09, 0.3, 2.5, 10.0, 30.0])
    def test_repeated_calls_are_identical(self, x) -> None:
        assert tuple(evaluate(x)) == tuple(evaluate(x))

    def test_concurrent_evaluation_matches_sequential(self) -> None:
        xs = [float(x) for x in np.linspace(-12.0, 26.0, 400)]
        expected = [tuple(evaluate(x)) for x in xs]
        with ThreadPoolExecutor(max_workers=8) as pool:
            got = [tuple(r) for r in pool.map(evaluate, xs)]
        assert got == expected


class TestInputs:
    def test_accepts_int_and_numpy_scalars(self) -> None:
        assert tuple(evaluate(0)) == tuple(evaluate(0.0))
        assert tuple(evaluate(np.float64(1.5))) == tuple(evaluate(1.5))

    def test_non_numeric_raises(self) -> None:
        with pytest.raises(ValueError):
            evaluate("abc")  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            evaluate(None)  # type: ignore[arg-type]

    def test_nan_propagates(self) -> None:
        res = evaluate(math.nan)
        assert res.status == STATUS_OK
        assert all(math.isnan(v) for v in tuple(res)[:4])

    @pytest.mark.parametrize("x", [-math.inf, -1.0e300])
    def test_huge_negative_is_unguarded(self, x) -> None:
        res = evaluate(x)
        assert res.status == STATUS_OK
        assert all(math.isnan(v) for v in tuple(res)[:4])


class TestSeriesCap:
    def test_warns_when_cap_is_hit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(airy, "MAX_SERIES_TERMS", 1)
        with pytest.warns(RuntimeWarning, match="did not converge"):
            res = evaluate(1.5)
        assert math.isfinite(res.ai)

    def test_warning_points_at_the_caller(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(airy, "MAX_SERIES_TERMS", 1)
        with pytest.warns(RuntimeWarning) as record:
            evaluate(1.5)
        assert record[0].filename == __file__

    def test_default_cap_is_not_reached(self, recwarn) -> None:
        for x in np.linspace(-2.09, 8.3203353, 200):
            evaluate(float(x))
        assert not [w for w in recwarn if issubclass(w.category, RuntimeWarning)]


class TestAiryResult:
    def test_unpacks_as_five_values(self) -> None:
        ai, aip, bi, bip, status = evaluate(1.0)
        assert status == STATUS_OK

    def test_to_dict(self) -> None:
        d = AiryResult(1.0, 2.0, 3.0, 4.0).to_dict()
        assert d == {"ai": 1.0, "aip": 2.0, "bi": 3.0, "bip": 4.0, "status": 0}


class TestCli:
    def test_prints_rows_and_writes_json(self, tmp_path, capsys, worklog_path) -> None:
        out_json = tmp_path / "points.json"
        assert airy.main(["0", "-3.5", "30", "--json", str(out_json)]) == 0

        out = capsys.readouterr().out
        assert out.count("regime=") == 3
        assert "[warn] x=+30" in out
        assert "beyond MAXAIRY" in out

        payload = json.loads(out_json.read_text(encoding="utf-8"))
        assert [r["regime"] for r in payload["rows"]] == ["series", "negative", "overflow"]
        assert payload["rows"][2]["status"] == STATUS_OVERFLOW
        assert payload["rows"][0]["ai"] == pytest.approx(0.355028053887817, abs=1e-15)

        events = list(worklog.iter_events(worklog_path, event_type="special_airy_evaluate"))
        assert len(events) == 1
        assert events[0]["metrics"] == {"n_points": 3, "n_overflow": 1}

    def test_no_log(self, capsys, worklog_path) -> None:
        assert airy.main(["1.0", "--no-log"]) == 0
        assert not worklog_path.exists()

    def test_requires_at_least_one_point(self) -> None:
        with pytest.raises(SystemExit) as exc:
            airy.main([])
        assert exc.value.code == 2
