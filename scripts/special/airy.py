#!/usr/bin/env python3
"""
airy.py

実引数 x に対する Airy 関数 Ai, Ai', Bi, Bi' を倍精度で評価する（Cephes `airy` 系の区分近似）。

評価の方式:
  - x > MAXAIRY           : 飽和（Ai=Ai'=0, Bi=Bi'=MAXNUM, status=-1）
  - x < -2.09             : 振動型の漸近展開（有理近似の補正 uf, ug）
  - x >= 2.09             : 指数型の漸近展開（Ai, Ai'）。x > 8.3203353 なら Bi, Bi' も漸近展開で確定
  - それ以外              : z = x^3 のべき級数（漸近側で確定済みの出力は上書きしない）

Accuracy of the reference routine (absolute error when |f| <= 1, relative when |f| > 1; * = relative):

  domain     function  peak       rms
  -10, 0     Ai        1.6e-15    2.7e-16
    0, 10    Ai        2.3e-14*   1.8e-15*
  -10, 0     Ai'       4.6e-15    7.6e-16
    0, 10    Ai'       1.8e-14*   1.5e-15*
  -10, 10    Bi        4.2e-15    5.3e-16
  -10, 10    Bi'       4.9e-15    7.3e-16

Usage:
    python -B scripts/special/airy.py 0 -3.5 2.5 10
    python -B scripts/special/airy.py 1.0 --json output/private/special/airy_points.json
"""

from __future__ import annotations

import argparse
import json
import math
import sys
import warnings
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

_ROOT = Path(__file__).resolve().parents[2]
# 条件分岐: `str(_ROOT) not in sys.path` を満たす経路を評価する。
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from scripts.special.polynomial import p1evl, polevl  # noqa: E402
from scripts.summary import worklog  # noqa: E402


C1 = 0.35502805388781723926  # Ai(0)
C2 = 0.258819403792806798405  # -Ai'(0)
SQRT3 = 1.732050807568877293527
SQPII = 5.64189583547756286948e-1  # 1/sqrt(pi)

MAXAIRY = 25.77
MAXNUM = 1.79769313486231570815e308  # 2**1024*(1-MACHEP)
MACHEP = 1.11022302462515654042e-16  # 2**-53

NEGATIVE_BOUNDARY = -2.09
POSITIVE_BOUNDARY = 2.09  # cbrt(9)
POSITIVE_FAR_BOUNDARY = 8.3203353  # zeta > 16

STATUS_OK = 0
STATUS_OVERFLOW = -1

# Iteration cap for the two power series; not part of the reference routine.
MAX_SERIES_TERMS = 1000

# Positive asymptotic branch: Ai, Ai'.
AN = (
    3.46538101525629032477e-1,
    1.20075952739645805542e1,
    7.62796053615234516538e1,
    1.68089224934630576269e2,
    1.59756391350164413639e2,
    7.05360906840444183113e1,
    1.40264691163389668864e1,
    9.99999999999999995305e-1,
)
AD = (
    5.67594532638770212846e-1,
    1.47562562584847203173e1,
    8.45138970141474626562e1,
    1.77318088145400459522e2,
    1.64234692871529701831e2,
    7.14778400825575695274e1,
    1.40959135607834029598e1,
    1.00000000000000000470e0,
)
APN = (
    6.13759184814035759225e-1,
    1.47454670787755323881e1,
    8.20584123476060982430e1,
    1.71184781360976385540e2,
    1.59317847137141783523e2,
    6.99778599330103016170e1,
    1.39470856980481566958e1,
    1.00000000000000000550e0,
)
APD = (
    3.34203677749736953049e-1,
    1.11810297306158156705e1,
    7.11727352147859965283e1,
    1.58778084372838313640e2,
    1.53206427475809220834e2,
    6.86752304592780337944e1,
    1.38498634758259442477e1,
    9.99999999999999994502e-1,
)

# Positive far branch: Bi, Bi'. Denominators carry an implicit leading 1.0.
BN16 = (
    -2.53240795869364152689e-1,
    5.75285167332467384228e-1,
    -3.29907036873225371650e-1,
    6.44404068948199951727e-2,
    -3.82519546641336734394e-3,
)
BD16 = (
    -7.15685095054035237902e0,
    1.06039580715664694291e1,
    -5.23246636471251500874e0,
    9.57395864378383833152e-1,
    -5.50828147163549611107e-2,
)
BPPN = (
    4.65461162774651610328e-1,
    -1.08992173800493920734e0,
    6.38800117371827987759e-1,
    -1.26844349553102907034e-1,
    7.62487844342109852105e-3,
)
BPPD = (
    -8.70622787633159124240e0,
    1.38993162704553213172e1,
    -7.14116144616431159572e0,
    1.34008595960680518666e0,
    -7.84273211323341930448e-2,
)

# Negative oscillatory branch. Denominators carry an implicit leading 1.0.
AFN = (
    -1.31696323418331795333e-1,
    -6.26456544431912369773e-1,
    -6.93158036036933542233e-1,
    -2.79779981545119124951e-1,
    -4.91900132609500318020e-2,
    -4.06265923594885404393e-3,
    -1.59276496239262096340e-4,
    -2.77649108155232920844e-6,
    -1.67787698489114633780e-8,
)
AFD = (
    1.33560420706553243746e1,
    3.26825032795224613948e1,
    2.67367040941499554804e1,
    9.18707402907259625840e0,
    1.47529146771666414581e0,
    1.15687173795188044134e-1,
    4.40291641615211203805e-3,
    7.54720348287414296618e-5,
    4.51850092970580378464e-7,
)
AGN = (
    1.97339932091685679179e-2,
    3.91103029615688277255e-1,
    1.06579897599595591108e0,
    9.39169229816650230044e-1,
    3.51465656105547619242e-1,
    6.33888919628925490927e-2,
    5.85804113048388458567e-3,
    2.82851600836737019778e-4,
    6.98793669997260967291e-6,
    8.11789239554389293311e-8,
    3.41551784765923618484e-10,
)
AGD = (
    9.30892908077441974853e0,
    1.98352928718312140417e1,
    1.55646628932864612953e1,
    5.47686069422975497931e0,
    9.54293611618961883998e-1,
    8.64580826352392193095e-2,
    4.12656523824222607191e-3,
    1.01259085116509135510e-4,
    1.17166733214413521882e-6,
    4.91834570062930015649e-9,
)
APFN = (
    1.85365624022535566142e-1,
    8.86712188052584095637e-1,
    9.87391981747398547272e-1,
    4.01241082318003734092e-1,
    7.10304926289631174579e-2,
    5.90618657995661810071e-3,
    2.33051409401776799569e-4,
    4.08718778289035454598e-6,
    2.48379932900442457853e-8,
)
APFD = (
    1.47345854687502542552e1,
    3.75423933435489594466e1,
    3.14657751203046424330e1,
    1.09969125207298778536e1,
    1.78885054766999417817e0,
    1.41733275753662636873e-1,
    5.44066067017226003627e-3,
    9.39421290654511171663e-5,
    5.65978713036027009243e-7,
)
APGN = (
    -3.55615429033082288335e-2,
    -6.37311518129435504426e-1,
    -1.70856738884312371053e0,
    -1.50221872117316635393e0,
    -5.63606665822102676611e-1,
    -1.02101031120216891789e-1,
    -9.48396695961445269093e-3,
    -4.60325307486780994357e-4,
    -1.14300836484517375919e-5,
    -1.33415518685547420648e-7,
    -5.63803833958893494476e-10,
)
APGD = (
    9.85865801696130355144e0,
    2.16401867356585941885e1,
    1.73130776389749389525e1,
    6.17872175280828766327e0,
    1.08848694396321495475e0,
    9.95005543440888479402e-2,
    4.78468199683886610842e-3,
    1.18159633322838625562e-4,
    1.37480673554219441465e-6,
    5.79912514929147598821e-9,
)


# クラス: `AiryResult` の責務と境界条件を定義する。
class AiryResult(NamedTuple):
    ai: float
    aip: float
    bi: float
    bip: float
    status: int = STATUS_OK

    # 関数: `overflow` の入出力契約と処理意図を定義する。
    @property
    def overflow(self) -> bool:
        return self.status == STATUS_OVERFLOW

    # 関数: `to_dict` の入出力契約と処理意図を定義する。

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ai": float(self.ai),
            "aip": float(self.aip),
            "bi": float(self.bi),
            "bip": float(self.bip),
            "status": int(self.status),
        }


# クラス: `DomainFlags` の責務と境界条件を定義する。

@dataclass(frozen=True)
class DomainFlags:
    """Outputs already fixed by an asymptotic branch; the power series must leave them alone."""

    ai: bool = False
    aip: bool = False
    bi: bool = False
    bip: bool = False


NO_FLAGS = DomainFlags()
POSITIVE_ASYMPTOTIC_FLAGS = DomainFlags(ai=True, aip=True)


# 関数: `regime` の入出力契約と処理意図を定義する。

def regime(x: float) -> str:
    """Name of the branch that `evaluate` dispatches x to."""
    x = float(x)
    # 条件分岐: `x > MAXAIRY` を満たす経路を評価する。
    if x > MAXAIRY:
        return "overflow"

    # 条件分岐: `x < NEGATIVE_BOUNDARY` を満たす経路を評価する。

    if x < NEGATIVE_BOUNDARY:
        return "negative"

    # 条件分岐: `x > POSITIVE_FAR_BOUNDARY` を満たす経路を評価する。

    if x > POSITIVE_FAR_BOUNDARY:
        return "positive_far"

    # 条件分岐: `x >= POSITIVE_BOUNDARY` を満たす経路を評価する。

    if x >= POSITIVE_BOUNDARY:
        return "positive_near"

    return "series"


# 関数: `_series_exhausted` の入出力契約と処理意図を定義する。

def _series_exhausted(name: str, x: float) -> None:
    warnings.warn(
        f"airy: {name} series did not converge within {MAX_SERIES_TERMS} terms at x={x!r}",
        RuntimeWarning,
        stacklevel=4,
    )


# 関数: `_power_series` の入出力契約と処理意図を定義する。

def _power_series(x: float) -> Tuple[float, float, float, float]:
    """Maclaurin sums in z = x^3 for (Ai, Ai', Bi, Bi')."""
    z = x * x * x

    # f, g: the even/odd basis functions behind Ai and Bi.
    f = 1.0
    g = x
    t = 1.0
    uf = 1.0
    ug = x
    k = 1.0
    n = 0
    while t > MACHEP:
        # 条件分岐: `n >= MAX_SERIES_TERMS` を満たす経路を評価する。
        if n >= MAX_SERIES_TERMS:
            _series_exhausted("Ai/Bi", x)
            break

        uf *= z
        k += 1.0
        uf /= k
        ug *= z
        k += 1.0
        ug /= k
        uf /= k
        f += uf
        k += 1.0
        ug /= k
        g += ug
        t = abs(uf / f)
        n += 1

    uf = C1 * f
    ug = C2 * g
    ai = uf - ug
    bi = SQRT3 * (uf + ug)

    # Derivatives of the same basis.
    k = 4.0
    uf = x * x / 2.0
    ug = z / 3.0
    f = uf
    g = 1.0 + ug
    uf /= 3.0
    t = 1.0
    n = 0
    while t > MACHEP:
        # 条件分岐: `n >= MAX_SERIES_TERMS` を満たす経路を評価する。
        if n >= MAX_SERIES_TERMS:
            _series_exhausted("Ai'/Bi'", x)
            break

        uf *= z
        ug /= k
        k += 1.0
        ug *= z
        uf /= k
        f += uf
        k += 1.0
        ug /= k
        uf /= k
        g += ug
        k += 1.0
        t = abs(ug / g)
        n += 1

    uf = C1 * f
    ug = C2 * g
    aip = uf - ug
    bip = SQRT3 * (uf + ug)
    return ai, aip, bi, bip


# 関数: `_negative_asymptotic` の入出力契約と処理意図を定義する。

def _negative_asymptotic(x: float) -> AiryResult:
    t = math.sqrt(-x)
    zeta = -2.0 * x * t / 3.0
    t = math.sqrt(t)
    k = SQPII / t
    z = 1.0 / zeta
    zz = z * z
    uf = 1.0 + zz * polevl(zz, AFN, 8) / p1evl(zz, AFD, 9)
    ug = z * polevl(zz, AGN, 10) / p1evl(zz, AGD, 10)
    theta = zeta + 0.25 * math.pi
    # 条件分岐: `not math.isfinite(theta)` を満たす経路を評価する。
    if not math.isfinite(theta):
        # |x|^1.5 overflows; sin/cos of an infinite phase are undefined.
        nan = float("nan")
        return AiryResult(nan, nan, nan, nan, STATUS_OK)

    f = math.sin(theta)
    g = math.cos(theta)
    ai = k * (f * uf - g * ug)
    bi = k * (g * uf + f * ug)

    uf = 1.0 + zz * polevl(zz, APFN, 8) / p1evl(zz, APFD, 9)
    ug = z * polevl(zz, APGN, 10) / p1evl(zz, APGD, 10)
    k = SQPII * t
    aip = -k * (g * uf + f * ug)
    bip = k * (f * uf - g * ug)
    return AiryResult(ai, aip, bi, bip, STATUS_OK)


# 関数: `evaluate` の入出力契約と処理意図を定義する。

def evaluate(x: float) -> AiryResult:
    """
    Return (Ai(x), Ai'(x), Bi(x), Bi'(x), status) for real x.

    status is STATUS_OK (0), or STATUS_OVERFLOW (-1) when x > MAXAIRY; in that case
    Ai and Ai' are 0 and Bi, Bi' are saturated at MAXNUM.
    """
    x = float(x)
    branch = regime(x)
    # 条件分岐: `branch == "overflow"` を満たす経路を評価する。
    if branch == "overflow":
        return AiryResult(0.0, 0.0, MAXNUM, MAXNUM, STATUS_OVERFLOW)

    # 条件分岐: `branch == "negative"` を満たす経路を評価する。

    if branch == "negative":
        return _negative_asymptotic(x)

    flags = NO_FLAGS
    ai = aip = 0.0
    # 条件分岐: `branch in ("positive_near", "positive_far")` を満たす経路を評価する。
    if branch in ("positive_near", "positive_far"):
        flags = POSITIVE_ASYMPTOTIC_FLAGS
        t = math.sqrt(x)
        zeta = 2.0 * x * t / 3.0
        g = math.exp(zeta)
        t = math.sqrt(t)
        k = 2.0 * t * g
        z = 1.0 / zeta
        f = polevl(z, AN, 7) / polevl(z, AD, 7)
        ai = SQPII * f / k
        k = -0.5 * SQPII * t / g
        f = polevl(z, APN, 7) / polevl(z, APD, 7)
        aip = f * k

        # 条件分岐: `branch == "positive_far"` を満たす経路を評価する。
        if branch == "positive_far":
            f = z * polevl(z, BN16, 4) / p1evl(z, BD16, 5)
            k = SQPII * g
            bi = k * (1.0 + f) / t
            f = z * polevl(z, BPPN, 4) / p1evl(z, BPPD, 5)
            bip = k * t * (1.0 + f)
            return AiryResult(ai, aip, bi, bip, STATUS_OK)

    s_ai, s_aip, s_bi, s_bip = _power_series(x)
    return AiryResult(
        ai if flags.ai else s_ai,
        aip if flags.aip else s_aip,
        bi if flags.bi else s_bi,
        bip if flags.bip else s_bip,
        STATUS_OK,
    )


# 関数: `_utc_now` の入出力契約と処理意図を定義する。

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# 関数: `_row` の入出力契約と処理意図を定義する。

def _row(x: float) -> Dict[str, Any]:
    res = evaluate(x)
    row: Dict[str, Any] = {"x": float(x), "regime": regime(x)}
    row.update(res.to_dict())
    return row


# 関数: `_format_row` の入出力契約と処理意図を定義する。

def _format_row(row: Dict[str, Any]) -> str:
    prefix = "[warn]" if row["status"] == STATUS_OVERFLOW else "[ok]"
    return (
        f"{prefix} x={row['x']:+.10g} regime={row['regime']:<13s} "
        f"Ai={row['ai']:+.16e} Ai'={row['aip']:+.16e} "
        f"Bi={row['bi']:+.16e} Bi'={row['bip']:+.16e} status={row['status']}"
    )


# 関数: `main` の入出力契約と処理意図を定義する。

def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Evaluate Airy functions Ai, Ai', Bi, Bi' at the given points.")
    ap.add_argument("x", type=float, nargs="+", help="Real arguments (negative values allowed, e.g. -3.5).")
    ap.add_argument("--json", type=str, default=None, help="Optional JSON output path for the evaluated rows.")
    ap.add_argument("--no-log", action="store_true", help="do not append an event to the work history")
    args = ap.parse_args(list(argv) if argv is not None else None)

    rows: List[Dict[str, Any]] = [_row(x) for x in args.x]
    for row in rows:
        print(_format_row(row))

    n_overflow = sum(1 for r in rows if r["status"] == STATUS_OVERFLOW)
    # 条件分岐: `n_overflow` を満たす経路を評価する。
    if n_overflow:
        print(f"[warn] {n_overflow} point(s) beyond MAXAIRY={MAXAIRY:g}: results are saturated")

    outputs: List[Path] = []
    # 条件分岐: `args.json` を満たす経路を評価する。
    if args.json:
        out_json = Path(args.json)
        out_json.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "generated_utc": _utc_now(),
            "constants": {
                "MAXAIRY": MAXAIRY,
                "MAXNUM": MAXNUM,
                "MACHEP": MACHEP,
                "boundaries": [NEGATIVE_BOUNDARY, POSITIVE_BOUNDARY, POSITIVE_FAR_BOUNDARY],
            },
            "rows": rows,
        }
        out_json.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        outputs.append(out_json)
        print(f"[ok] json: {out_json}")

    # 条件分岐: `not bool(args.no_log)` を満たす経路を評価する。
    if not bool(args.no_log):
        worklog.append_event(
            {
                "event_type": "special_airy_evaluate",
                "params": {"x": [float(v) for v in args.x]},
                "metrics": {"n_points": len(rows), "n_overflow": int(n_overflow)},
                "outputs": outputs,
            }
        )

    return 0


# 条件分岐: `__name__ == "__main__"` を満たす経路を評価する。

if __name__ == "__main__":
    raise SystemExit(main())
