#!/usr/bin/env python3
"""
airy_accuracy_audit.py

`scripts/special/airy.py` の精度表（ACCURACY 表）を mpmath の高精度値（30 桁）を参照として再導出し、
あわせて Wronskian 恒等式と分岐境界（-2.09, 2.09, 8.3203353）での連続性を監査する。

`scipy.special.airy` は実引数では同じ Cephes 系の実装なので、参照ではなく移植一致の確認
（`scipy_peak` 列）にだけ使う。

判定:
  - 精度表の各行: peak <= 文書値 * pass_factor → pass、<= 文書値 * watch_factor → watch、それ以外 reject
  - Wronskian / 境界連続性 / x=0 の基準値: 許容値以下で pass、超えれば reject

出力（既定）:
  - `output/private/special/airy_accuracy_audit.json`
  - `output/private/special/airy_accuracy_audit.csv`
  - `output/private/special/airy_accuracy_audit.png`
"""

from __future__ import annotations

import argparse
import csv
import json
import math
import sys
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import mpmath as mp  # noqa: E402
import numpy as np  # noqa: E402
import scipy  # noqa: E402
from scipy import special  # noqa: E402

_ROOT = Path(__file__).resolve().parents[2]
# 条件分岐: `str(_ROOT) not in sys.path` を満たす経路を評価する。
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from scripts.special.airy import (  # noqa: E402
    MAXAIRY,
    NEGATIVE_BOUNDARY,
    POSITIVE_BOUNDARY,
    POSITIVE_FAR_BOUNDARY,
    evaluate,
    regime,
)
from scripts.summary import worklog  # noqa: E402

FUNCTIONS = ("ai", "aip", "bi", "bip")
_FUNC_INDEX = {name: i for i, name in enumerate(FUNCTIONS)}
_FUNC_LABEL = {"ai": "Ai", "aip": "Ai'", "bi": "Bi", "bip": "Bi'"}

# Working precision (decimal digits) of the mpmath reference.
REFERENCE_DPS = 30

# Known values at x = 0.
REFERENCE_AT_ZERO = {
    "ai": 0.355028053887817,
    "aip": -0.258819403792807,
    "bi": 0.614926627446001,
    "bip": 0.448288357353826,
}


# クラス: `AccuracyRow` の責務と境界条件を定義する。
@dataclass(frozen=True)
class AccuracyRow:
    function: str
    lo: float
    hi: float
    trials: int
    peak: float
    rms: float
    relative_only: bool = False


# Published accuracy of the Cephes routine (IEEE double).
ACCURACY_TABLE = (
    AccuracyRow("ai", -10.0, 0.0, 10000, 1.6e-15, 2.7e-16),
    AccuracyRow("ai", 0.0, 10.0, 10000, 2.3e-14, 1.8e-15, relative_only=True),
    AccuracyRow("aip", -10.0, 0.0, 10000, 4.6e-15, 7.6e-16),
    AccuracyRow("aip", 0.0, 10.0, 10000, 1.8e-14, 1.5e-15, relative_only=True),
    AccuracyRow("bi", -10.0, 10.0, 30000, 4.2e-15, 5.3e-16),
    AccuracyRow("bip", -10.0, 10.0, 30000, 4.9e-15, 7.3e-16),
)


# クラス: `AuditConfig` の責務と境界条件を定義する。

@dataclass(frozen=True)
class AuditConfig:
    seed: int = 19840603
    trials: Optional[int] = None  # None: use the per-row counts of ACCURACY_TABLE
    pass_factor: float = 10.0
    watch_factor: float = 100.0
    wronskian_lo: float = -20.0
    wronskian_hi: float = MAXAIRY
    wronskian_points: int = 4001
    wronskian_tol: float = 1.0e-12
    continuity_tol: float = 1.0e-13
    zero_tol: float = 1.0e-15


# 関数: `_utc_now` の入出力契約と処理意図を定義する。

def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# 関数: `_rel` の入出力契約と処理意図を定義する。

def _rel(path: Path) -> str:
    try:
        return str(path.resolve().relative_to(_ROOT)).replace("\\", "/")
    except ValueError:
        return str(path).replace("\\", "/")


# 関数: `_set_japanese_font` の入出力契約と処理意図を定義する。

def _set_japanese_font() -> None:
    try:
        import matplotlib.font_manager as fm

        preferred = ["Yu Gothic", "Meiryo", "BIZ UDGothic", "MS Gothic", "Noto Sans CJK JP", "IPAexGothic"]
        available = {f.name for f in fm.fontManager.ttflist}
        chosen = [name for name in preferred if name in available]
        # 条件分岐: `not chosen` を満たす経路を評価する。
        if not chosen:
            return

        matplotlib.rcParams["font.family"] = chosen + ["DejaVu Sans"]
        matplotlib.rcParams["axes.unicode_minus"] = False
    except Exception:
        pass


# 関数: `_gate_status` の入出力契約と処理意図を定義する。

def _gate_status(*, peak: float, documented: float, pass_factor: float, watch_factor: float) -> str:
    # 条件分岐: `peak <= documented * pass_factor` を満たす経路を評価する。
    if peak <= documented * pass_factor:
        return "pass"

    # 条件分岐: `peak <= documented * watch_factor` を満たす経路を評価する。

    if peak <= documented * watch_factor:
        return "watch"

    return "reject"


# 関数: `evaluate_many` の入出力契約と処理意図を定義する。

def evaluate_many(xs: np.ndarray) -> np.ndarray:
    """Shape (4, n) array of (Ai, Ai', Bi, Bi') from the scalar evaluator."""
    out = np.empty((4, xs.size), dtype=np.float64)
    for j, x in enumerate(xs):
        res = evaluate(float(x))
        out[0, j] = res.ai
        out[1, j] = res.aip
        out[2, j] = res.bi
        out[3, j] = res.bip

    return out


# 関数: `reference_many` の入出力契約と処理意図を定義する。

def reference_many(xs: np.ndarray, functions: Sequence[str] = FUNCTIONS) -> np.ndarray:
    """
    Shape (4, n) array of (Ai, Ai', Bi, Bi') from mpmath at REFERENCE_DPS digits, rounded to double.

    Only the rows named in `functions` are computed; the others are NaN.
    """
    xs = np.asarray(xs, dtype=np.float64)
    out = np.full((4, xs.size), np.nan, dtype=np.float64)
    with mp.workdps(REFERENCE_DPS):
        for j, x in enumerate(xs):
            xm = mp.mpf(float(x))
            for name in functions:
                fn = mp.airyai if name in ("ai", "aip") else mp.airybi
                out[_FUNC_INDEX[name], j] = float(fn(xm, derivative=1 if name.endswith("p") else 0))

    return out


# 関数: `scipy_many` の入出力契約と処理意図を定義する。

def scipy_many(xs: np.ndarray) -> np.ndarray:
    return np.vstack(special.airy(np.asarray(xs, dtype=np.float64)))


# 関数: `error_metric` の入出力契約と処理意図を定義する。

def error_metric(value: np.ndarray, ref: np.ndarray, *, relative_only: bool = False) -> np.ndarray:
    """Absolute error where |ref| <= 1, relative where |ref| > 1 (relative everywhere if relative_only)."""
    diff = np.abs(np.asarray(value, dtype=np.float64) - np.asarray(ref, dtype=np.float64))
    mag = np.abs(ref)
    # 条件分岐: `relative_only` を満たす経路を評価する。
    if relative_only:
        denom = np.where(mag > 0.0, mag, 1.0)
    else:
        denom = np.where(mag > 1.0, mag, 1.0)

    return diff / denom


# 関数: `audit_accuracy_table` の入出力契約と処理意図を定義する。

def audit_accuracy_table(cfg: AuditConfig) -> List[Dict[str, Any]]:
    rng = np.random.default_rng(cfg.seed)
    rows: List[Dict[str, Any]] = []
    for spec_row in ACCURACY_TABLE:
        n = int(cfg.trials) if cfg.trials is not None else int(spec_row.trials)
        # 条件分岐: `n < 1` を満たす経路を評価する。
        if n < 1:
            raise ValueError(f"invalid trials={n}")

        xs = rng.uniform(spec_row.lo, spec_row.hi, size=n)
        idx = _FUNC_INDEX[spec_row.function]
        val = evaluate_many(xs)[idx]
        ref = reference_many(xs, (spec_row.function,))[idx]
        err = error_metric(val, ref, relative_only=spec_row.relative_only)
        j_peak = int(np.argmax(err))
        peak = float(err[j_peak])
        rms = float(math.sqrt(float(np.mean(err * err))))
        port = error_metric(val, scipy_many(xs)[idx], relative_only=spec_row.relative_only)
        rows.append(
            {
                "function": spec_row.function,
                "label": _FUNC_LABEL[spec_row.function],
                "domain_lo": float(spec_row.lo),
                "domain_hi": float(spec_row.hi),
                "trials": n,
                "criterion": "relative" if spec_row.relative_only else "absolute<=1<relative",
                "peak": peak,
                "peak_x": float(xs[j_peak]),
                "rms": rms,
                "documented_peak": float(spec_row.peak),
                "documented_rms": float(spec_row.rms),
                "scipy_peak": float(np.max(port)),
                "status": _gate_status(
                    peak=peak,
                    documented=float(spec_row.peak),
                    pass_factor=float(cfg.pass_factor),
                    watch_factor=float(cfg.watch_factor),
                ),
            }
        )

    return rows


# 関数: `wronskian_residual` の入出力契約と処理意図を定義する。

def wronskian_residual(x: float) -> float:
    """|Ai Bi' - Ai' Bi - 1/pi| scaled by the size of the two products (at least 1/pi)."""
    r = evaluate(x)
    p1 = r.ai * r.bip
    p2 = r.aip * r.bi
    scale = max(1.0 / math.pi, abs(p1) + abs(p2))
    return abs((p1 - p2) - 1.0 / math.pi) / scale


# 関数: `audit_wronskian` の入出力契約と処理意図を定義する。

def audit_wronskian(cfg: AuditConfig) -> Dict[str, Any]:
    xs = np.linspace(cfg.wronskian_lo, cfg.wronskian_hi, int(cfg.wronskian_points))
    res = np.array([wronskian_residual(float(x)) for x in xs], dtype=np.float64)
    j = int(np.argmax(res))
    peak = float(res[j])
    return {
        "domain_lo": float(cfg.wronskian_lo),
        "domain_hi": float(cfg.wronskian_hi),
        "points": int(xs.size),
        "peak_residual": peak,
        "peak_x": float(xs[j]),
        "tolerance": float(cfg.wronskian_tol),
        "status": "pass" if peak <= cfg.wronskian_tol else "reject",
    }


# 関数: `boundary_jump` の入出力契約と処理意図を定義する。

def boundary_jump(boundary: float) -> Dict[str, Any]:
    """Compare the neighbouring doubles on either side of a regime boundary."""
    below = float(np.nextafter(boundary, -np.inf))
    above = float(np.nextafter(boundary, np.inf))
    lo = evaluate(below)
    hi = evaluate(above)
    jumps: Dict[str, float] = {}
    for name in FUNCTIONS:
        a = float(getattr(lo, name))
        b = float(getattr(hi, name))
        mag = max(abs(a), abs(b))
        jumps[name] = abs(a - b) / mag if mag > 1.0 else abs(a - b)

    return {
        "boundary": float(boundary),
        "below": below,
        "above": above,
        "regime_below": regime(below),
        "regime_above": regime(above),
        "jumps": jumps,
        "max_jump": max(jumps.values()),
    }


# 関数: `audit_continuity` の入出力契約と処理意図を定義する。

def audit_continuity(cfg: AuditConfig) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for b in (NEGATIVE_BOUNDARY, POSITIVE_BOUNDARY, POSITIVE_FAR_BOUNDARY):
        row = boundary_jump(b)
        row["tolerance"] = float(cfg.continuity_tol)
        row["status"] = "pass" if row["max_jump"] <= cfg.continuity_tol else "reject"
        rows.append(row)

    return rows


# 関数: `audit_zero` の入出力契約と処理意図を定義する。

def audit_zero(cfg: AuditConfig) -> Dict[str, Any]:
    r = evaluate(0.0)
    diffs = {name: abs(float(getattr(r, name)) - ref) for name, ref in REFERENCE_AT_ZERO.items()}
    peak = max(diffs.values())
    return {
        "values": r.to_dict(),
        "reference": dict(REFERENCE_AT_ZERO),
        "abs_diff": diffs,
        "tolerance": float(cfg.zero_tol),
        "status": "pass" if peak <= cfg.zero_tol else "reject",
    }


# 関数: `run_audit` の入出力契約と処理意図を定義する。

def run_audit(cfg: AuditConfig) -> Dict[str, Any]:
    accuracy = audit_accuracy_table(cfg)
    wronskian = audit_wronskian(cfg)
    continuity = audit_continuity(cfg)
    zero = audit_zero(cfg)

    statuses = [r["status"] for r in accuracy] + [wronskian["status"], zero["status"]] + [r["status"] for r in continuity]
    # 条件分岐: `"reject" in statuses` を満たす経路を評価する。
    if "reject" in statuses:
        overall = "reject"
    elif "watch" in statuses:
        overall = "watch"
    else:
        overall = "pass"

    return {
        "generated_utc": _utc_now(),
        "config": asdict(cfg),
        "reference": f"mpmath airyai/airybi at {REFERENCE_DPS} digits (mpmath {mp.__version__})",
        "port_agreement": f"scipy.special.airy (scipy {scipy.__version__})",
        "accuracy_table": accuracy,
        "wronskian": wronskian,
        "continuity": continuity,
        "zero": zero,
        "overall_status": overall,
    }


# 関数: `_write_csv` の入出力契約と処理意図を定義する。

def _write_csv(path: Path, rows: List[Dict[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fields = [
        "function",
        "domain_lo",
        "domain_hi",
        "trials",
        "criterion",
        "peak",
        "peak_x",
        "rms",
        "documented_peak",
        "documented_rms",
        "scipy_peak",
        "status",
    ]
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fields)
        w.writeheader()
        for r in rows:
            w.writerow({k: r.get(k) for k in fields})


# 関数: `_plot` の入出力契約と処理意図を定義する。

def _plot(out_png: Path, *, seed: int) -> None:
    _set_japanese_font()
    xs = np.linspace(-10.0, 10.0, 2001)
    val = evaluate_many(xs)
    ref = reference_many(xs)

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(13.5, 5.2), dpi=150)

    # Left: Ai, Bi with the regime boundaries.
    x_curve = xs[xs <= 3.0]
    ax1.plot(x_curve, val[0][xs <= 3.0], label="Ai(x)")
    ax1.plot(x_curve, val[2][xs <= 3.0], label="Bi(x)")
    for b in (NEGATIVE_BOUNDARY, POSITIVE_BOUNDARY):
        ax1.axvline(b, color="0.4", linestyle="--", linewidth=0.8)

    ax1.axhline(0.0, color="0.2", lw=0.8)
    ax1.set_xlim(-10.0, 3.0)
    ax1.set_ylim(-0.6, 1.6)
    ax1.set_xlabel("x")
    ax1.set_ylabel("value")
    ax1.set_title("Airy 関数（破線: 分岐境界 ±2.09）")
    ax1.grid(True, alpha=0.3)
    ax1.legend(loc="upper left", fontsize=9)

    # Right: error against the reference, same criterion as the accuracy table.
    tiny = 1.0e-18
    for name in FUNCTIONS:
        i = _FUNC_INDEX[name]
        err = error_metric(val[i], ref[i])
        ax2.semilogy(xs, np.maximum(err, tiny), lw=0.7, label=_FUNC_LABEL[name])

    for b in (NEGATIVE_BOUNDARY, POSITIVE_BOUNDARY, POSITIVE_FAR_BOUNDARY):
        ax2.axvline(b, color="0.4", linestyle="--", linewidth=0.8)

    ax2.set_xlim(-10.0, 10.0)
    ax2.set_xlabel("x")
    ax2.set_ylabel("誤差（|f|<=1: 絶対, |f|>1: 相対）")
    ax2.set_title(f"mpmath（{REFERENCE_DPS} 桁）との差")
    ax2.grid(True, alpha=0.3, which="both")
    ax2.legend(loc="upper right", fontsize=9)

    fig.suptitle(f"Airy 関数の精度監査 (seed={seed})", y=0.98)
    fig.tight_layout(rect=(0.0, 0.0, 1.0, 0.95))
    out_png.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_png)
    plt.close(fig)


# 関数: `main` の入出力契約と処理意図を定義する。

def main(argv: Optional[Sequence[str]] = None) -> int:
    defaults = AuditConfig()
    default_outdir = _ROOT / "output" / "private" / "special"

    ap = argparse.ArgumentParser(description="Accuracy audit of the Airy evaluator against a 30-digit mpmath reference.")
    ap.add_argument("--trials", type=int, default=None, help="Trials per accuracy-table row (default: published counts).")
    ap.add_argument("--seed", type=int, default=defaults.seed, help=f"RNG seed (default: {defaults.seed}).")
    ap.add_argument("--pass-factor", type=float, default=defaults.pass_factor, help="pass if peak <= documented*factor.")
    ap.add_argument("--watch-factor", type=float, default=defaults.watch_factor, help="watch if peak <= documented*factor.")
    ap.add_argument("--outdir", type=str, default=str(default_outdir), help="Output directory (default: output/private/special).")
    ap.add_argument("--no-plot", action="store_true")
    ap.add_argument("--no-log", action="store_true", help="do not append an event to the work history")
    args = ap.parse_args(list(argv) if argv is not None else None)

    # 条件分岐: `args.trials is not None and int(args.trials) < 1` を満たす経路を評価する。
    if args.trials is not None and int(args.trials) < 1:
        ap.error("--trials must be >= 1")

    # 条件分岐: `not (0.0 < float(args.pass_factor) <= float(args.watch_factor))` を満たす経路を評価する。

    if not (0.0 < float(args.pass_factor) <= float(args.watch_factor)):
        ap.error("need 0 < --pass-factor <= --watch-factor")

    cfg = AuditConfig(
        seed=int(args.seed),
        trials=int(args.trials) if args.trials is not None else None,
        pass_factor=float(args.pass_factor),
        watch_factor=float(args.watch_factor),
    )

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)
    out_json = outdir / "airy_accuracy_audit.json"
    out_csv = outdir / "airy_accuracy_audit.csv"
    out_png = outdir / "airy_accuracy_audit.png"

    payload = run_audit(cfg)
    outputs: Dict[str, Any] = {"metrics_json": _rel(out_json), "summary_csv": _rel(out_csv)}
    # 条件分岐: `not bool(args.no_plot)` を満たす経路を評価する。
    if not bool(args.no_plot):
        _plot(out_png, seed=cfg.seed)
        outputs["figure_png"] = _rel(out_png)

    payload["outputs"] = outputs

    out_json.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    _write_csv(out_csv, payload["accuracy_table"])

    for r in payload["accuracy_table"]:
        tag = "[ok]" if r["status"] == "pass" else "[warn]"
        print(
            f"{tag} {r['label']:<4s} [{r['domain_lo']:+g},{r['domain_hi']:+g}] "
            f"peak={r['peak']:.3e} (doc {r['documented_peak']:.1e}) rms={r['rms']:.3e} "
            f"scipy={r['scipy_peak']:.1e} status={r['status']}"
        )

    w = payload["wronskian"]
    print(f"[info] wronskian peak residual={w['peak_residual']:.3e} at x={w['peak_x']:+.4f} status={w['status']}")
    for c in payload["continuity"]:
        print(f"[info] boundary x={c['boundary']:+.7g}: max jump={c['max_jump']:.3e} status={c['status']}")

    print(f"[ok] metrics: {out_json}")
    print(f"[ok] summary: {out_csv}")
    # 条件分岐: `"figure_png" in outputs` を満たす経路を評価する。
    if "figure_png" in outputs:
        print(f"[ok] figure : {out_png}")

    # 条件分岐: `not bool(args.no_log)` を満たす経路を評価する。

    if not bool(args.no_log):
        worklog.append_event(
            {
                "event_type": "special_airy_accuracy_audit",
                "params": {
                    "seed": cfg.seed,
                    "trials": cfg.trials,
                    "pass_factor": cfg.pass_factor,
                    "watch_factor": cfg.watch_factor,
                },
                "metrics": {
                    "overall_status": payload["overall_status"],
                    "wronskian_peak_residual": w["peak_residual"],
                    "max_boundary_jump": max(c["max_jump"] for c in payload["continuity"]),
                },
                "outputs": [out_json, out_csv] + ([out_png] if "figure_png" in outputs else []),
            }
        )

    print(f"[info] overall status={payload['overall_status']}")
    return 1 if payload["overall_status"] == "reject" else 0


# 条件分岐: `__name__ == "__main__"` を満たす経路を評価する。

if __name__ == "__main__":
    raise SystemExit(main())
