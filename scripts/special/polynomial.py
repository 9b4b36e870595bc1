from __future__ import annotations

from typing import Sequence


# 関数: `polevl` の入出力契約と処理意図を定義する。
def polevl(x: float, coef: Sequence[float], n: int) -> float:
    """
    Evaluate coef[0]*x^n + coef[1]*x^(n-1) + ... + coef[n] (Horner order).

    `coef` holds n+1 coefficients, highest degree first.
    """
    # 条件分岐: `len(coef) != n + 1` を満たす経路を評価する。
    if len(coef) != n + 1:
        raise ValueError(f"polevl: degree {n} needs {n + 1} coefficients, got {len(coef)}")

    ans = float(coef[0])
    for c in coef[1:]:
        ans = ans * x + c

    return ans


# 関数: `p1evl` の入出力契約と処理意図を定義する。

def p1evl(x: float, coef: Sequence[float], n: int) -> float:
    """
    Same as `polevl` with an implicit leading coefficient of 1.0.

    `coef` holds n coefficients for x^(n-1) .. x^0.
    """
    # 条件分岐: `n < 1` を満たす経路を評価する。
    if n < 1:
        raise ValueError(f"p1evl: degree must be >= 1, got {n}")

    # 条件分岐: `len(coef) != n` を満たす経路を評価する。
    if len(coef) != n:
        raise ValueError(f"p1evl: degree {n} needs {n} coefficients, got {len(coef)}")

    ans = x + coef[0]
    for c in coef[1:]:
        ans = ans * x + c

    return ans
