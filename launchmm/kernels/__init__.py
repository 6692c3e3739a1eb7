"""
Kernel layer.

Deterministic, integer-only math shared by every engine:
- `tick_math`          tick <-> Q64.96 sqrt price,
- `sqrt_price_math`    token amounts between two sqrt prices,
- `swap_math`          one constant-liquidity swap step,
- `liquidity_amounts`  token amounts <-> liquidity at range boundaries,
- `tick_grid`          alignment of ticks to the fixed spacing.

No floats anywhere; rounding direction is explicit at every division.
"""
