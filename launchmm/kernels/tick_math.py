"""
Tick <-> sqrt price conversion (Q64.96), exact integer semantics.

Both directions reproduce the AMM's table/log2 method bit for bit so that a
price derived here agrees with the price the pool itself stores for a tick.
"""

from __future__ import annotations


MIN_TICK = -887272
MAX_TICK = 887272

MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342

Q96 = 1 << 96
Q128 = 1 << 128
Q192 = 1 << 192
MAX_UINT128 = (1 << 128) - 1
MAX_UINT160 = (1 << 160) - 1
MAX_UINT256 = (1 << 256) - 1

# sqrt(1.0001^-(2^i)) as Q128.128, i = 0..19
_RATIOS = (
    0xFFFCB933BD6FAD37AA2D162D1A594001,
    0xFFF97272373D413259A46990580E213A,
    0xFFF2E50F5F656932EF12357CF3C7FDCC,
    0xFFE5CACA7E10E4E61C3624EAA0941CD0,
    0xFFCB9843D60F6159C9DB58835C926644,
    0xFF973B41FA98C081472E6896DFB254C0,
    0xFF2EA16466C96A3843EC78B326B52861,
    0xFE5DEE046A99A2A811C461F1969C3053,
    0xFCBE86C7900A88AEDCFFC83B479AA3A4,
    0xF987A7253AC413176F2B074CF7815E54,
    0xF3392B0822B70005940C7A398E4B70F3,
    0xE7159475A2C29B7443B29C7FA6E889D9,
    0xD097F3BDFD2022B8845AD8F792AA5825,
    0xA9F746462D870FDF8A65DC1F90E061E5,
    0x70D869A156D2A1B890BB3DF62BAF32F7,
    0x31BE135F97D08FD981231505542FCFA6,
    0x9AA508B5B7A84E1C677DE54F3E99BC9,
    0x5D6AF8DEDB81196699C329225EE604,
    0x2216E584F5FA1EA926041BEDFE98,
    0x48A170391F7DC42444E8FA2,
)


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def sqrt_price_at_tick(tick: int) -> int:
    """Return sqrt(1.0001^tick) * 2^96, rounded up."""
    _require_int("tick", tick)
    if not (MIN_TICK <= tick <= MAX_TICK):
        raise ValueError(f"tick out of range [{MIN_TICK}, {MAX_TICK}]: {tick}")

    abs_tick = -tick if tick < 0 else tick
    ratio = Q128
    for i, factor in enumerate(_RATIOS):
        if abs_tick & (1 << i):
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = MAX_UINT256 // ratio

    # Q128.128 -> Q64.96, rounding up so that tick_at_sqrt_price is the exact inverse
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def tick_at_sqrt_price(sqrt_price_x96: int) -> int:
    """Return the greatest tick whose sqrt price is <= `sqrt_price_x96`."""
    _require_int("sqrt_price_x96", sqrt_price_x96)
    if not (MIN_SQRT_PRICE <= sqrt_price_x96 < MAX_SQRT_PRICE):
        raise ValueError(f"sqrt price out of range: {sqrt_price_x96}")

    ratio = sqrt_price_x96 << 32
    msb = ratio.bit_length() - 1
    if msb >= 128:
        r = ratio >> (msb - 127)
    else:
        r = ratio << (127 - msb)

    log_2 = (msb - 128) << 64
    for shift in range(63, 49, -1):
        r = (r * r) >> 127
        f = r >> 128
        log_2 |= f << shift
        r >>= f

    log_sqrt10001 = log_2 * 255738958999603826347141

    tick_low = (log_sqrt10001 - 3402992956809132418596140100660247210) >> 128
    tick_high = (log_sqrt10001 + 291339464771989622907027621153398088495) >> 128

    if tick_low == tick_high:
        return tick_low
    return tick_high if sqrt_price_at_tick(tick_high) <= sqrt_price_x96 else tick_low
