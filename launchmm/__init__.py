"""
launchmm: swap-time value capture for token launches on a concentrated-liquidity AMM.

Layering (functional core / imperative shell):
- `launchmm.kernels`     pure integer price/liquidity math,
- `launchmm.state`       frozen records, keyed stores and the trade journal,
- `launchmm.core`        fair launch, internal netting, fee waterfall and bid wall engines,
- `launchmm.integration` config loading, the pool manager interface and the hook shell.
"""

__version__ = "0.1.0"
