"""
Parameter-sweep backtesting engine.

Provides unified interfaces for:
- Data loading and price-series precomputation
- Indicator calculations
- Signal generation (reference strategy, examples, restricted scripts)
- Single-asset portfolio simulation
- Batched parameter sweeps with failure isolation and ranking
"""
