# Strategy script: EMA crossover.
#
# Scripts have no imports; `np`, `math` and a whitelisted set of builtins
# are available, indicator functions come in through `ta`.


def generate_signals(signal_prices, execution_prices, params, ta):
    fast = ta.ema(signal_prices, int(params.get("fast_ma", 10)))
    slow = ta.ema(signal_prices, int(params.get("slow_ma", 30)))

    signals = np.zeros(len(signal_prices), dtype=int)
    signals[ta.crossover(fast, slow)] = 1
    signals[ta.crossunder(fast, slow)] = -1
    return signals
