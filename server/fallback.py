"""
AI飲食店エリア分析 - Fallback chains
Ordered strategies tried one after another; the first usable result wins.
"""


def try_in_order(strategies, *args, **kwargs):
    """Call each strategy with the same arguments and return the first result that is not None."""
    for strategy in strategies:
        result = strategy(*args, **kwargs)
        if result is not None:
            return result
    return None
