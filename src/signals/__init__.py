from .generator import AggregatedSignal, SignalGenerator, aggregate_signals

__all__ = ["AggregatedSignal", "SignalGenerator", "aggregate_signals"]
