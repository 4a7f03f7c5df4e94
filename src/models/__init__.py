from .patterns import ChartPatternDetector, PatternSet, PatternSignal, PatternType, detect_patterns
from .regime import (
    MomentumState,
    RegimeClassification,
    RegimeDetector,
    TrendRegime,
    VolatilityRegime,
    detect_regime,
)
from .multi_timeframe import MultiTimeframeAnalyzer, MultiTimeframeConsensus

__all__ = [
    "ChartPatternDetector",
    "PatternSet",
    "PatternSignal",
    "PatternType",
    "detect_patterns",
    "MomentumState",
    "RegimeClassification",
    "RegimeDetector",
    "TrendRegime",
    "VolatilityRegime",
    "detect_regime",
    "MultiTimeframeAnalyzer",
    "MultiTimeframeConsensus",
]
