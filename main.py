#!/usr/bin/env python3
"""
Market Forecast Engine - Main Entry Point

Usage:
    python main.py analyze BTC --type crypto            # Live analysis via yfinance
    python main.py analyze AAPL -t stock --timeframe 1M -o json
    python main.py predict prices.csv                   # Advanced prediction from a CSV
    python main.py predict prices.csv --asset-type forex

The CSV needs a 'close' column; 'high', 'low' and 'volume' are used when
present and synthesized otherwise.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from loguru import logger


def setup_logging(verbose: bool = False):
    """Configure logging."""
    from config.settings import get_settings
    from src.utils.logger import setup_logger
    setup_logger(level="DEBUG" if verbose else get_settings().log_level)


def cmd_analyze(args):
    """Analyze a single asset."""
    from providers.price import get_asset_provider
    from src.engines.investment_analyzer import InvestmentAnalyzer
    from src.utils.logger import audit_log
    from utils.error_handler import AssetNotFoundError

    analyzer = InvestmentAnalyzer(get_asset_provider(args.provider))
    logger.info(f"Analyzing {args.symbol} ({args.type}, {args.timeframe})...")

    try:
        result = asyncio.run(analyzer.analyze(args.symbol, args.type, args.timeframe))
    except AssetNotFoundError as e:
        print(f"Could not analyze {args.symbol}: {e}")
        return None

    audit_log(
        "analysis",
        symbol=result.symbol,
        asset_type=result.asset_type.value,
        timeframe=result.timeframe,
        recommendation=result.recommendation.value,
        confidence=result.confidence,
    )

    if args.output == "json":
        print(json.dumps(result.to_dict(), indent=2))
        return result

    ti = result.technical_indicators
    print("\n" + "=" * 60)
    print(f"ANALYSIS: {result.asset} ({result.symbol}, {result.asset_type.value.upper()})")
    print("=" * 60)
    print(f"\nRecommendation: {result.recommendation.value} ({result.confidence:.0f}% confidence)")
    print(f"Risk Level:     {result.risk_level.value}")
    print(f"\nPrice ({result.timeframe}):")
    print(f"  Current:   {result.current_price:,.2f}")
    print(f"  Predicted: {result.predicted_price:,.2f} ({result.expected_return_percent:+.2f}%)")
    print(f"\nTechnicals:")
    print(f"  RSI:        {ti.rsi:.1f}")
    print(f"  Trend:      {ti.trend.value}")
    print(f"  Volatility: {ti.volatility:.2f}%")
    print(f"  Support:    {ti.support:,.2f}")
    print(f"  Resistance: {ti.resistance:,.2f}")
    print(f"\n{result.reasoning}")
    print("=" * 60)
    return result


def load_series(path: Path, asset_type=None):
    """Read an OHLCV CSV into a PriceSeries."""
    import pandas as pd

    from src.data.series import PriceSeries
    from utils.error_handler import DataException

    try:
        df = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataException(f"Could not read {path}: {e}") from e

    try:
        series = PriceSeries.from_frame(df, asset_type)
    except ValueError as e:
        raise DataException(f"{path.name}: {e}") from e
    if len(series) == 0:
        raise DataException(f"{path.name}: no rows")
    return series


def cmd_predict(args):
    """Run the advanced prediction on a CSV of prices."""
    from src.engines.advanced_predictor import AdvancedPredictionEngine
    from src.engines.quick_predictor import QuickPredictor
    from utils.error_handler import DataException

    path = Path(args.csv)
    if not path.exists():
        print(f"File not found: {path}")
        return None

    try:
        series = load_series(path, args.asset_type)
    except DataException as e:
        print(e.message)
        return None

    prediction = AdvancedPredictionEngine().predict(series)
    quick = QuickPredictor().predict(series)

    if args.output == "json":
        print(json.dumps({
            'current_price': prediction.current_price,
            'prediction': prediction.prediction,
            'expected_return_pct': prediction.expected_return_pct,
            'confidence': prediction.confidence,
            'recommendation': prediction.recommendation.value,
            'direction': quick.direction,
            'direction_confidence': quick.confidence,
            'reasoning': prediction.reasoning,
            'signals': prediction.signals,
        }, indent=2))
        return prediction

    print(f"\n{path.name}: {len(series)} samples")
    print(f"  Last close:     {prediction.current_price:,.4f}")
    print(f"  Prediction:     {prediction.prediction:,.4f} ({prediction.expected_return_pct:+.2f}%)")
    print(f"  Confidence:     {prediction.confidence:.0f}%")
    print(f"  Recommendation: {prediction.recommendation.value}")
    print(f"  Direction:      {quick.direction} ({quick.confidence:.0f}%)")
    print(f"\n{prediction.reasoning}")
    if prediction.signals:
        print("\nSignals:")
        for signal in prediction.signals[:10]:
            print(f"  - {signal}")
    return prediction


def main():
    parser = argparse.ArgumentParser(
        description="Market Forecast Engine - Heuristic technical analysis for crypto, stocks, forex and commodities"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze a single asset")
    analyze_parser.add_argument("symbol", type=str, help="Asset symbol (e.g., BTC, AAPL, EURUSD, gold)")
    analyze_parser.add_argument(
        "--type", "-t",
        choices=["crypto", "stock", "forex", "commodity"],
        default="stock",
        help="Asset type"
    )
    analyze_parser.add_argument(
        "--timeframe",
        type=str,
        default="1W",
        help="Prediction timeframe label (default: 1W)"
    )
    analyze_parser.add_argument(
        "--provider",
        type=str,
        default=None,
        help="Asset provider (default: ASSET_PROVIDER env or yfinance)"
    )
    analyze_parser.add_argument(
        "--output", "-o",
        choices=["text", "json"],
        default="text",
        help="Output format"
    )

    # Predict command
    predict_parser = subparsers.add_parser("predict", help="Predict from a CSV of prices")
    predict_parser.add_argument("csv", type=str, help="CSV file with a 'close' column")
    predict_parser.add_argument(
        "--asset-type",
        choices=["crypto", "stock", "forex", "commodity"],
        default=None,
        dest="asset_type",
        help="Asset class used for high/low synthesis"
    )
    predict_parser.add_argument(
        "--output", "-o",
        choices=["text", "json"],
        default="text",
        help="Output format"
    )

    args = parser.parse_args()

    # Setup logging
    setup_logging(args.verbose)

    if args.command == "analyze":
        cmd_analyze(args)
    elif args.command == "predict":
        cmd_predict(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
