from .series import PriceSeries

__all__ = [
    "PriceSeries",
]
