from .aggregator import AggregateResult, WeatherAggregator
from .weather import WeatherComparisonService

__all__ = ["AggregateResult", "WeatherAggregator", "WeatherComparisonService"]
