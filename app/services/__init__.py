"""
Application services module.
"""

from app.services.exchange_rates import ExchangeRateService, get_exchange_rate_service

__all__ = ["ExchangeRateService", "get_exchange_rate_service"]
