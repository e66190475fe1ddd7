"""Shared engine instance for the API process."""
from ..config.settings import get_settings
from ..engine import PricingEngine

settings = get_settings()
engine = PricingEngine(settings.pricing_rules)
