"""NutriVision: resilient client transport/session layer and backend bootstrap."""

__version__ = "1.0.0"
