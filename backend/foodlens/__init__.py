"""FoodLens: multi-source packaged food product resolution."""

__version__ = "0.1.0"
