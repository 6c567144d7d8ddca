"""Virtual closet: garment catalog, AI try-on and weather-aware outfit advice."""

__version__ = "0.1.0"
