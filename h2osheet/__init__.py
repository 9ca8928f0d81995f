"""h2osheet: technical sheet core for water-treatment projects."""

__version__ = "0.1.0"
