"""Free-text search over xkcd comics: fetching, normalisation, ranking and a WSGI HTTP API."""

__version__ = "0.1.0"