"""shiftdesk - shift tracking and ticketing client with a fuzzy chat front end."""

__version__ = "0.1.0"
