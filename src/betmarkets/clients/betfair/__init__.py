"""Betfair Exchange: session-authenticated REST API."""
