"""Polymarket: public search/event page scraping."""
