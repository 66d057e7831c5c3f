# argfolio/__init__.py
# Cost-basis and dual-currency valuation engine for Argentine portfolios.
