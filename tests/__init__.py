"""
SARIMAX Engine Test Suite

Tests for estimation, forecasting, diagnostics, decomposition and backtesting
of the SARIMAX engine, using statsmodels and scipy as reference implementations
where they compute the same quantity.
"""
