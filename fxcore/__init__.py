"""
fx-curve-pricer
===============
Rate-curve bootstrapping and closed-form FX option pricing.

Modules:
    quotes            - Instrument quotes, maturity labels, ingestion paths
    interpolation     - Zero-rate, log-DF, forward and monotone convex interpolants
    nelson_siegel     - Nelson-Siegel evaluation and weighted fit
    curve             - Immutable Curve, methods, discount-factor report
    bootstrap         - Curve bootstrapper (all methods), bonds path, batch runner
    garman_kohlhagen  - Vanilla pricing and analytic greeks
    barriers          - Single and double barrier closed forms
    digitals          - Touch, no-touch, range and European digitals
    greeks            - Greeks for every kind (analytic or finite differences)
    kinds             - OptionKind and product families
    contracts         - Contract variants, make_contract, price_option
    requests          - Application request / response schema
    visualization     - Curve charts (matplotlib + plotly)
    errors            - Error kinds
    config            - Global constants and defaults
"""

__version__ = "0.3.0"
__author__ = "Leo"
