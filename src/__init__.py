"""
winecast - Wine Sales Forecasting Workbench

Modules:
- series: Sales table loading, tsibble-style contract and validation
- forecasting: Mean/naive/drift/ETS/ARIMA/VAR/NNETAR models, backtesting, accuracy
- reporting: Matplotlib plots and the static HTML site
- pipeline: Idempotent tasks + Typer CLI
- deploy: rsync mirror of the rendered site
"""
