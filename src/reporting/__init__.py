"""
Reporting: plots and the rendered static site
"""

from .plots import (plot_accuracy_by_horizon, plot_autocorrelation,
                    plot_decomposition, plot_forecasts, plot_series)
from .site import forecast_figure, render_site

__all__ = [
    "plot_series",
    "plot_decomposition",
    "plot_autocorrelation",
    "plot_forecasts",
    "plot_accuracy_by_horizon",
    "forecast_figure",
    "render_site",
]
