"""
Error-bar figures for empirical vs internal uncertainty.
"""

from .errorbars import plot_empirical_sigma

__all__ = ['plot_empirical_sigma']
