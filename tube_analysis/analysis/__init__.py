"""
Analysis of fitted tube models.
"""

from .distortion import total_harmonic_distortion

__all__ = [
    'total_harmonic_distortion',
]
