"""Outfit Personalizer - preference learning and diversification for outfit recommendations.

Turns a user's interaction history into weighted preference profiles,
scores generated outfit candidates against them and selects a
diversified set of three to present.
"""

__version__ = "0.1.0"
__author__ = "Outfit Personalizer Team"
