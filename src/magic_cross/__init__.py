"""
MAGIC cross builder.

Downloads the Arabidopsis MAGIC genotype archive (Kover et al. 2009), converts
the per-chromosome HAPPY files into a merged HAPPY dataset and an R/qtl2-style
cross dataset, and bundles the result so it can be loaded by name.
"""

from magic_cross._version import __version__

__all__ = ["__version__"]
