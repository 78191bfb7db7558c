"""Themepipe - build pipeline for the modul-r child theme.

Compiles stylesheets, bundles scripts, optimizes images, generates the
translation catalog and watches sources, driven by a small task graph.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = ["__version__"]
