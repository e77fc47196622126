"""MSCC — Meta Search and Control Center.

Metasearch host that queries pluggable data-source connectors.  Connectors
can be authored as Python scripts at runtime; the :mod:`mscc.scripting`
package compiles, instantiates and hot-registers them.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
