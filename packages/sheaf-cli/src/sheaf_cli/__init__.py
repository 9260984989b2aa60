"""sheaf-cli: Command line interface for the sheaf stylesheet pipeline.

Commands:
- ``sheaf compile``: merge and process style sources once
- ``sheaf watch``: compile, then recompile whenever a source changes
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
