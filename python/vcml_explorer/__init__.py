"""
vcml-explorer CLI package.

Interactive and scripted front-end for the vcmlsession toolkit: discover
announced simulators, connect, run/stop/step them and browse their object
hierarchy.  Use ``vcml-explorer`` or ``python -m vcml_explorer`` to launch.
"""

from __future__ import annotations

from .cli import main

__all__ = ["main"]
__version__ = "0.1.0"
