"""ScriptGraph - execution engine for node-based visual scripts.

Runs the flat, ordered instruction lists produced by a graph editor as if
they were structured control flow (if/else, while, for, break, return, calls).
"""

__version__ = "0.1.0"
