"""safecmd - trash-first replacement for destructive file commands.

Paths are moved to the system trash instead of being unlinked, and only
after scope and ignore-rule protection checks have approved them.
"""

__version__ = "0.1.0"
