"""
formbridge: keeps a form's field mapping and option sets in step with a
mutable external record store, and looks records up reliably when that
store misbehaves.
"""

__version__ = "0.1.0"
