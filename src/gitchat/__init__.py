"""
gitchat: drive git through natural-language chat.

Free-form requests are classified, gated behind an explicit confirmation when
they would change repository state, dispatched to an operation handler and
streamed back incrementally.
"""

__version__ = "0.1.0"
