"""devctx: save coding context and resume it as a token-budgeted prompt."""

__version__ = "2.0.0"
