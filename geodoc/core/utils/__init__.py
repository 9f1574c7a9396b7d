"""Small shared helpers for the geodoc core package."""

from geodoc.core.utils.checks import ifnone

__all__ = ["ifnone"]
