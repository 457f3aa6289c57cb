"""Transport HTTP."""
