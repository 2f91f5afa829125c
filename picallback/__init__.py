"""Pi payment callback receiver."""
