"""NetworkX view of the membership tree."""
