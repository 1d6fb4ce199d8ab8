"""Protocol definitions for pluggable collaborators."""
