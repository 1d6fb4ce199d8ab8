"""Building blocks of the sort-and-batch engine."""
