"""Sort-and-batch engine core: types, configuration, errors, reducer and job driver."""
