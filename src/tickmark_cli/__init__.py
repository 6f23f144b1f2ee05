"""tickmark command line interface."""
