"""Table repositories used by the Database coordinator."""
