"""Records and typed identifiers shared across Warncord."""
