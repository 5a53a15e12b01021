"""OVN NB probe pipeline: decode, parse, orchestrate, assemble, execute."""
