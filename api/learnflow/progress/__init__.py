"""Progress ledger and weighted rollup."""
