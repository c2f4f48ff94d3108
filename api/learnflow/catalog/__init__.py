"""Catalog records and the Cassandra-backed store."""
