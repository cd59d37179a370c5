"""
semstore - embedding-backed semantic similarity store.
Facts are embedded by an external provider, stored by identifier and
queried for their nearest neighbours.
"""
