"""Receiving side of the chunked transfer protocol."""
