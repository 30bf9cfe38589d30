"""Landed-cost economics engine."""
