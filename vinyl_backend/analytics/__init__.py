"""Sold-price analytics."""
