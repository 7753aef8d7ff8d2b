"""Cryptenv command line interface."""
