"""Tile grid and building economy."""
