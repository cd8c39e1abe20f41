"""Toolkit for migrating files between FastDFS clusters."""

__version__ = "0.1.0"