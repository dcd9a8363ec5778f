"""This is the processing submodule.

This module turns raw utility output into monitoring state: resolving the device
path, collecting counters, diffing snapshots, and calibrating the IRQ baseline.
"""
